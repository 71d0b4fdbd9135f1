"""
Async HTTP client for the Scottish Air Quality website.
"""

import json
import logging
from typing import Any, Optional

import httpx

from .config import ClientConfig
from .exceptions import NetworkError, ProtocolError, RequestTimeoutError

logger = logging.getLogger(__name__)


class ScotAQClient:
    """
    Client for the scottishairquality.scot map data and data selector pages.

    The site has no API: locations come from the JSON powering its interactive
    map, and measurements from HTML pages of the data selector wizard. One
    client can be shared by many concurrent query sessions.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        timeout: Optional[float] = None,
    ):
        self.config = config or ClientConfig()
        self.timeout = timeout if timeout is not None else self.config.timeout
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ScotAQClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _make_request(self, url: str) -> httpx.Response:
        """Make a GET request with error handling."""
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Request timeout after {self.timeout}s", {"url": url}
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise NetworkError("Rate limit exceeded", {"url": url}) from e
            elif status >= 500:
                raise NetworkError(
                    "Air quality website temporarily unavailable",
                    {"url": url, "status": status},
                ) from e
            else:
                raise NetworkError(f"HTTP error {status}", {"url": url}) from e
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {e}", {"url": url}) from e

    async def get_text(self, url: str) -> str:
        """Fetch a page and return its body as text."""
        response = await self._make_request(url)
        return response.text

    async def get_json(self, url: str) -> Any:
        """Fetch a URL and decode its JSON body."""
        response = await self._make_request(url)
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON response: {e}", {"url": url}) from e

    async def get_data_selector(self, query: str) -> str:
        """Submit one data selector step and return the rendered HTML."""
        url = f"{self.config.measurements_url}?{query}"
        logger.debug(f"GET {url}")
        return await self.get_text(url)
