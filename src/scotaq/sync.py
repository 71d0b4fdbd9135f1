"""
Synchronous wrapper functions and utilities for scotaq.

This module provides synchronous versions of the async fetch functions for
callers that cannot use async/await, such as scheduled batch jobs. Under the
hood these run the async code in a fresh event loop.

Usage:
    # Instead of this async code:
    async with ScotAQClient() as client:
        result = await fetch_measurements(client=client)

    # Use this sync code:
    from scotaq.sync import fetch_measurements_sync
    result = fetch_measurements_sync()
"""

import asyncio
import inspect
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Callable,
    List,
    Optional,
    Sequence,
    TypeVar,
)

from .client import ScotAQClient

if TYPE_CHECKING:
    from .models import FetchResult, Location

R = TypeVar("R")


class AsyncSyncBridge:
    """Handles conversion of async functions to synchronous versions.

    This class provides utilities for running async code synchronously,
    managing event loops, and handling client instantiation.
    """

    @staticmethod
    def run_async(
        async_fn: Callable[..., Awaitable[R]],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        provide_client: bool = False,
    ) -> R:
        """Run an async function synchronously.

        Args:
            async_fn: Async function to run
            args: Positional arguments for the function
            kwargs: Keyword arguments for the function
            provide_client: Create a temporary ScotAQClient when the call does
                not pass one

        Returns:
            Result of running the async function

        Raises:
            RuntimeError: If called from within an existing event loop
        """
        kwargs = dict(kwargs or {})

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError(
                "Cannot use sync version from within an existing asyncio event loop. "
                "Use the async version instead."
            )

        async def _call_and_cleanup() -> R:
            # The client must be created inside the loop that will use it
            bound = inspect.signature(async_fn).bind_partial(*args, **kwargs)
            temp_client = None
            if provide_client and bound.arguments.get("client") is None:
                temp_client = ScotAQClient()
                bound.arguments["client"] = temp_client
            try:
                return await async_fn(*bound.args, **bound.kwargs)
            finally:
                if temp_client:
                    await temp_client.close()

        return asyncio.run(_call_and_cleanup())


def fetch_locations_sync(client: Optional[ScotAQClient] = None) -> List["Location"]:
    """Synchronous version of fetch_locations.

    Examples:
        >>> locations = fetch_locations_sync()
        >>> locations[0].id
        'ABD1'
    """
    from .locations import fetch_locations

    return fetch_locations.sync(client=client)  # type: ignore[attr-defined]


def fetch_measurements_sync(
    locations: Optional[Sequence["Location"]] = None,
    client: Optional[ScotAQClient] = None,
    limit: Optional[int] = None,
) -> "FetchResult":
    """Synchronous version of fetch_measurements.

    Fetch today's hourly measurements for each location, discovering the
    locations from the map data when none are given.

    Args:
        locations: Locations to fetch; all map locations if None
        client: ScotAQClient instance. If not provided, creates temporary client
        limit: Only fetch the first ``limit`` locations

    Returns:
        FetchResult with measurements and per-location failures

    Examples:
        >>> result = fetch_measurements_sync(limit=1)
        >>> df = result.to_pandas()
    """
    from .fetch import fetch_measurements

    return fetch_measurements.sync(  # type: ignore[attr-defined]
        locations=locations, client=client, limit=limit
    )
