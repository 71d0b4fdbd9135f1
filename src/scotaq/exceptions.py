"""
Exceptions for scotaq operations.
"""

from typing import Any, Dict, Optional


class ScotAQError(Exception):
    """Base exception for all scotaq errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            extra = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({extra})"
        return self.message


class NetworkError(ScotAQError):
    """A request to the air quality website failed."""

    pass


class RequestTimeoutError(NetworkError):
    """A request or query step did not complete in time."""

    pass


class ProtocolError(ScotAQError):
    """The website answered with something the query wizard did not expect."""

    pass


class LayoutError(ScotAQError):
    """The result table headers could not be resolved into columns."""

    pass


class FormatError(ScotAQError):
    """A single table cell (timestamp or value) could not be parsed."""

    pass
