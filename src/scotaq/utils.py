"""
Internal utility functions for scotaq.
"""

import inspect
from typing import (
    Any,
    Awaitable,
    Callable,
    TypeVar,
)

R = TypeVar("R")


def add_sync_version(
    async_fn: Callable[..., Awaitable[R]],
) -> Callable[..., Awaitable[R]]:
    """
    A decorator that adds a .sync attribute to an async function, allowing it
    to be called synchronously.

    The .sync version runs the async function in a new asyncio event loop. If
    the function takes a ``client`` argument and none is passed, a temporary
    ScotAQClient is created and closed afterwards.

    Example:
        >>> @add_sync_version
        ... async def fetch_something(client: Optional[ScotAQClient] = None):
        ...     ...

        >>> # Async usage
        >>> result = await fetch_something()

        >>> # Sync usage
        >>> result = fetch_something.sync()
    """
    # Import here to avoid circular imports
    from .sync import AsyncSyncBridge

    takes_client = "client" in inspect.signature(async_fn).parameters

    def sync_wrapper(*args: Any, **kwargs: Any) -> R:
        """Synchronous wrapper for the async function."""
        return AsyncSyncBridge.run_async(
            async_fn, args=args, kwargs=kwargs, provide_client=takes_client
        )

    async_fn.sync = sync_wrapper  # type: ignore
    return async_fn
