"""Async utilities for bridging blocking HTTP and disk calls into the event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a worker thread without blocking the loop.

    Calls are awaited one at a time by the sync engine, so no more than one
    blocking call is ever in flight per pass.

    Example:
        client = ConfluenceClient(config)
        pages = await run_sync(client.search_pages, "type = page", 100)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
