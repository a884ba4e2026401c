"""Async utilities for bridging blocking git work to async MCP handlers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Every ``ensure_local`` call is a chain of blocking ``git`` subprocesses;
    tool handlers run it through here so the stdio server keeps serving.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        # In MCP tool handler:
        result = await run_sync(ensure_local, request, config, git)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
