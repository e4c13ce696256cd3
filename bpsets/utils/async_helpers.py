# bpsets/utils/async_helpers.py
"""
Async utilities for calling into blocking SDKs and optional coroutines.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def maybe_await(value: Any) -> Any:
    """Await value if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def call_blocking(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Call fn without blocking the event loop.

    Coroutine functions are awaited directly. Plain callables (boto3 client
    methods) run in the default thread pool via asyncio.to_thread. A plain
    callable that hands back an awaitable is awaited as well.
    """
    if inspect.iscoroutinefunction(fn):
        return await fn(*args, **kwargs)
    result = await asyncio.to_thread(fn, *args, **kwargs)
    return await maybe_await(result)


async def run_with_timeout(
    awaitable: Awaitable[T],
    timeout: Optional[float],
    name: Optional[str] = None,
) -> T:
    """
    Await with an optional timeout.

    A timeout of None or <= 0 waits indefinitely. On expiry the awaitable is
    cancelled and asyncio.TimeoutError propagates to the caller.
    """
    if not timeout or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[AsyncTask:{name or 'unknown'}] Timed out after {timeout}s")
        raise
