"""Running the async reconciliation runner from synchronous entry points."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

__all__ = ["FETCH_THREAD_PREFIX", "run_fetch_bound"]

FETCH_THREAD_PREFIX = "tracker-sync-fetch"


def run_fetch_bound(coro: Coroutine[Any, Any, T], max_workers: int = 3) -> T:
    """Run a coroutine whose blocking work goes through ``asyncio.to_thread``.

    The loop gets a private thread pool sized for one fetch per source. When
    the coroutine succeeds the pool is drained normally. When it raises (a
    fetch failed or the fetch timeout expired), queued fetches are cancelled
    and workers still stuck in a source call are left behind rather than
    joined, so the error reaches the caller straight away.

    Args:
        coro: Coroutine to execute, typically ``ReconciliationRunner.run``.
        max_workers: Size of the fetch pool.

    Returns:
        Result of the coroutine.

    Raises:
        Whatever the coroutine raises.

    """
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=FETCH_THREAD_PREFIX)
    loop = asyncio.new_event_loop()
    loop.set_default_executor(executor)
    completed = False
    try:
        asyncio.set_event_loop(loop)
        result = loop.run_until_complete(coro)
        completed = True
        return result
    finally:
        with contextlib.suppress(Exception):
            loop.run_until_complete(loop.shutdown_asyncgens())
        if completed:
            executor.shutdown(wait=True)
        else:
            logger.debug("Abandoning pending snapshot fetches")
            executor.shutdown(wait=False, cancel_futures=True)
        asyncio.set_event_loop(None)
        loop.close()
