"""
Runs a bounded set of coroutines concurrently and keeps the first acceptable result.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


async def first_success(
    awaitables: Iterable[Awaitable[T]],
    accept: Callable[[T], bool] = lambda _: True,
) -> Optional[T]:
    """
    Returns the first result, in completion order, that finished without an
    exception and satisfies `accept`. Failed or rejected results are ignored.
    Tasks still running once a winner is found are cancelled.

    Returns:
        The winning result, or None if nothing qualified.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return None

    try:
        for next_done in asyncio.as_completed(tasks):
            try:
                result = await next_done
            except Exception as e:
                log.debug(f"Candidate failed: {e}")
                continue
            if accept(result):
                return result
        return None
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
            elif not task.cancelled():
                # Marks a loser's exception as retrieved
                task.exception()
