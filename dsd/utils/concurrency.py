"""
Concurrency helpers.
"""

import asyncio
import logging
from typing import Awaitable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def first_successful(awaitables: Iterable[Awaitable[Optional[T]]]) -> Optional[T]:
    """
    Resolve with the first awaitable that finishes with a non-None result.

    Awaitables that raise or return None are dropped from the race. Once a
    winner is found, every task still in flight is cancelled.

    Args:
        awaitables: Coroutines or tasks to race

    Returns:
        The winning result, or None if every awaitable failed
    """
    pending = {asyncio.ensure_future(aw) for aw in awaitables}
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task.cancelled():
                    continue
                error = task.exception()
                if error is not None:
                    logger.warning(f"Raced task failed: {error!r}")
                    continue
                result = task.result()
                if result is not None:
                    return result
        return None
    finally:
        for task in pending:
            task.cancel()
