"""Bounded retry for optimistic (compare-and-swap) writes.

An attempt reads the aggregate, validates it, and issues a conditional write.
It returns None when the conditional write matched zero rows (another writer
changed the row in between) and a value otherwise. Domain errors raised by the
attempt propagate immediately and are never retried.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.fp_common.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_on_conflict(
    attempt: Callable[[], Awaitable[T | None]],
    max_retries: int,
    on_exhausted: Callable[[], ConflictError],
) -> T:
    """Run ``attempt`` until it succeeds, at most ``max_retries`` times.

    Raises the ConflictError built by ``on_exhausted`` when every attempt lost
    its race.
    """
    for n in range(1, max_retries + 1):
        result = await attempt()
        if result is not None:
            return result
        logger.info("Optimistic write lost the race (attempt %d/%d)", n, max_retries)
    raise on_exhausted()
