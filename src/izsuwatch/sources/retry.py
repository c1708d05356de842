"""Retry policy shared by the network fetchers."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from izsuwatch.config import RETRY_BASE_DELAY, RETRY_MAX_DELAY, RETRY_MAX_JITTER
from izsuwatch.sources.base import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(
    attempt: int,
    base: float = RETRY_BASE_DELAY,
    cap: float = RETRY_MAX_DELAY,
    rng: Callable[[], float] = random.random,
) -> float:
    """Exponential backoff with jitter.

    ``min(base * 2**attempt, cap) + rng() * 0.5`` seconds; the jitter lies in
    [0, 0.5) for an ``rng`` returning values in [0, 1).

    Example:
        >>> backoff_delay(2, rng=lambda: 0.0)
        4.0
    """
    return min(base * (2 ** attempt), cap) + rng() * RETRY_MAX_JITTER


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int,
    description: str,
    base: float = RETRY_BASE_DELAY,
    cap: float = RETRY_MAX_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Run ``operation`` up to ``max_retries`` times.

    Non-retryable FetchErrors (client errors, storage, no data) are raised
    immediately; retryable ones are retried after ``backoff_delay``.

    Raises:
        FetchError: The last error once attempts are exhausted
    """
    max_retries = max(1, max_retries)
    last_error: Optional[FetchError] = None
    for attempt in range(max_retries):
        try:
            return await operation()
        except FetchError as e:
            last_error = e
            if not e.retryable:
                raise
            if attempt < max_retries - 1:
                delay = backoff_delay(attempt, base, cap, rng)
                logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{max_retries}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await sleep(delay)
    logger.error(f"{description} failed after {max_retries} attempts: {last_error}")
    raise last_error
