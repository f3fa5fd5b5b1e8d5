import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from memebubbles.parsers.exceptions import TransientNetworkError

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay_sec: float) -> float:
    """Delay before retrying after ``attempt`` (1-based): base, 2*base, 4*base..."""
    return base_delay_sec * (2 ** (attempt - 1))


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay_sec: float = 0.2,
    label: str = "",
) -> T:
    """Run ``operation`` up to ``max_attempts`` times.

    Only TransientNetworkError is retried; anything else propagates on the
    first occurrence. The last transient error is re-raised at the ceiling.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except TransientNetworkError as e:
            if attempt >= max_attempts:
                logger.debug(f"[RETRY] {label} gave up after {attempt}/{max_attempts}: {e}")
                raise
            delay = backoff_delay(attempt, base_delay_sec)
            logger.debug(f"[RETRY] {label} {e.reason}, attempt {attempt}/{max_attempts}, retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
            attempt += 1
