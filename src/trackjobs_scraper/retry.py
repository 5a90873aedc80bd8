import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Maps (1-based failed attempt, exception) to seconds to wait before the next attempt.
DelayFunction = Callable[[int, BaseException], float]


def linear_backoff(base_delay: float) -> DelayFunction:
    """base, 2*base, 3*base, ..."""
    return lambda attempt, _exc: base_delay * attempt


def exponential_backoff(base_delay: float) -> DelayFunction:
    """2*base, 4*base, 8*base, ..."""
    return lambda attempt, _exc: base_delay * (2**attempt)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay_for: DelayFunction,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """
    Await `operation` up to `attempts` times, sleeping `delay_for(attempt, exc)`
    between failed attempts. Exceptions outside `retry_on` propagate immediately;
    the last retryable exception is re-raised once attempts are exhausted.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt == attempts:
                logger.error(f"{description} failed after {attempts} attempts: {e}")
                raise
            backoff = delay_for(attempt, e)
            logger.warning(
                f"{description} attempt {attempt}/{attempts} failed: {e}. "
                f"Retrying in {backoff}s..."
            )
            await asyncio.sleep(backoff)

    raise AssertionError("unreachable")
