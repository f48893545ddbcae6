"""Bounded retry with exponential backoff for upstream calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from daybook.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def exponential_backoff(initial_delay: float = 1.0, factor: float = 2.0) -> Callable[[int], float]:
    """Backoff schedule: initial_delay * factor ** attempt_index.

    Strictly increasing for initial_delay > 0 and factor > 1.
    """
    if initial_delay <= 0 or factor <= 1:
        raise ValueError("backoff needs initial_delay > 0 and factor > 1")

    def _delay(attempt_index: int) -> float:
        return initial_delay * (factor**attempt_index)

    return _delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    is_retryable: Callable[[BaseException], bool],
    max_attempts: int = 3,
    backoff: Callable[[int], float] | None = None,
    *,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    label: str = "upstream call",
) -> T:
    """
    Run ``operation`` until it succeeds or fails with a non-retryable error.

    Args:
        operation: Zero-arg coroutine factory; called once per attempt
        is_retryable: Predicate deciding whether an error is transient
        max_attempts: Total attempts including the first
        backoff: Maps attempt index (0-based) to a delay in seconds
        sleep: Awaitable sleep (defaults to asyncio.sleep)
        label: Name used in log lines

    Returns:
        The first successful result

    Raises:
        The last error when attempts are exhausted, or the first
        non-retryable error immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    backoff = backoff or exponential_backoff()
    sleep = sleep or asyncio.sleep

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e) or attempt + 1 >= max_attempts:
                raise
            delay = backoff(attempt)
            logger.warning(
                f"{label} attempt {attempt + 1}/{max_attempts} failed "
                f"({type(e).__name__}), retrying in {delay}s"
            )
            await sleep(delay)
            attempt += 1
