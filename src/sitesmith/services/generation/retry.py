"""Retry Policy
===============

Exponential backoff for transient capacity failures.

Only ``CapacityError`` is retried; every other exception propagates on the
first occurrence. The delay doubles after each failed attempt and is not
capped here, callers bound the total wait through ``max_attempts``.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, TypeVar

from .errors import CapacityError

logger = logging.getLogger(__name__)

T = TypeVar('T')

Sleep = Callable[[float], Awaitable[None]]


def backoff_schedule(max_attempts: int, initial_delay: float) -> List[float]:
    """Delays slept between attempts (one fewer than ``max_attempts``)."""
    return [initial_delay * (2 ** i) for i in range(max(max_attempts - 1, 0))]


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    *,
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Run ``operation`` retrying capacity failures with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total attempts including the first one
        initial_delay: Delay before the second attempt, in seconds
        sleep: Awaitable sleep function (injected by tests)
        label: Name used in log lines

    Returns:
        The operation result

    Raises:
        The last CapacityError once attempts are exhausted, or any other
        exception immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    delay = initial_delay
    attempt = 1
    while True:
        try:
            return await operation()
        except CapacityError as exc:
            if attempt >= max_attempts:
                logger.error(f"{label}: capacity retries exhausted after {attempt} attempts: {exc}")
                raise
            logger.warning(
                f"{label}: capacity failure on attempt {attempt}/{max_attempts}: {exc}. "
                f"Retrying in {delay:.1f}s..."
            )
            await sleep(delay)
            delay *= 2
            attempt += 1


__all__ = ['with_retry', 'backoff_schedule']
