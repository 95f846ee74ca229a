"""
Bounded retry with backoff for transient write races.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 0.1,
    max_delay: float = 2.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
) -> T:
    """
    Run an async callable, retrying on the given exceptions.

    Args:
        func: Coroutine factory to execute
        max_retries: Maximum number of retries after the first attempt
        initial_delay: Initial delay in seconds
        max_delay: Upper bound for the delay in seconds
        exponential_base: Multiplier applied to the delay after each attempt
        exceptions: Exceptions that trigger a retry

    Returns:
        Result of the callable

    Raises:
        The last caught exception once retries are exhausted
    """
    delay = initial_delay

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except exceptions as e:
            if attempt == max_retries:
                raise
            logger.warning(f"Transient failure (attempt {attempt + 1}/{max_retries + 1}): {e}")
            await asyncio.sleep(delay)
            delay = min(delay * exponential_base, max_delay)

    raise RuntimeError("unreachable")
