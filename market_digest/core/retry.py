"""Exponential-backoff retry decorator for flaky upstream calls."""

import time
from functools import wraps
from typing import Any, Callable, Iterator, Tuple, Type, TypeVar, cast

from market_digest.core.logger import logger

F = TypeVar('F', bound=Callable[..., Any])


def backoff_delays(initial_delay: float, max_delay: float) -> Iterator[float]:
    """Yield ``initial_delay``, doubling each time, never above ``max_delay``."""
    delay = initial_delay
    while True:
        yield min(delay, max_delay)
        delay *= 2


def with_retries(
    max_retries: int = 3,
    initial_delay: float = 1,
    max_delay: float = 10,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[F], F]:
    """
    Retry the wrapped call on ``retry_on`` errors, sleeping between attempts.

    Args:
        max_retries (int): Retries after the first attempt.
        initial_delay (float): Seconds before the first retry; doubles afterwards.
        max_delay (float): Cap for any single sleep.
        retry_on (tuple): Exception types worth retrying. Others propagate at once.

    Returns:
        Callable: The decorated function. The last error is re-raised once
        retries are exhausted.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(initial_delay, max_delay)
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    attempt += 1
                    if attempt > max_retries:
                        logger.error(f"{func.__name__}: giving up after {max_retries} retries: {e}")
                        raise
                    delay = next(delays)
                    logger.warning(
                        f"{func.__name__}: attempt {attempt}/{max_retries + 1} failed ({e}); "
                        f"retrying in {delay}s"
                    )
                    time.sleep(delay)
        return cast(F, wrapper)
    return decorator
