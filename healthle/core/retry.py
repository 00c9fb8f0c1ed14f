"""
Retries for reads that race an asynchronous writer.

An order created by the checkout flow may not be visible yet when the
browser returns from the payment page; lookups like that are wrapped in
``retry_with_backoff`` and raise a "not ready" exception until the row
shows up.
"""

import asyncio
import functools
import logging
import random
from typing import Any, Callable, Iterator, Tuple, Type

logger = logging.getLogger(__name__)


def backoff_delays(
    retries: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = False,
) -> Iterator[float]:
    """
    Yield the wait before each retry: ``base_delay * exponential_base**n``,
    capped at ``max_delay``, optionally spread by ±20%.
    """
    for n in range(retries):
        delay = min(base_delay * exponential_base ** n, max_delay)
        if jitter:
            delay = max(0.0, delay * random.uniform(0.8, 1.2))
        yield delay


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Retry an async function while it raises one of ``exceptions``.

    The call is made once plus up to ``max_retries`` more times; the last
    exception is re-raised. Other exceptions propagate immediately.

    Example:
        @retry_with_backoff(max_retries=2, base_delay=1.0, jitter=False,
                            exceptions=(OrderNotReadyError,))
        async def find_session_order(orders, session_id):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            delays = backoff_delays(max_retries, base_delay, max_delay, exponential_base, jitter)
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    delay = next(delays, None)
                    if delay is None:
                        logger.warning(
                            f"{func.__name__} gave up: {e}",
                            extra={"operation": func.__name__, "attempts": attempt},
                        )
                        raise
                    logger.info(
                        f"{func.__name__} not ready ({type(e).__name__}), retrying",
                        extra={
                            "operation": func.__name__,
                            "attempt": attempt,
                            "delay_seconds": round(delay, 2),
                        },
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper
    return decorator
