"""Retry with exponential backoff and jitter for store calls."""

import functools
import random
import time
from typing import Callable, Iterable, Tuple, Type, TypeVar, ParamSpec

import structlog

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def retry(
    *,
    max_attempts: int = 3,
    backoff_base: float = 0.5,
    exceptions: Iterable[Type[BaseException]] = (Exception,),
    jitter: bool = True,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator retrying a blocking call on the given exception types.

    The wait before attempt n+1 is backoff_base * 2 ** (n - 1), scaled by
    a random factor in [0.5, 1.5] when jitter is on. The last exception is
    re-raised once max_attempts calls have failed (a value below 1 still
    makes one call).
    """

    exc_tuple: Tuple[Type[BaseException], ...] = tuple(exceptions)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except exc_tuple as exc:
                    if attempt >= max_attempts:
                        raise
                    wait = backoff_base * 2 ** (attempt - 1)
                    if jitter:
                        wait *= random.uniform(0.5, 1.5)
                    logger.warning(
                        "retrying_store_call",
                        function=func.__name__,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        wait_seconds=wait,
                        error=str(exc),
                    )
                    time.sleep(wait)
                    attempt += 1

        return wrapper

    return decorator


__all__ = ["retry"]
