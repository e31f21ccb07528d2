"""Retry logic for MongoDB operations.

Repository methods that talk to the server are wrapped with
``retry_on_connection_failure`` so a restarting or briefly unreachable
database does not fail a whole day's processing run.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (ConnectionFailure, ServerSelectionTimeoutError)


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Seconds to wait after a failed attempt (0-based), doubling each time."""
    return base_delay * (2**attempt)


def retry_on_connection_failure(
    max_retries: int = 5,
    base_delay: float = 1.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry a storage operation with exponential backoff.

    Only connection-level failures are retried. Query and write errors
    propagate on the first attempt.

    Args:
        max_retries: Total number of attempts before giving up.
        base_delay: Delay in seconds after the first failure.

    Returns:
        Decorator for repository methods.
    """
    attempts = max(1, max_retries)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        operation = getattr(func, "__qualname__", repr(func))

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt == attempts - 1:
                        logger.error(f"{operation} failed after {attempts} attempts: {e}")
                        raise
                    delay = backoff_delay(attempt, base_delay)
                    logger.warning(
                        f"{operation} lost the database connection "
                        f"(attempt {attempt + 1}/{attempts}), retrying in {delay:.1f}s: {e}"
                    )
                    time.sleep(delay)
            raise RuntimeError(f"{operation} exited the retry loop without a result")

        return wrapper

    return decorator


__all__ = ["RETRYABLE_ERRORS", "backoff_delay", "retry_on_connection_failure"]
