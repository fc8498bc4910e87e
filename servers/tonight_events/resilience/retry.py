"""Retry with exponential backoff for page fetches and model calls."""

import asyncio
import random
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
import structlog

logger = structlog.get_logger()

T = TypeVar("T")

# Status codes worth another attempt: rate limiting and server-side failures
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_retryable(error: Exception) -> bool:
    """Transport errors and retryable HTTP statuses are retried; the rest fail fast."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(error, httpx.TransportError)


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    should_retry: Callable[[Exception], bool] = is_retryable,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for async retry with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including the first)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Add randomness to delay so parallel runs do not align
        should_retry: Predicate deciding whether an exception is retried

    Returns:
        Decorated async function with retry logic
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not should_retry(e) or attempt == max_attempts - 1:
                        if attempt > 0:
                            logger.error(
                                "retry_exhausted",
                                function=func.__name__,
                                attempts=attempt + 1,
                                error=str(e),
                            )
                        raise

                    delay = min(base_delay * (exponential_base**attempt), max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()

                    logger.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=round(delay, 2),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("retry_with_backoff requires max_attempts >= 1")

        return wrapper  # type: ignore

    return decorator
