"""Retry/backoff decorator for async API calls.

Usage::

    from fingate.http.retry import RetryConfig, RetryableError, with_retry

    @with_retry(RetryConfig(max_retries=2, base_delay=0.5))
    async def fetch_data():
        try:
            return await client.get(url)
        except HttpError as e:
            if e.is_retryable:
                raise RetryableError(str(e), retry_after=e.retry_after) from e
            raise

The decorator retries on ``RetryableError`` with exponential backoff plus
jitter, honours a server-provided ``retry_after`` when one is attached, and
raises immediately on ``NonRetryableError`` or any other exception type.
When retries are exhausted the original cause is re-raised, not the wrapper.
"""

from __future__ import annotations

import asyncio
import functools
import random
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from ..core.logging import get_logger

_T = TypeVar("_T")

logger = get_logger(__name__)


class RetryableError(Exception):
    """Raise inside a ``@with_retry``-decorated function to trigger a retry.

    Attributes:
        retry_after: Server-advised delay in seconds; overrides the backoff schedule.
    """

    def __init__(self, message: str = "", retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class NonRetryableError(Exception):
    """Raise inside a ``@with_retry``-decorated function to bypass all retries."""


@dataclass
class RetryConfig:
    """Configuration for exponential-backoff retry behaviour.

    Attributes:
        max_retries: Number of *additional* attempts after the first failure.
            Total attempts = max_retries + 1.
        base_delay: Initial sleep duration in seconds before the first retry.
        max_delay: Upper bound on sleep duration regardless of backoff growth.
        backoff_factor: Multiplier applied to the delay after each retry.
        jitter: Fraction of the delay added or subtracted at random (0.1 = +/-10%).
    """

    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: float = 0.1

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryConfig":
        """Build a config from ``Settings`` fetch-policy fields."""
        return cls(
            max_retries=max(0, int(settings.http_retry_attempts) - 1),
            base_delay=float(settings.http_retry_min_delay),
            max_delay=float(settings.http_retry_max_delay),
            jitter=float(settings.http_retry_jitter),
        )

    def delay_for(self, attempt: int, retry_after: float | None = None) -> float:
        """Return sleep duration (seconds) before retry number ``attempt`` (0-indexed).

        A server-provided ``retry_after`` is used as-is, without jitter or cap.
        """
        if retry_after is not None:
            return max(0.0, float(retry_after))
        delay = min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)
        if self.jitter:
            delay *= 1 + random.uniform(-self.jitter, self.jitter)
        return max(0.0, min(delay, self.max_delay))


def with_retry(config: RetryConfig) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator factory - wraps an async function with retry/backoff logic.

    Args:
        config: ``RetryConfig`` controlling retry count and delay schedule.

    Raises:
        The ``__cause__`` of the last ``RetryableError`` once retries are
        exhausted (or the ``RetryableError`` itself when it has no cause).
        NonRetryableError: Raised immediately, bypassing all retries.
        Any other exception: Propagated immediately without retrying.
    """
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(config.max_retries + 1):
                try:
                    return await fn(*args, **kwargs)
                except NonRetryableError:
                    raise
                except RetryableError as e:
                    if attempt >= config.max_retries:
                        if e.__cause__ is not None:
                            raise e.__cause__ from None
                        raise
                    delay = config.delay_for(attempt, e.retry_after)
                    logger.info(
                        "Retrying after transient failure",
                        extra={
                            "function": fn.__name__,
                            "attempt": attempt + 1,
                            "delay": round(delay, 3),
                            "reason": str(e),
                        },
                    )
                    await asyncio.sleep(delay)
        return wrapper
    return decorator
