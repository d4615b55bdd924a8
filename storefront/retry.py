"""
Retry utilities with exponential backoff and jitter.

Only transient contention (lock waits, stale versions) is retried. Business
rule failures propagate on the first attempt.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, Field

from storefront.errors import ConcurrencyConflictError, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Bounded retry settings.

    Args:
        attempts: Retries after the first try (0 disables retrying)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay, in seconds
        exponential_base: Growth factor between consecutive delays
        jitter: Add up to 25% random jitter to each delay
    """

    attempts: int = Field(default=3, ge=0)
    base_delay: float = Field(default=0.05, ge=0)
    max_delay: float = Field(default=1.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        delay = self.base_delay * (self.exponential_base**attempt)
        if self.jitter:
            delay += delay * 0.25 * random.random()
        return min(delay, self.max_delay)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str = "operation",
) -> T:
    """Run ``operation``, retrying on TransientError.

    Raises:
        ConcurrencyConflictError: when every attempt hit contention
    """
    for attempt in range(policy.attempts + 1):
        try:
            return await operation()
        except TransientError as e:
            if attempt == policy.attempts:
                logger.error(
                    "Contention not resolved within retry budget",
                    extra={
                        "operation": description,
                        "attempts": attempt + 1,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                raise ConcurrencyConflictError(
                    f"Could not complete {description} because of "
                    "concurrent updates; retry the request",
                    {"operation": description, "attempts": attempt + 1},
                ) from e

            delay = policy.delay_for(attempt)
            logger.info(
                "Transient contention, retrying",
                extra={
                    "operation": description,
                    "attempt": attempt + 1,
                    "delay_seconds": round(delay, 4),
                    "error_type": type(e).__name__,
                },
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
