"""
Tests for bounded retry of transient contention.
"""

from unittest.mock import AsyncMock

import pytest

from storefront.errors import (
    ConcurrencyConflictError,
    LockTimeoutError,
    StaleVersionError,
    ValidationError,
)
from storefront.retry import RetryPolicy, run_with_retry


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(attempts=2, base_delay=0.0, jitter=False)


class TestRunWithRetry:
    @pytest.mark.asyncio
    async def test_returns_first_success(self, policy: RetryPolicy) -> None:
        operation = AsyncMock(return_value="done")
        assert await run_with_retry(operation, policy) == "done"
        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, policy: RetryPolicy) -> None:
        operation = AsyncMock(
            side_effect=[
                StaleVersionError("stale"),
                LockTimeoutError("busy"),
                42,
            ]
        )
        assert await run_with_retry(operation, policy) == 42
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_exhaustion_becomes_concurrency_conflict(
        self, policy: RetryPolicy
    ) -> None:
        operation = AsyncMock(side_effect=StaleVersionError("stale"))
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await run_with_retry(operation, policy, "stock update")

        assert operation.await_count == 3
        assert exc_info.value.details == {
            "operation": "stock update",
            "attempts": 3,
        }
        assert isinstance(exc_info.value.__cause__, StaleVersionError)

    @pytest.mark.asyncio
    async def test_business_errors_are_not_retried(
        self, policy: RetryPolicy
    ) -> None:
        operation = AsyncMock(side_effect=ValidationError("bad"))
        with pytest.raises(ValidationError):
            await run_with_retry(operation, policy)
        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zero_attempts_means_single_try(self) -> None:
        operation = AsyncMock(side_effect=LockTimeoutError("busy"))
        with pytest.raises(ConcurrencyConflictError):
            await run_with_retry(operation, RetryPolicy(attempts=0))
        operation.assert_awaited_once()


class TestRetryPolicy:
    def test_delays_grow_exponentially(self) -> None:
        policy = RetryPolicy(base_delay=0.1, max_delay=10.0, jitter=False)
        assert [policy.delay_for(n) for n in range(3)] == pytest.approx(
            [0.1, 0.2, 0.4]
        )

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy(base_delay=1.0, max_delay=1.5, jitter=True)
        assert policy.delay_for(5) == 1.5

    def test_jitter_adds_at_most_a_quarter(self) -> None:
        policy = RetryPolicy(base_delay=1.0, max_delay=10.0, jitter=True)
        for _ in range(20):
            assert 1.0 <= policy.delay_for(0) <= 1.25
