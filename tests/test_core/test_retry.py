"""Unit tests for the exponential-backoff retry wrapper.

Test Strategy:
1. Non-retryable errors are attempted exactly once
2. Retryable errors are retried up to max_attempts, then re-raised
3. Delays follow initial_delay * multiplier ** (n - 1), capped at max_delay
"""
from unittest.mock import AsyncMock

import pytest

from tournoi.core.errors import ApiError
from tournoi.core.retry import with_retry


class TestWithRetry:
    """Retry wrapper behaviour."""

    @pytest.mark.asyncio
    async def test_returns_first_success(self, sleeper):
        operation = AsyncMock(return_value="ok")

        assert await with_retry(operation, sleep=sleeper) == "ok"
        assert operation.await_count == 1
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_non_retryable_error_attempted_once(self, sleeper):
        """A 404 should not be retried."""
        operation = AsyncMock(side_effect=ApiError.not_found("missing"))

        with pytest.raises(ApiError) as exc_info:
            await with_retry(operation, sleep=sleeper)

        assert exc_info.value.status_code == 404
        assert operation.await_count == 1
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_foreign_exception_not_retried(self, sleeper):
        operation = AsyncMock(side_effect=KeyError("x"))

        with pytest.raises(KeyError):
            await with_retry(operation, sleep=sleeper)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_retryable_error_then_success(self, sleeper):
        """A 503 followed by a success returns the success after one backoff."""
        operation = AsyncMock(side_effect=[ApiError.service_unavailable("down"), "ok"])

        assert await with_retry(operation, sleep=sleeper) == "ok"
        assert operation.await_count == 2
        assert sleeper.delays == [1.0]

    @pytest.mark.asyncio
    async def test_exhausted_attempts_reraise_last_error(self, sleeper):
        errors = [ApiError.upstream(f"fail {n}") for n in range(3)]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(ApiError) as exc_info:
            await with_retry(operation, sleep=sleeper)

        assert exc_info.value is errors[-1]
        assert operation.await_count == 3
        assert sleeper.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, sleeper):
        operation = AsyncMock(side_effect=ApiError.timeout("slow"))

        with pytest.raises(ApiError):
            await with_retry(
                operation,
                max_attempts=6,
                initial_delay=1.0,
                max_delay=5.0,
                multiplier=2,
                sleep=sleeper,
            )

        assert operation.await_count == 6
        assert sleeper.delays == [1.0, 2.0, 4.0, 5.0, 5.0]

    @pytest.mark.asyncio
    async def test_custom_predicate(self, sleeper):
        operation = AsyncMock(side_effect=[ValueError("flaky"), "ok"])

        result = await with_retry(
            operation,
            is_retryable=lambda e: isinstance(e, ValueError),
            sleep=sleeper,
        )

        assert result == "ok"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_plain_callable_returning_coroutine(self, sleeper):
        """A lambda wrapping a coroutine is awaited and retried like a coroutine function."""
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise ApiError.service_unavailable("down")
            return "ok"

        result = await with_retry(lambda: flaky(), sleep=sleeper)

        assert result == "ok"
        assert len(calls) == 2
        assert sleeper.delays == [1.0]
