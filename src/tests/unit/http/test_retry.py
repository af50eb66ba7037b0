"""Tests for the with_retry decorator and RetryConfig delay schedule."""

import pytest

from fingate.core.config import Settings
from fingate.http.retry import NonRetryableError, RetryableError, RetryConfig, with_retry


class _Boom(Exception):
    pass


class TestRetryConfig:
    def test_delay_grows_exponentially_without_jitter(self) -> None:
        config = RetryConfig(base_delay=0.5, backoff_factor=2.0, jitter=0.0)
        assert [config.delay_for(i) for i in range(4)] == [0.5, 1.0, 2.0, 4.0]

    def test_delay_capped(self) -> None:
        config = RetryConfig(base_delay=1.0, max_delay=3.0, jitter=0.0)
        assert config.delay_for(10) == 3.0

    def test_jitter_stays_within_bounds(self) -> None:
        config = RetryConfig(base_delay=1.0, jitter=0.1)
        for _ in range(50):
            assert 0.9 <= config.delay_for(0) <= 1.1

    def test_retry_after_used_verbatim(self) -> None:
        config = RetryConfig(max_delay=5.0)
        assert config.delay_for(0, retry_after=30.0) == 30.0

    def test_from_settings_counts_total_attempts(self) -> None:
        settings = Settings(_env_file=None, FINGATE_HTTP_RETRY_ATTEMPTS=4, FINGATE_HTTP_RETRY_MIN_DELAY=0.25)
        config = RetryConfig.from_settings(settings)
        assert config.max_retries == 3
        assert config.base_delay == 0.25


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, retry_sleep) -> None:
        calls = 0

        @with_retry(RetryConfig(max_retries=2, jitter=0.0))
        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise RetryableError("try again")
            return "ok"

        assert await flaky() == "ok"
        assert calls == 3
        assert [c.args[0] for c in retry_sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_cause(self, retry_sleep) -> None:
        calls = 0

        @with_retry(RetryConfig(max_retries=2))
        async def always_fails() -> None:
            nonlocal calls
            calls += 1
            try:
                raise _Boom("upstream")
            except _Boom as e:
                raise RetryableError("wrapped") from e

        with pytest.raises(_Boom, match="upstream"):
            await always_fails()
        assert calls == 3
        assert retry_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_exhaustion_without_cause_raises_wrapper(self) -> None:
        @with_retry(RetryConfig(max_retries=0))
        async def fails() -> None:
            raise RetryableError("bare")

        with pytest.raises(RetryableError, match="bare"):
            await fails()

    @pytest.mark.asyncio
    async def test_non_retryable_bypasses_retries(self, retry_sleep) -> None:
        calls = 0

        @with_retry(RetryConfig(max_retries=5))
        async def fails() -> None:
            nonlocal calls
            calls += 1
            raise NonRetryableError("stop")

        with pytest.raises(NonRetryableError):
            await fails()
        assert calls == 1
        retry_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate_immediately(self) -> None:
        calls = 0

        @with_retry(RetryConfig(max_retries=5))
        async def fails() -> None:
            nonlocal calls
            calls += 1
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await fails()
        assert calls == 1

    @pytest.mark.asyncio
    async def test_retry_after_overrides_backoff(self, retry_sleep) -> None:
        calls = 0

        @with_retry(RetryConfig(max_retries=1))
        async def limited() -> str:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RetryableError("429", retry_after=12.0)
            return "ok"

        assert await limited() == "ok"
        retry_sleep.assert_awaited_once_with(12.0)
