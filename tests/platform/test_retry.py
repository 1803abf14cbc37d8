import pytest

from app.platform.errors import ConfigurationError, RequestTimeoutError
from app.platform.retry import RetryPolicy


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def flaky(failures, error_factory, result="ok"):
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error_factory()
        return result

    return operation, calls


class TestRetryPolicy:
    def test_max_attempts_counts_first_try(self):
        assert RetryPolicy(max_retries=3).max_attempts == 4

    def test_backoff_matches_exponential_formula(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=30.0)
        assert [policy.backoff(a) for a in range(6)] == [1, 2, 4, 8, 16, 30]

    @pytest.mark.asyncio
    async def test_retries_transient_errors_until_success(self):
        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=3, base_delay=1.0, max_delay=30.0, sleep=sleep)
        operation, calls = flaky(2, lambda: RequestTimeoutError("Request timed out after 10s"))

        assert await policy.run(operation) == "ok"
        assert calls["count"] == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=2, sleep=sleep)
        operation, calls = flaky(10, lambda: RequestTimeoutError("Request timed out after 10s"))

        with pytest.raises(RequestTimeoutError):
            await policy.run(operation)
        assert calls["count"] == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_non_transient_errors_fail_immediately(self):
        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=3, sleep=sleep)
        operation, calls = flaky(1, lambda: ConfigurationError("token missing"))

        with pytest.raises(ConfigurationError):
            await policy.run(operation)
        assert calls["count"] == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_custom_transient_predicate(self):
        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=1, is_transient=lambda e: isinstance(e, KeyError), sleep=sleep)
        operation, calls = flaky(1, lambda: KeyError("x"))

        assert await policy.run(operation) == "ok"
        assert calls["count"] == 2
