"""Tests for bounded retry with backoff."""

import pytest

from src.resilience import (
    MaxRetriesExceeded,
    RetryConfig,
    RetryStrategy,
    call_with_retry,
    compute_delay,
    retry,
)

NO_WAIT = RetryConfig(base_delay=0.0, max_delay=0.0, jitter_max=0.0)


class Flaky:
    """Coroutine callable failing a fixed number of times before succeeding."""

    def __init__(self, failures: int, exc: Exception = ConnectionError("down")):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self, value="ok"):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return value


class TestComputeDelay:
    """Tests for backoff schedules."""

    def test_exponential(self):
        config = RetryConfig(base_delay=1.0, max_delay=100.0, jitter_max=0.0)
        assert [compute_delay(n, config) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_linear(self):
        config = RetryConfig(base_delay=0.5, max_delay=100.0, jitter_max=0.0, strategy=RetryStrategy.LINEAR)
        assert [compute_delay(n, config) for n in range(3)] == [0.5, 1.0, 1.5]

    def test_constant(self):
        config = RetryConfig(base_delay=2.0, jitter_max=0.0, strategy=RetryStrategy.CONSTANT)
        assert compute_delay(5, config) == 2.0

    def test_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=3.0, jitter_max=0.0)
        assert compute_delay(10, config) == 3.0

    def test_jitter_bounded(self):
        config = RetryConfig(base_delay=1.0, max_delay=100.0, jitter_max=0.5)
        for _ in range(20):
            assert 1.0 <= compute_delay(0, config) <= 1.5


class TestCallWithRetry:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_first_try(self):
        func = Flaky(0)
        assert await call_with_retry(func, "x", config=NO_WAIT) == "x"
        assert func.calls == 1

    @pytest.mark.asyncio
    async def test_recovers(self):
        func = Flaky(2)
        assert await call_with_retry(func, config=NO_WAIT) == "ok"
        assert func.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted(self, caplog):
        func = Flaky(10)
        with pytest.raises(MaxRetriesExceeded) as exc:
            await call_with_retry(func, config=NO_WAIT)
        assert exc.value.attempts == 3
        assert isinstance(exc.value.last_exception, ConnectionError)
        assert func.calls == 3
        assert "retries exhausted" in caplog.text

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self):
        func = Flaky(1, exc=KeyError("nope"))
        with pytest.raises(KeyError):
            await call_with_retry(func, config=NO_WAIT)
        assert func.calls == 1

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        func = Flaky(1)
        with pytest.raises(MaxRetriesExceeded):
            await call_with_retry(func, config=RetryConfig(max_retries=0))
        assert func.calls == 1

    @pytest.mark.asyncio
    async def test_decorator(self):
        calls = []

        @retry(RetryConfig(max_retries=1, base_delay=0.0, max_delay=0.0, jitter_max=0.0))
        async def fetch(symbol):
            calls.append(symbol)
            if len(calls) == 1:
                raise TimeoutError("slow")
            return symbol.upper()

        assert await fetch("aapl") == "AAPL"
        assert calls == ["aapl", "aapl"]
        assert fetch._retry_config.max_retries == 1
