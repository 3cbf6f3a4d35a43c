"""Tests for retry utilities."""

import httpx
import pytest

from tasker.scheduler import retry as retry_module
from tasker.scheduler.retry import RetryConfig, is_transport_error, with_retry


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    """Record backoff sleeps instead of waiting."""
    recorded: list[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr(retry_module.asyncio, "sleep", fake_sleep)
    return recorded


class TestIsTransportError:
    """Tests for is_transport_error."""

    def test_connection_errors(self):
        request = httpx.Request("POST", "http://hooks.test")
        assert is_transport_error(httpx.ConnectError("refused", request=request))
        assert is_transport_error(httpx.ReadTimeout("slow", request=request))
        assert is_transport_error(httpx.RemoteProtocolError("bad", request=request))

    def test_non_transport_errors(self):
        assert not is_transport_error(ValueError("Invalid parameter"))
        assert not is_transport_error(httpx.InvalidURL("no host"))


class TestRetryConfig:
    def test_default_schedule(self):
        config = RetryConfig()
        assert [config.delay_for(n) for n in range(5)] == [0.1, 0.2, 0.4, 0.8, 1.6]

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay_ms=100, max_delay_ms=300)
        assert config.delay_for(10) == 0.3


class TestWithRetry:
    """Tests for with_retry."""

    @pytest.mark.asyncio
    async def test_success_no_retry(self, sleeps):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert await with_retry(func) == "success"
        assert call_count == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_retry_on_transient_error(self, sleeps):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise httpx.ConnectError("refused")
            return "success"

        assert await with_retry(func) == "success"
        assert call_count == 3
        assert sleeps == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_no_retry_on_non_retryable_error(self, sleeps):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            raise ValueError("Invalid parameter")

        with pytest.raises(ValueError, match="Invalid parameter"):
            await with_retry(func)
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_max_retries_exceeded(self, sleeps):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            raise httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            await with_retry(func)
        assert call_count == 6  # Initial + 5 retries
        assert sleeps == [0.1, 0.2, 0.4, 0.8, 1.6]
        assert sum(sleeps) == pytest.approx(3.1)

    @pytest.mark.asyncio
    async def test_retry_disabled(self, sleeps):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            raise httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            await with_retry(func, config=RetryConfig(enabled=False))
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_custom_retryable_predicate(self, sleeps):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            raise KeyError("flaky")

        with pytest.raises(KeyError):
            await with_retry(
                func,
                config=RetryConfig(max_retries=2),
                retryable=lambda e: isinstance(e, KeyError),
            )
        assert call_count == 3
