import asyncio

import httpx
import pytest

from src.domain import retry
from src.domain.errors import UpstreamError
from src.domain.retry import (
    backoff_delay_ms,
    default_is_retryable,
    run_with_backoff,
    with_custom_retry,
    with_status_retry,
)


class _StatusError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class _Flaky:
    def __init__(self, failures: list[Exception], value="ok"):
        self.failures = list(failures)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.value


class _SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_succeeds_after_two_503s_with_growing_delays():
    operation = _Flaky([_StatusError(503), _StatusError(503)], value="done")
    sleep = _SleepRecorder()

    result = await run_with_backoff(operation, base_delay_ms=100, max_delay_ms=10000, sleep=sleep)

    assert result == "done"
    assert operation.calls == 3
    assert len(sleep.delays) == 2
    assert sleep.delays[0] >= 0.1
    assert sleep.delays[1] >= 0.2
    assert sum(sleep.delays) >= 0.1 + 0.2


@pytest.mark.asyncio
async def test_real_sleep_elapsed_time_is_at_least_the_base_schedule():
    operation = _Flaky([_StatusError(503), _StatusError(503)])
    loop = asyncio.get_running_loop()
    started = loop.time()

    await run_with_backoff(operation, base_delay_ms=1, max_delay_ms=5)

    assert loop.time() - started >= (1 + 2) / 1000


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    operation = _Flaky([_StatusError(400)])
    sleep = _SleepRecorder()

    with pytest.raises(_StatusError):
        await run_with_backoff(operation, sleep=sleep)

    assert operation.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_exhausted_retries_raise_last_error():
    errors = [_StatusError(500), _StatusError(502), _StatusError(503), _StatusError(504)]
    operation = _Flaky(errors)
    sleep = _SleepRecorder()

    with pytest.raises(_StatusError) as exc_info:
        await run_with_backoff(operation, max_retries=3, sleep=sleep)

    assert exc_info.value.status_code == 504
    assert operation.calls == 4
    assert len(sleep.delays) == 3


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt():
    operation = _Flaky([_StatusError(503)])
    with pytest.raises(_StatusError):
        await run_with_backoff(operation, max_retries=0, sleep=_SleepRecorder())
    assert operation.calls == 1


@pytest.mark.asyncio
async def test_attempt_timeout_is_retryable():
    calls = 0

    async def _slow_then_fast():
        nonlocal calls
        calls += 1
        if calls == 1:
            await asyncio.sleep(1)
        return "fast"

    result = await run_with_backoff(
        _slow_then_fast,
        attempt_timeout_seconds=0.01,
        sleep=_SleepRecorder(),
    )
    assert result == "fast"
    assert calls == 2


def test_delay_is_capped(monkeypatch):
    monkeypatch.setattr(retry.random, "uniform", lambda low, high: high)
    assert backoff_delay_ms(0, 1000, 10000) == 2000
    assert backoff_delay_ms(1, 1000, 10000) == 3000
    assert backoff_delay_ms(2, 1000, 10000) == 5000
    assert backoff_delay_ms(5, 1000, 10000) == 10000


def test_default_classification():
    request = httpx.Request("GET", "https://example.test")
    assert default_is_retryable(_StatusError(429)) is True
    assert default_is_retryable(_StatusError(500)) is True
    assert default_is_retryable(_StatusError(599)) is True
    assert default_is_retryable(_StatusError(404)) is False
    assert default_is_retryable(_StatusError(400)) is False
    assert default_is_retryable(
        httpx.HTTPStatusError("boom", request=request, response=httpx.Response(503, request=request))
    ) is True
    assert default_is_retryable(httpx.ConnectTimeout("timeout", request=request)) is True
    assert default_is_retryable(httpx.ConnectError("reset", request=request)) is True
    assert default_is_retryable(ConnectionResetError()) is True
    assert default_is_retryable(asyncio.TimeoutError()) is True
    assert default_is_retryable(ValueError("bad input")) is False
    assert default_is_retryable(KeyError("programming error")) is False


def test_upstream_error_classification():
    assert default_is_retryable(UpstreamError("Webflow connectivity error: reset")) is True
    assert default_is_retryable(UpstreamError("HTTP 503", status_code=503)) is True
    assert default_is_retryable(UpstreamError("Invalid token", status_code=401)) is False
    assert default_is_retryable(UpstreamError("weird")) is False


@pytest.mark.asyncio
async def test_custom_and_status_retry_helpers():
    operation = _Flaky([_StatusError(409)])
    result = await with_status_retry(operation, [409], sleep=_SleepRecorder())
    assert result == "ok"
    assert operation.calls == 2

    operation = _Flaky([ValueError("retry me")])
    result = await with_custom_retry(operation, lambda exc: isinstance(exc, ValueError), sleep=_SleepRecorder())
    assert result == "ok"
    assert operation.calls == 2
