from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Iterable, TypeVar

import httpx

from src.domain.errors import InternalError
from src.observability import log_event


T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 10000
_JITTER_MAX_MS = 1000

_RETRYABLE_NETWORK_ERRORS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.RemoteProtocolError,
    ConnectionResetError,
    asyncio.TimeoutError,
)


def error_status_code(error: BaseException) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    response = getattr(error, "response", None)
    status_code = getattr(response, "status_code", None)
    return status_code if isinstance(status_code, int) else None


def default_is_retryable(error: BaseException) -> bool:
    status_code = error_status_code(error)
    if status_code is not None:
        return status_code == 429 or status_code >= 500
    if isinstance(error, _RETRYABLE_NETWORK_ERRORS):
        return True
    return bool(getattr(error, "retryable", False)) and getattr(error, "category", None) == "transient"


def backoff_delay_ms(attempt: int, base_delay_ms: int, max_delay_ms: int) -> float:
    return min(base_delay_ms * (2**attempt) + random.uniform(0, _JITTER_MAX_MS), max_delay_ms)


async def run_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
    is_retryable: Callable[[BaseException], bool] = default_is_retryable,
    attempt_timeout_seconds: float | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str | None = None,
) -> T:
    """
    Run ``operation`` until it succeeds, retrying retryable failures.

    Makes at most ``max_retries + 1`` attempts and re-raises the last error
    once they are used up. Non-retryable failures are raised immediately.
    """
    last_error: BaseException | None = None
    for attempt in range(max_retries + 1):
        try:
            if attempt_timeout_seconds is not None:
                return await asyncio.wait_for(operation(), timeout=attempt_timeout_seconds)
            return await operation()
        except Exception as exc:
            last_error = exc
            if attempt == max_retries:
                break
            if not is_retryable(exc):
                raise
            delay_ms = backoff_delay_ms(attempt, base_delay_ms, max_delay_ms)
            log_event(
                "backoff_retry_scheduled",
                level=logging.DEBUG,
                operation=label,
                attempt=attempt + 1,
                delay_ms=round(delay_ms),
                error=str(exc) or type(exc).__name__,
            )
            await sleep(delay_ms / 1000)

    if last_error is None:
        raise InternalError("Backoff loop finished without an outcome")
    raise last_error


async def with_custom_retry(
    operation: Callable[[], Awaitable[T]],
    should_retry: Callable[[BaseException], bool],
    **options: Any,
) -> T:
    return await run_with_backoff(operation, is_retryable=should_retry, **options)


async def with_status_retry(
    operation: Callable[[], Awaitable[T]],
    status_codes: Iterable[int],
    **options: Any,
) -> T:
    extra = set(status_codes)

    def _should_retry(error: BaseException) -> bool:
        return error_status_code(error) in extra or default_is_retryable(error)

    return await run_with_backoff(operation, is_retryable=_should_retry, **options)
