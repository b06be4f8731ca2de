from __future__ import annotations

from typing import Any, Protocol


class ProviderErrorLike(Protocol):
    @property
    def category(self) -> str: ...

    @property
    def retryable(self) -> bool: ...


def provider_error_detail(*, provider: str, operation: str | None, exc: ProviderErrorLike) -> dict[str, Any]:
    return {
        "type": "provider_error",
        "provider": provider,
        "operation": operation,
        "status_code": getattr(exc, "status_code", None),
        "category": exc.category,
        "retryable": exc.retryable,
        "message": str(exc),
    }


def describe_item_failure(exc: Exception) -> dict[str, Any]:
    if hasattr(exc, "category") and hasattr(exc, "retryable"):
        return provider_error_detail(
            provider=getattr(exc, "provider", "upstream"),
            operation=getattr(exc, "operation", None),
            exc=exc,
        )
    return {"type": type(exc).__name__, "message": str(exc)}
