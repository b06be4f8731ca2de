from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from src.domain.dispatch import NotificationDispatcher
from src.domain.errors import INTERNAL_ERROR_MESSAGE, UpstreamError, ValidationError
from src.domain.idempotency import IdempotencyStore, idempotency_key
from src.domain.normalization import DEFAULT_CUSTOMER_NAME, UNKNOWN_ORDER_ID
from src.domain.provider_errors import describe_item_failure
from src.domain.retry import run_with_backoff
from src.models.orders import CustomerData, ProcessingResult, ResolvedGuidelines, WorkshopData
from src.observability import incr_metric, log_event


ALREADY_PROCESSED = "Already processed"
NOT_A_WORKSHOP = "Not a workshop product"
NO_GUIDELINES = "No guidelines found for workshop"
MISSING_PRODUCT_ID = "Missing productId"

FetchProduct = Callable[[str], Awaitable[dict[str, Any]]]
ResolveGuidelines = Callable[[str, str | None], Awaitable[ResolvedGuidelines | None]]
IsWorkshop = Callable[[dict[str, Any] | None], bool]


def _item_error_message(exc: Exception) -> str:
    # Unexpected exception text stays in the server log only.
    if isinstance(exc, (UpstreamError, ValidationError)):
        return str(exc) or type(exc).__name__
    return INTERNAL_ERROR_MESSAGE


@dataclass
class BackoffOptions:
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    attempt_timeout_seconds: float | None = None
    sleep: Callable[[float], Awaitable[Any]] | None = None

    def as_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "max_retries": self.max_retries,
            "base_delay_ms": self.base_delay_ms,
            "max_delay_ms": self.max_delay_ms,
            "attempt_timeout_seconds": self.attempt_timeout_seconds,
        }
        if self.sleep is not None:
            kwargs["sleep"] = self.sleep
        return kwargs


@dataclass
class OrderProcessor:
    """
    Processes the line items of one order, one at a time.

    Every item yields exactly one ProcessingResult; a failure on one item is
    recorded as an ``error`` result and the next item still runs. Only items
    whose notification was dispatched are written to the idempotency store.
    """

    cache: IdempotencyStore
    dispatcher: NotificationDispatcher
    fetch_product: FetchProduct
    resolve: ResolveGuidelines
    is_workshop: IsWorkshop
    template_id: str | None = None
    backoff: BackoffOptions = field(default_factory=BackoffOptions)
    request_id: str | None = None

    async def process(
        self,
        order_id: str | None,
        customer_email: str,
        line_items: list[dict[str, Any]],
        *,
        customer_name: str = DEFAULT_CUSTOMER_NAME,
    ) -> list[ProcessingResult]:
        order_id = order_id or UNKNOWN_ORDER_ID
        customer = CustomerData(customer_name=customer_name, order_id=order_id)
        results: list[ProcessingResult] = []
        for line_item in line_items:
            result = await self._process_item(order_id, customer_email, customer, line_item)
            incr_metric("order.items", status=result.status)
            results.append(result)
        return results

    async def _process_item(
        self,
        order_id: str,
        customer_email: str,
        customer: CustomerData,
        line_item: dict[str, Any],
    ) -> ProcessingResult:
        product_id = line_item.get("productId")
        if not product_id:
            return ProcessingResult.failed(None, MISSING_PRODUCT_ID)
        product_id = str(product_id)

        key = idempotency_key(order_id, customer_email, product_id)
        if self.cache.has(key):
            log_event(
                "line_item_already_processed",
                request_id=self.request_id,
                order_id=order_id,
                product_id=product_id,
            )
            return ProcessingResult.skipped(product_id, ALREADY_PROCESSED)

        try:
            result = await self._notify(customer_email, customer, line_item, product_id)
        except Exception as exc:
            log_event(
                "line_item_failed",
                level=logging.ERROR,
                request_id=self.request_id,
                order_id=order_id,
                product_id=product_id,
                failure=describe_item_failure(exc),
            )
            return ProcessingResult.failed(product_id, _item_error_message(exc))

        if result.status == "success":
            self.cache.record(key, result)
        return result

    async def _notify(
        self,
        customer_email: str,
        customer: CustomerData,
        line_item: dict[str, Any],
        product_id: str,
    ) -> ProcessingResult:
        backoff = self.backoff.as_kwargs()

        product_response = await run_with_backoff(
            lambda: self.fetch_product(product_id), label="get_product", **backoff
        )
        product = product_response.get("product") if isinstance(product_response, dict) else None
        if not self.is_workshop(product):
            log_event(
                "line_item_not_workshop",
                request_id=self.request_id,
                order_id=customer.order_id,
                product_id=product_id,
            )
            return ProcessingResult.skipped(product_id, NOT_A_WORKSHOP)

        cms_item_id = line_item.get("cmsItemId")
        guidelines = await run_with_backoff(
            lambda: self.resolve(product_id, str(cms_item_id) if cms_item_id else None),
            label="resolve_guidelines",
            **backoff,
        )
        if guidelines is None:
            log_event(
                "line_item_missing_guidelines",
                level=logging.ERROR,
                request_id=self.request_id,
                order_id=customer.order_id,
                product_id=product_id,
            )
            return ProcessingResult.failed(product_id, NO_GUIDELINES)

        workshop = WorkshopData.from_guidelines(guidelines, fallback_name=line_item.get("name"))
        await run_with_backoff(
            lambda: self.dispatcher.send(customer_email, workshop, customer, self.template_id),
            label="send_notification",
            **backoff,
        )
        log_event(
            "line_item_notified",
            request_id=self.request_id,
            order_id=customer.order_id,
            product_id=product_id,
            workshop_name=workshop.name,
            source=guidelines.source,
        )
        return ProcessingResult.success(product_id, workshop.name)
