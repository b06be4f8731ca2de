from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from functools import partial
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status

from src.config import missing_required_settings, settings
from src.domain.dispatch import build_dispatcher
from src.domain.errors import INTERNAL_ERROR_MESSAGE, AuthError, ValidationError
from src.domain.fanout import BackoffOptions, OrderProcessor
from src.domain.idempotency import IdempotencyCache
from src.domain.normalization import normalize_order_payload
from src.domain.signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_signature
from src.models.orders import OrderWebhookResponse
from src.observability import incr_metric, log_event, logger
from src.providers.webflow import client as webflow_client


router = APIRouter(tags=["orders"])

# Lives for the process lifetime; not shared between instances.
idempotency_cache = IdempotencyCache(max_size=settings.idempotency_cache_size)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _request_id(request: Request | None) -> str | None:
    if not request:
        return None
    return getattr(getattr(request, "state", None), "request_id", None)


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _failure(message: str) -> dict[str, Any]:
    return OrderWebhookResponse(success=False, error=message, timestamp=_now()).to_payload()


def _validate_environment() -> None:
    missing = missing_required_settings(settings)
    if missing:
        raise ValidationError(f"Missing required environment variables: {', '.join(missing)}")


def _verify_signature_or_raise(request: Request, raw_body: bytes) -> None:
    valid = verify_signature(
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        request.headers.get(TIMESTAMP_HEADER),
        settings.webflow_webhook_secret,
        tolerance_seconds=settings.webhook_signature_tolerance_seconds,
    )
    if not valid:
        raise AuthError("Invalid signature")


def build_order_processor(request_id: str | None = None) -> OrderProcessor:
    common = {
        "api_token": settings.webflow_api_token,
        "base_url": settings.webflow_api_base,
        "timeout_seconds": settings.upstream_timeout_seconds,
    }
    site_id = settings.webflow_site_id

    async def _fetch_product(product_id: str) -> dict[str, Any]:
        return await webflow_client.get_product(site_id, product_id, **common)

    async def _resolve(product_id: str, cms_item_id: str | None):
        return await webflow_client.resolve_guidelines(
            site_id,
            product_id,
            cms_item_id,
            collection_id=settings.webflow_workshops_collection_id,
            **common,
        )

    return OrderProcessor(
        cache=idempotency_cache,
        dispatcher=build_dispatcher(settings),
        fetch_product=_fetch_product,
        resolve=_resolve,
        is_workshop=partial(
            webflow_client.is_workshop_product,
            product_type_id=settings.workshop_product_type_id,
            category_id=settings.workshop_category_id,
        ),
        template_id=settings.resend_template_id,
        backoff=BackoffOptions(
            max_retries=settings.retry_max_retries,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
        ),
        request_id=request_id,
    )


@router.post("/api/webflow/order")
@router.post("/order", include_in_schema=False)
async def ingest_order_webhook(request: Request):
    """
    Webflow order webhook.

    Replies 200 for every business outcome, including validation failures, so
    the sender does not retry; ``success`` and ``results[].status`` carry the
    real outcome. Only bad JSON (400) and bad signatures (401) are non-200.
    """
    req_id = _request_id(request)
    started = time.perf_counter()
    raw_body = await request.body()
    incr_metric("webhook.orders.received")

    try:
        _validate_environment()
        _verify_signature_or_raise(request, raw_body)

        try:
            payload = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            incr_metric("webhook.orders.rejected", reason="invalid_json")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload") from exc

        log_event(
            "order_payload_received",
            level=logging.DEBUG,
            request_id=req_id,
            keys=sorted(payload.keys()) if isinstance(payload, dict) else type(payload).__name__,
        )
        order = normalize_order_payload(payload)
        processor = build_order_processor(req_id)

        log_event(
            "order_processing_started",
            request_id=req_id,
            order_id=order.order_id,
            line_item_count=len(order.line_items),
        )
        results = await processor.process(
            order.order_id,
            order.customer_email,
            order.line_items,
            customer_name=order.customer_name,
        )
    except AuthError:
        incr_metric("webhook.orders.rejected", reason="invalid_signature")
        log_event(
            "webhook_signature_rejected",
            level=logging.WARNING,
            request_id=req_id,
            ip=_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    except ValidationError as exc:
        incr_metric("webhook.orders.rejected", reason="validation")
        log_event("order_validation_failed", level=logging.WARNING, request_id=req_id, error=str(exc))
        return _failure(str(exc))
    except HTTPException:
        raise
    except Exception:
        incr_metric("webhook.orders.failed")
        logger.exception("Unhandled error while processing order webhook (request_id=%s)", req_id)
        return _failure(INTERNAL_ERROR_MESSAGE)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    incr_metric("webhook.orders.processed")
    log_event(
        "order_processed",
        request_id=req_id,
        order_id=order.order_id,
        statuses=[result.status for result in results],
        processing_time_ms=elapsed_ms,
    )
    return OrderWebhookResponse(
        success=True,
        order_id=order.order_id,
        customer_email=order.customer_email,
        results=results,
        timestamp=_now(),
        processing_time_ms=elapsed_ms,
    ).to_payload()
