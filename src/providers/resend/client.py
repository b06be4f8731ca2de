from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from src.domain.errors import UpstreamError
from src.models.orders import CustomerData, WorkshopData
from src.providers.resend.templates import EMPTY_CONTENT_MESSAGE, render_workshop_email


RESEND_DEFAULT_API_BASE = "https://api.resend.com"
_EP_EMAILS = "/emails"


class ResendProviderError(UpstreamError):
    """Provider-level exception for Resend integration failures."""

    provider = "resend"


def _build_base_url(base_url: str | None) -> str:
    return (base_url or RESEND_DEFAULT_API_BASE).rstrip("/")


def _headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


async def _send_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    timeout_seconds: float,
    json_payload: dict[str, Any] | None = None,
) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        return await client.request(method=method, url=url, headers=headers, json=json_payload)


async def send_email(
    payload: dict[str, Any],
    *,
    api_key: str | None,
    base_url: str | None = None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any]:
    if not api_key:
        raise ResendProviderError("Missing Resend API key", operation="send_email")

    try:
        response = await _send_request(
            method="POST",
            url=f"{_build_base_url(base_url)}{_EP_EMAILS}",
            headers=_headers(api_key),
            timeout_seconds=timeout_seconds,
            json_payload=payload,
        )
    except httpx.HTTPError as exc:
        raise ResendProviderError(f"Resend connectivity error: {exc}", operation="send_email") from exc

    if response.status_code in {401, 403}:
        raise ResendProviderError("Invalid Resend API key", status_code=response.status_code, operation="send_email")
    if response.status_code >= 400:
        raise ResendProviderError(
            f"Resend API returned HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
            operation="send_email",
        )
    try:
        data = response.json()
    except ValueError as exc:
        raise ResendProviderError("Resend returned non-JSON response", operation="send_email") from exc
    return data if isinstance(data, dict) else {"data": data}


def template_variables(workshop: WorkshopData, customer: CustomerData) -> dict[str, str]:
    return {
        "workshop_name": workshop.name,
        "workshop_email_content": workshop.guidelines_html or EMPTY_CONTENT_MESSAGE,
        "workshop_date": workshop.date,
        "workshop_location": workshop.location,
        "customer_name": customer.customer_name,
        "order_id": customer.order_id,
    }


def build_workshop_email_payload(
    *,
    email: str,
    from_email: str,
    workshop: WorkshopData,
    customer: CustomerData,
    template_id: str | None = None,
    sender_name: str = "Katie Ann Clay",
) -> dict[str, Any]:
    if template_id:
        return {
            "from": from_email,
            "to": [email],
            "template": {"id": template_id, "variables": template_variables(workshop, customer)},
        }
    return {
        "from": from_email,
        "to": [email],
        "subject": f"Workshop Orientation: {workshop.name}",
        "html": render_workshop_email(workshop, customer, sender_name=sender_name),
    }


async def send_workshop_email(
    *,
    email: str,
    workshop: WorkshopData,
    customer: CustomerData,
    api_key: str | None,
    from_email: str | None,
    template_id: str | None = None,
    sender_name: str = "Katie Ann Clay",
    base_url: str | None = None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any]:
    if not from_email:
        raise ResendProviderError("Missing Resend from address", operation="send_email")
    payload = build_workshop_email_payload(
        email=email,
        from_email=from_email,
        workshop=workshop,
        customer=customer,
        template_id=template_id,
        sender_name=sender_name,
    )
    return await send_email(payload, api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)


async def send_test_email(
    email: str,
    *,
    api_key: str | None,
    from_email: str | None,
    subject: str = "Test Email from Workshop Mailer",
    base_url: str | None = None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any]:
    if not from_email:
        raise ResendProviderError("Missing Resend from address", operation="send_email")
    sent_at = datetime.now(timezone.utc).isoformat()
    payload = {
        "from": from_email,
        "to": [email],
        "subject": subject,
        "html": (
            "<h1>Test Email</h1>"
            "<p>This is a test email from the workshop mailer service.</p>"
            "<p>If you received this, the email system is working correctly!</p>"
            f"<p><em>Sent at: {sent_at}</em></p>"
        ),
    }
    return await send_email(payload, api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)
