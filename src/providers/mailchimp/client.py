from __future__ import annotations

import hashlib
import re
from typing import Any

import httpx

from src.domain.errors import UpstreamError


class MailchimpProviderError(UpstreamError):
    """Provider-level exception for Mailchimp integration failures."""

    provider = "mailchimp"


def normalize_tag(name: str) -> str:
    tag = re.sub(r"[^a-z0-9-]", "-", name.lower())
    tag = re.sub(r"-+", "-", tag)
    return tag.strip("-")


def subscriber_hash(email: str) -> str:
    return hashlib.md5(email.lower().encode("utf-8")).hexdigest()


def _build_base_url(server_prefix: str) -> str:
    return f"https://{server_prefix}.api.mailchimp.com/3.0"


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


async def _request_json(
    *,
    method: str,
    path: str,
    operation: str,
    api_key: str | None,
    server_prefix: str | None,
    timeout_seconds: float = 8.0,
    json_payload: dict[str, Any] | None = None,
    allow_not_found: bool = False,
) -> Any:
    if not api_key or not server_prefix:
        raise MailchimpProviderError("Missing Mailchimp API key or server prefix", operation=operation)

    try:
        response = await _send_request(
            method=method,
            url=f"{_build_base_url(server_prefix)}{path}",
            headers=_headers(api_key),
            timeout_seconds=timeout_seconds,
            json_payload=json_payload,
        )
    except httpx.HTTPError as exc:
        raise MailchimpProviderError(f"Mailchimp connectivity error: {exc}", operation=operation) from exc

    if response.status_code == 404 and allow_not_found:
        return None
    if response.status_code in {401, 403}:
        raise MailchimpProviderError(
            "Invalid Mailchimp API key", status_code=response.status_code, operation=operation
        )
    if response.status_code >= 400:
        raise MailchimpProviderError(
            f"Mailchimp API returned HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
            operation=operation,
        )
    # Tag updates answer 204 with an empty body.
    if response.status_code == 204 or not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise MailchimpProviderError("Mailchimp returned non-JSON response", operation=operation) from exc


async def upsert_member(
    *,
    email: str,
    audience_id: str | None,
    api_key: str | None,
    server_prefix: str | None,
    merge_fields: dict[str, Any] | None = None,
    tags: list[str] | None = None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any]:
    if not audience_id:
        raise MailchimpProviderError("Missing Mailchimp audience id", operation="upsert_member")
    payload = {
        "email_address": email,
        "status_if_new": "subscribed",
        "merge_fields": merge_fields or {},
    }
    if tags:
        payload["tags"] = [normalize_tag(tag) for tag in tags]
    data = await _request_json(
        method="PUT",
        path=f"/lists/{audience_id}/members/{subscriber_hash(email)}",
        operation="upsert_member",
        api_key=api_key,
        server_prefix=server_prefix,
        timeout_seconds=timeout_seconds,
        json_payload=payload,
    )
    return data or {}


async def get_member(
    *,
    email: str,
    audience_id: str | None,
    api_key: str | None,
    server_prefix: str | None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any] | None:
    if not audience_id:
        raise MailchimpProviderError("Missing Mailchimp audience id", operation="get_member")
    return await _request_json(
        method="GET",
        path=f"/lists/{audience_id}/members/{subscriber_hash(email)}",
        operation="get_member",
        api_key=api_key,
        server_prefix=server_prefix,
        timeout_seconds=timeout_seconds,
        allow_not_found=True,
    )


async def update_member_tags(
    *,
    email: str,
    tags: list[str],
    audience_id: str | None,
    api_key: str | None,
    server_prefix: str | None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any]:
    if not audience_id:
        raise MailchimpProviderError("Missing Mailchimp audience id", operation="update_member_tags")
    data = await _request_json(
        method="POST",
        path=f"/lists/{audience_id}/members/{subscriber_hash(email)}/tags",
        operation="update_member_tags",
        api_key=api_key,
        server_prefix=server_prefix,
        timeout_seconds=timeout_seconds,
        json_payload={"tags": [{"name": normalize_tag(tag), "status": "active"} for tag in tags]},
    )
    return data or {}
