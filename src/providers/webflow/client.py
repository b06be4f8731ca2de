from __future__ import annotations

import logging
from typing import Any

import httpx

from src.domain.errors import UpstreamError
from src.models.orders import GUIDELINES_PLACEHOLDER, PLACEHOLDER, ResolvedGuidelines
from src.observability import log_event


WEBFLOW_DEFAULT_API_BASE = "https://api.webflow.com/v2"
WORKSHOP_PRODUCT_TYPE_ID = "c599e43b1a1c34d5a323aedf75d3adf6"
WORKSHOP_CATEGORY_ID = "66e8d658ede37e2f7706b996"


class WebflowProviderError(UpstreamError):
    """Provider-level exception for Webflow integration failures."""

    provider = "webflow"


def _build_base_url(base_url: str | None) -> str:
    return (base_url or WEBFLOW_DEFAULT_API_BASE).rstrip("/")


def _headers(api_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_token}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


async def _send_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    timeout_seconds: float,
    params: dict[str, Any] | None = None,
) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        return await client.request(method=method, url=url, headers=headers, params=params)


async def _request_json(
    *,
    method: str,
    path: str,
    operation: str,
    api_token: str | None,
    base_url: str | None = None,
    timeout_seconds: float = 8.0,
    params: dict[str, Any] | None = None,
) -> Any:
    if not api_token:
        raise WebflowProviderError("Missing Webflow API token", operation=operation)

    url = f"{_build_base_url(base_url)}{path}"
    try:
        response = await _send_request(
            method=method,
            url=url,
            headers=_headers(api_token),
            timeout_seconds=timeout_seconds,
            params=params,
        )
    except httpx.HTTPError as exc:
        raise WebflowProviderError(f"Webflow connectivity error: {exc}", operation=operation) from exc

    if response.status_code in {401, 403}:
        raise WebflowProviderError(
            "Invalid Webflow API token", status_code=response.status_code, operation=operation
        )
    if response.status_code == 404:
        raise WebflowProviderError(
            f"Webflow resource not found: {path}", status_code=404, operation=operation
        )
    if response.status_code >= 400:
        raise WebflowProviderError(
            f"Webflow API returned HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
            operation=operation,
        )

    try:
        return response.json()
    except ValueError as exc:
        raise WebflowProviderError("Webflow returned non-JSON response", operation=operation) from exc


async def get_product(
    site_id: str,
    product_id: str,
    *,
    api_token: str | None,
    base_url: str | None = None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any]:
    data = await _request_json(
        method="GET",
        path=f"/sites/{site_id}/products/{product_id}",
        operation="get_product",
        api_token=api_token,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )
    if not isinstance(data, dict):
        raise WebflowProviderError("Unexpected Webflow product response shape", operation="get_product")
    return data


async def get_collection_item(
    site_id: str,
    collection_id: str,
    item_id: str,
    *,
    api_token: str | None,
    base_url: str | None = None,
    timeout_seconds: float = 8.0,
) -> dict[str, Any]:
    data = await _request_json(
        method="GET",
        path=f"/sites/{site_id}/collections/{collection_id}/items/{item_id}",
        operation="get_collection_item",
        api_token=api_token,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )
    if not isinstance(data, dict):
        raise WebflowProviderError(
            "Unexpected Webflow collection item response shape", operation="get_collection_item"
        )
    return data


async def list_products(
    site_id: str,
    *,
    api_token: str | None,
    base_url: str | None = None,
    timeout_seconds: float = 12.0,
) -> list[dict[str, Any]]:
    data = await _request_json(
        method="GET",
        path=f"/sites/{site_id}/products",
        operation="list_products",
        api_token=api_token,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    if isinstance(data, list):
        return data
    raise WebflowProviderError("Unexpected Webflow products response shape", operation="list_products")


def is_workshop_product(
    product: dict[str, Any] | None,
    *,
    product_type_id: str = WORKSHOP_PRODUCT_TYPE_ID,
    category_id: str = WORKSHOP_CATEGORY_ID,
) -> bool:
    if not isinstance(product, dict):
        return False
    field_data = product.get("fieldData") or {}
    if not isinstance(field_data, dict):
        return False

    is_service = field_data.get("ec-product-type") == product_type_id
    categories = field_data.get("category")
    has_workshop_category = isinstance(categories, (list, tuple)) and category_id in categories
    return is_service or has_workshop_category


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first_text(*values: Any) -> str | None:
    for value in values:
        text = _text(value)
        if text:
            return text
    return None


def guidelines_from_cms_item(item: dict[str, Any]) -> ResolvedGuidelines:
    fields = item.get("fieldData") or {}
    return ResolvedGuidelines(
        name=_first_text(fields.get("name"), item.get("name")),
        slug=_first_text(fields.get("slug"), item.get("slug")),
        guidelines_html=_first_text(fields.get("guidelines_richtext"), fields.get("guidelines"))
        or GUIDELINES_PLACEHOLDER,
        location=_text(fields.get("location")) or PLACEHOLDER,
        date=_text(fields.get("date")) or PLACEHOLDER,
        duration=_text(fields.get("duration")),
        parking=_text(fields.get("parking")),
        what_to_bring=_text(fields.get("what_to_bring")),
        reschedule_policy=_text(fields.get("reschedule_policy")),
        faq=_text(fields.get("faq")),
        source="cms",
    )


def guidelines_from_product(product: dict[str, Any]) -> ResolvedGuidelines:
    fields = product.get("fieldData") or {}
    custom = product.get("customFields") or {}
    return ResolvedGuidelines(
        name=_first_text(fields.get("name"), product.get("name")),
        slug=_first_text(fields.get("slug"), product.get("slug")),
        guidelines_html=_first_text(
            fields.get("workshop-email-content"),
            fields.get("long-description"),
            custom.get("guidelines_richtext"),
            custom.get("guidelines"),
        )
        or GUIDELINES_PLACEHOLDER,
        location=_text(fields.get("location")) or PLACEHOLDER,
        date=_text(fields.get("date")) or PLACEHOLDER,
        source="product",
    )


async def resolve_guidelines(
    site_id: str,
    product_id: str,
    cms_item_id: str | None = None,
    *,
    api_token: str | None,
    collection_id: str | None = None,
    base_url: str | None = None,
    timeout_seconds: float = 8.0,
) -> ResolvedGuidelines | None:
    """
    Resolve workshop guidelines for a product.

    A linked CMS item wins when both ``cms_item_id`` and ``collection_id`` are
    set; otherwise the product record is used. Upstream errors propagate.
    Returns None when the upstream response carries no record.
    """
    if cms_item_id and collection_id:
        item = await get_collection_item(
            site_id,
            collection_id,
            cms_item_id,
            api_token=api_token,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )
        if not item:
            return None
        guidelines = guidelines_from_cms_item(item)
    else:
        response = await get_product(
            site_id,
            product_id,
            api_token=api_token,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )
        product = response.get("product")
        if not isinstance(product, dict) or not product:
            return None
        guidelines = guidelines_from_product(product)

    log_event(
        "guidelines_resolved",
        level=logging.DEBUG,
        product_id=product_id,
        cms_item_id=cms_item_id,
        source=guidelines.source,
        name=guidelines.name,
        has_guidelines=guidelines.guidelines_html != GUIDELINES_PLACEHOLDER,
    )
    return guidelines
