from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from src.domain.errors import ValidationError


UNKNOWN_ORDER_ID = "unknown"
DEFAULT_CUSTOMER_NAME = "Workshop Participant"

Accessor = tuple[str, Callable[[dict[str, Any]], Any]]


def _nested(*path: str) -> Callable[[dict[str, Any]], Any]:
    def _get(data: dict[str, Any]) -> Any:
        current: Any = data
        for key in path:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        return current

    return _get


# Accessors are tried in order; the first usable value wins.
ENVELOPE_ACCESSORS: list[Accessor] = [
    ("payload", _nested("payload")),
]
EMAIL_ACCESSORS: list[Accessor] = [
    ("customer.email", _nested("customer", "email")),
    ("customerInfo.email", _nested("customerInfo", "email")),
]
LINE_ITEM_ACCESSORS: list[Accessor] = [
    ("lineItems", _nested("lineItems")),
    ("purchasedItems", _nested("purchasedItems")),
]
ORDER_ID_ACCESSORS: list[Accessor] = [
    ("orderId", _nested("orderId")),
    ("id", _nested("id")),
]
CUSTOMER_NAME_ACCESSORS: list[Accessor] = [
    ("customer.name", _nested("customer", "name")),
    ("customer.fullName", _nested("customer", "fullName")),
    ("customer.firstName", _nested("customer", "firstName")),
    ("customerInfo.fullName", _nested("customerInfo", "fullName")),
]


def first_match(
    data: dict[str, Any],
    accessors: list[Accessor],
    accept: Callable[[Any], bool],
) -> tuple[str | None, Any]:
    for name, accessor in accessors:
        value = accessor(data)
        if accept(value):
            return name, value
    return None, None


def _is_email(value: Any) -> bool:
    return isinstance(value, str) and "@" in value


def _is_non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _is_present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


@dataclass
class NormalizedOrder:
    customer_email: str
    line_items: list[dict[str, Any]]
    order_data: dict[str, Any]
    order_id: str
    customer_name: str


def unwrap_envelope(payload: dict[str, Any]) -> dict[str, Any]:
    _, nested = first_match(payload, ENVELOPE_ACCESSORS, lambda value: isinstance(value, dict))
    return nested if nested is not None else payload


def extract_order_id(order_data: dict[str, Any]) -> str:
    _, value = first_match(order_data, ORDER_ID_ACCESSORS, _is_present)
    return str(value) if value is not None else UNKNOWN_ORDER_ID


def extract_customer_name(order_data: dict[str, Any]) -> str:
    _, value = first_match(
        order_data,
        CUSTOMER_NAME_ACCESSORS,
        lambda candidate: isinstance(candidate, str) and candidate.strip() != "",
    )
    return value.strip() if value else DEFAULT_CUSTOMER_NAME


def normalize_order_payload(payload: Any) -> NormalizedOrder:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload format")

    order_data = unwrap_envelope(payload)

    _, customer_email = first_match(order_data, EMAIL_ACCESSORS, _is_email)
    if customer_email is None:
        raise ValidationError("Invalid or missing customer email")

    _, line_items = first_match(order_data, LINE_ITEM_ACCESSORS, _is_non_empty_list)
    if line_items is None:
        raise ValidationError("No items in order")

    return NormalizedOrder(
        customer_email=customer_email,
        line_items=[item if isinstance(item, dict) else {} for item in line_items],
        order_data=order_data,
        order_id=extract_order_id(order_data),
        customer_name=extract_customer_name(order_data),
    )
