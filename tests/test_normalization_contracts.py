import pytest

from src.domain.errors import ValidationError
from src.domain.normalization import (
    DEFAULT_CUSTOMER_NAME,
    EMAIL_ACCESSORS,
    LINE_ITEM_ACCESSORS,
    ORDER_ID_ACCESSORS,
    UNKNOWN_ORDER_ID,
    normalize_order_payload,
)


def test_nested_payload_envelope_is_preferred():
    order = normalize_order_payload(
        {
            "customer": {"email": "outer@example.com"},
            "lineItems": [{"productId": "outer"}],
            "payload": {
                "orderId": "o1",
                "customer": {"email": "a@b.com"},
                "lineItems": [{"productId": "p1"}],
            },
        }
    )
    assert order.order_id == "o1"
    assert order.customer_email == "a@b.com"
    assert order.line_items == [{"productId": "p1"}]


def test_flat_payload_with_alternate_field_names():
    order = normalize_order_payload(
        {
            "id": "o2",
            "customerInfo": {"email": "c@d.com", "fullName": "Casey Doe"},
            "purchasedItems": [{"productId": "p9", "quantity": 2}],
        }
    )
    assert order.order_id == "o2"
    assert order.customer_email == "c@d.com"
    assert order.customer_name == "Casey Doe"
    assert order.line_items[0]["quantity"] == 2


def test_accessor_precedence_order():
    assert [name for name, _ in EMAIL_ACCESSORS] == ["customer.email", "customerInfo.email"]
    assert [name for name, _ in LINE_ITEM_ACCESSORS] == ["lineItems", "purchasedItems"]
    assert [name for name, _ in ORDER_ID_ACCESSORS] == ["orderId", "id"]

    order = normalize_order_payload(
        {
            "orderId": "primary",
            "id": "secondary",
            "customer": {"email": "first@x.com"},
            "customerInfo": {"email": "second@x.com"},
            "lineItems": [{"productId": "a"}],
            "purchasedItems": [{"productId": "b"}],
        }
    )
    assert order.order_id == "primary"
    assert order.customer_email == "first@x.com"
    assert order.line_items == [{"productId": "a"}]


def test_invalid_primary_email_falls_through_to_alternate():
    order = normalize_order_payload(
        {
            "customer": {"email": "not-an-email"},
            "customerInfo": {"email": "ok@x.com"},
            "lineItems": [{"productId": "a"}],
        }
    )
    assert order.customer_email == "ok@x.com"


def test_empty_primary_items_fall_through_to_alternate():
    order = normalize_order_payload(
        {"customer": {"email": "a@b.com"}, "lineItems": [], "purchasedItems": [{"productId": "b"}]}
    )
    assert order.line_items == [{"productId": "b"}]


def test_missing_email_is_rejected():
    with pytest.raises(ValidationError, match="Invalid or missing customer email"):
        normalize_order_payload({"lineItems": [{"productId": "p1"}]})
    with pytest.raises(ValidationError, match="Invalid or missing customer email"):
        normalize_order_payload({"customer": {"email": "nope"}, "lineItems": [{"productId": "p1"}]})


def test_missing_or_empty_items_are_rejected():
    with pytest.raises(ValidationError, match="No items in order"):
        normalize_order_payload({"customer": {"email": "a@b.com"}, "lineItems": []})
    with pytest.raises(ValidationError, match="No items in order"):
        normalize_order_payload({"customer": {"email": "a@b.com"}, "lineItems": "p1"})
    with pytest.raises(ValidationError, match="No items in order"):
        normalize_order_payload({"customer": {"email": "a@b.com"}})


def test_non_object_payload_is_rejected():
    with pytest.raises(ValidationError, match="Invalid payload format"):
        normalize_order_payload(["not", "an", "object"])


def test_missing_order_id_and_name_use_sentinels():
    order = normalize_order_payload({"customer": {"email": "a@b.com"}, "lineItems": [{"productId": "p"}]})
    assert order.order_id == UNKNOWN_ORDER_ID
    assert order.customer_name == DEFAULT_CUSTOMER_NAME
