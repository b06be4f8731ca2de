from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


PLACEHOLDER = "TBD"
GUIDELINES_PLACEHOLDER = "Guidelines coming soon..."


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ResolvedGuidelines(CamelModel):
    name: str | None = None
    slug: str | None = None
    date: str = PLACEHOLDER
    location: str = PLACEHOLDER
    guidelines_html: str = GUIDELINES_PLACEHOLDER
    duration: str | None = None
    what_to_bring: str | None = None
    parking: str | None = None
    reschedule_policy: str | None = None
    faq: str | None = None
    source: Literal["cms", "product"]


class WorkshopData(CamelModel):
    name: str
    date: str = PLACEHOLDER
    location: str = PLACEHOLDER
    guidelines_html: str = GUIDELINES_PLACEHOLDER
    duration: str | None = None
    what_to_bring: str | None = None
    parking: str | None = None
    reschedule_policy: str | None = None
    faq: str | None = None

    @classmethod
    def from_guidelines(cls, guidelines: ResolvedGuidelines, fallback_name: str | None = None) -> "WorkshopData":
        return cls(
            name=guidelines.name or fallback_name or PLACEHOLDER,
            date=guidelines.date or PLACEHOLDER,
            location=guidelines.location or PLACEHOLDER,
            guidelines_html=guidelines.guidelines_html or GUIDELINES_PLACEHOLDER,
            duration=guidelines.duration,
            what_to_bring=guidelines.what_to_bring,
            parking=guidelines.parking,
            reschedule_policy=guidelines.reschedule_policy,
            faq=guidelines.faq,
        )


class CustomerData(CamelModel):
    customer_name: str
    order_id: str


class DispatchResult(CamelModel):
    backend: Literal["resend", "mailchimp"]
    message_id: str | None = None
    response: dict[str, Any] = Field(default_factory=dict)


class ProcessingResult(CamelModel):
    product_id: str | None = None
    status: Literal["success", "skipped", "error"]
    reason: str | None = None
    error: str | None = None
    email_sent: bool | None = None
    workshop_name: str | None = None

    @classmethod
    def success(cls, product_id: str, workshop_name: str) -> "ProcessingResult":
        return cls(product_id=product_id, status="success", email_sent=True, workshop_name=workshop_name)

    @classmethod
    def skipped(cls, product_id: str | None, reason: str) -> "ProcessingResult":
        return cls(product_id=product_id, status="skipped", reason=reason)

    @classmethod
    def failed(cls, product_id: str | None, error: str) -> "ProcessingResult":
        return cls(product_id=product_id, status="error", error=error)


class OrderWebhookResponse(CamelModel):
    success: bool
    order_id: str | None = None
    customer_email: str | None = None
    results: list[ProcessingResult] | None = None
    error: str | None = None
    timestamp: datetime
    processing_time_ms: int | None = None


class HealthResponse(BaseModel):
    ok: bool
    timestamp: datetime
    service: str
    signature: str
