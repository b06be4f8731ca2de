from __future__ import annotations

from typing import Protocol

from src.config import Settings, normalized_backend
from src.domain.errors import ValidationError
from src.models.orders import CustomerData, DispatchResult, WorkshopData
from src.observability import log_event
from src.providers.mailchimp import client as mailchimp_client
from src.providers.resend import client as resend_client


ORIENTATION_TAG = "workshop-orientation"


class NotificationDispatcher(Protocol):
    async def send(
        self,
        email: str,
        workshop_data: WorkshopData,
        customer_data: CustomerData,
        template_id: str | None = None,
    ) -> DispatchResult: ...


class ResendDispatcher:
    backend = "resend"

    def __init__(
        self,
        *,
        api_key: str | None,
        from_email: str | None,
        sender_name: str = "Katie Ann Clay",
        base_url: str | None = None,
        timeout_seconds: float = 8.0,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.sender_name = sender_name
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    async def send(
        self,
        email: str,
        workshop_data: WorkshopData,
        customer_data: CustomerData,
        template_id: str | None = None,
    ) -> DispatchResult:
        response = await resend_client.send_workshop_email(
            email=email,
            workshop=workshop_data,
            customer=customer_data,
            api_key=self.api_key,
            from_email=self.from_email,
            template_id=template_id,
            sender_name=self.sender_name,
            base_url=self.base_url,
            timeout_seconds=self.timeout_seconds,
        )
        log_event(
            "notification_sent",
            backend=self.backend,
            order_id=customer_data.order_id,
            workshop_name=workshop_data.name,
            template_id=template_id,
        )
        return DispatchResult(backend="resend", message_id=response.get("id"), response=response)


class MailchimpDispatcher:
    """Upserts the buyer into an audience and tags them so an automation sends the email."""

    backend = "mailchimp"

    def __init__(
        self,
        *,
        api_key: str | None,
        server_prefix: str | None,
        audience_id: str | None,
        timeout_seconds: float = 8.0,
    ):
        self.api_key = api_key
        self.server_prefix = server_prefix
        self.audience_id = audience_id
        self.timeout_seconds = timeout_seconds

    async def send(
        self,
        email: str,
        workshop_data: WorkshopData,
        customer_data: CustomerData,
        template_id: str | None = None,
    ) -> DispatchResult:
        member = await mailchimp_client.upsert_member(
            email=email,
            audience_id=self.audience_id,
            api_key=self.api_key,
            server_prefix=self.server_prefix,
            merge_fields={
                "FNAME": customer_data.customer_name,
                "WORKSHOP": workshop_data.name,
                "WDATE": workshop_data.date,
                "ORDERID": customer_data.order_id,
            },
            timeout_seconds=self.timeout_seconds,
        )
        tags = [ORIENTATION_TAG, workshop_data.name]
        await mailchimp_client.update_member_tags(
            email=email,
            tags=tags,
            audience_id=self.audience_id,
            api_key=self.api_key,
            server_prefix=self.server_prefix,
            timeout_seconds=self.timeout_seconds,
        )
        log_event(
            "notification_sent",
            backend=self.backend,
            order_id=customer_data.order_id,
            workshop_name=workshop_data.name,
            tags=[mailchimp_client.normalize_tag(tag) for tag in tags],
        )
        return DispatchResult(backend="mailchimp", message_id=member.get("id"), response=member)


def build_dispatcher(config: Settings) -> NotificationDispatcher:
    backend = normalized_backend(config)
    if backend == "resend":
        return ResendDispatcher(
            api_key=config.resend_api_key,
            from_email=config.resend_from_email,
            sender_name=config.email_sender_name,
            base_url=config.resend_api_base,
            timeout_seconds=config.upstream_timeout_seconds,
        )
    if backend == "mailchimp":
        return MailchimpDispatcher(
            api_key=config.mailchimp_api_key,
            server_prefix=config.mailchimp_server_prefix,
            audience_id=config.mailchimp_audience_id,
            timeout_seconds=config.upstream_timeout_seconds,
        )
    raise ValidationError(f"Invalid notification backend: {config.notification_backend}")
