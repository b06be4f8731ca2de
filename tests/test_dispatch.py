import pytest

from src.config import Settings, missing_required_settings
from src.domain import dispatch
from src.domain.errors import ValidationError
from src.models.orders import CustomerData, WorkshopData


def _settings(**overrides) -> Settings:
    values = {
        "webflow_site_id": "s",
        "webflow_api_token": "t",
        "resend_api_key": "re",
        "resend_from_email": "f@s.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_required_settings_depend_on_backend():
    assert missing_required_settings(_settings()) == []
    assert missing_required_settings(_settings(notification_backend="mailchimp")) == [
        "MAILCHIMP_API_KEY",
        "MAILCHIMP_SERVER_PREFIX",
        "MAILCHIMP_AUDIENCE_ID",
    ]
    assert missing_required_settings(_settings(webflow_site_id=None, resend_api_key=None)) == [
        "WEBFLOW_SITE_ID",
        "RESEND_API_KEY",
    ]


def test_build_dispatcher_selects_backend():
    assert isinstance(dispatch.build_dispatcher(_settings()), dispatch.ResendDispatcher)
    assert isinstance(
        dispatch.build_dispatcher(_settings(notification_backend="Mailchimp")), dispatch.MailchimpDispatcher
    )
    with pytest.raises(ValidationError, match="Invalid notification backend: sms"):
        dispatch.build_dispatcher(_settings(notification_backend="sms"))


@pytest.mark.asyncio
async def test_resend_dispatcher_passes_template(monkeypatch):
    captured = {}

    async def _fake_send_workshop_email(**kwargs):
        captured.update(kwargs)
        return {"id": "email_9"}

    monkeypatch.setattr(dispatch.resend_client, "send_workshop_email", _fake_send_workshop_email)
    dispatcher = dispatch.build_dispatcher(_settings())

    result = await dispatcher.send(
        "a@b.com",
        WorkshopData(name="Pottery 101"),
        CustomerData(customer_name="Ada", order_id="o1"),
        "tmpl_1",
    )

    assert result.backend == "resend"
    assert result.message_id == "email_9"
    assert captured["template_id"] == "tmpl_1"
    assert captured["from_email"] == "f@s.test"


@pytest.mark.asyncio
async def test_mailchimp_dispatcher_upserts_and_tags(monkeypatch):
    calls = []

    async def _fake_upsert_member(**kwargs):
        calls.append(("upsert", kwargs))
        return {"id": "member-1"}

    async def _fake_update_member_tags(**kwargs):
        calls.append(("tags", kwargs))
        return {}

    monkeypatch.setattr(dispatch.mailchimp_client, "upsert_member", _fake_upsert_member)
    monkeypatch.setattr(dispatch.mailchimp_client, "update_member_tags", _fake_update_member_tags)
    dispatcher = dispatch.build_dispatcher(
        _settings(
            notification_backend="mailchimp",
            mailchimp_api_key="mc",
            mailchimp_server_prefix="us1",
            mailchimp_audience_id="aud",
        )
    )

    result = await dispatcher.send(
        "a@b.com",
        WorkshopData(name="Pottery 101", date="2025-03-01"),
        CustomerData(customer_name="Ada", order_id="o1"),
    )

    assert result.backend == "mailchimp"
    assert result.message_id == "member-1"
    assert calls[0][1]["merge_fields"] == {
        "FNAME": "Ada",
        "WORKSHOP": "Pottery 101",
        "WDATE": "2025-03-01",
        "ORDERID": "o1",
    }
    assert calls[1][1]["tags"] == ["workshop-orientation", "Pottery 101"]
