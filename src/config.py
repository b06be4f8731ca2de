from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    webflow_site_id: str | None = None
    webflow_api_token: str | None = None
    webflow_api_base: str = "https://api.webflow.com/v2"
    webflow_webhook_secret: str | None = None
    webflow_workshops_collection_id: str | None = None
    workshop_product_type_id: str = "c599e43b1a1c34d5a323aedf75d3adf6"
    workshop_category_id: str = "66e8d658ede37e2f7706b996"
    notification_backend: str = "resend"  # resend | mailchimp
    resend_api_key: str | None = None
    resend_from_email: str | None = None
    resend_template_id: str | None = None
    resend_api_base: str = "https://api.resend.com"
    mailchimp_api_key: str | None = None
    mailchimp_server_prefix: str | None = None
    mailchimp_audience_id: str | None = None
    email_sender_name: str = "Katie Ann Clay"
    webhook_signature_tolerance_seconds: int = 0
    idempotency_cache_size: int = 1000
    retry_max_retries: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 10000
    upstream_timeout_seconds: float = 8.0
    debug_logging: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


NOTIFICATION_BACKENDS = ("resend", "mailchimp")

_REQUIRED_BASE = {
    "WEBFLOW_SITE_ID": "webflow_site_id",
    "WEBFLOW_API_TOKEN": "webflow_api_token",
}
_REQUIRED_BY_BACKEND = {
    "resend": {
        "RESEND_API_KEY": "resend_api_key",
        "RESEND_FROM_EMAIL": "resend_from_email",
    },
    "mailchimp": {
        "MAILCHIMP_API_KEY": "mailchimp_api_key",
        "MAILCHIMP_SERVER_PREFIX": "mailchimp_server_prefix",
        "MAILCHIMP_AUDIENCE_ID": "mailchimp_audience_id",
    },
}


def normalized_backend(config: Settings) -> str:
    return str(config.notification_backend or "resend").strip().lower()


def missing_required_settings(config: Settings) -> list[str]:
    required = dict(_REQUIRED_BASE)
    required.update(_REQUIRED_BY_BACKEND.get(normalized_backend(config), {}))
    return [env_name for env_name, field in required.items() if not getattr(config, field)]


settings = Settings()
