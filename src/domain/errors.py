from __future__ import annotations


_TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}

INTERNAL_ERROR_MESSAGE = "Internal processing error"


class MailerError(Exception):
    """Base class for workshop mailer failures."""


class ValidationError(MailerError):
    """Payload or configuration shape problem. The message is safe to return to callers."""


class AuthError(MailerError):
    """Inbound webhook failed signature verification."""


class InternalError(MailerError):
    """Broken internal invariant. Never surfaced verbatim."""


class UpstreamError(MailerError):
    """Failure talking to the content, email or marketing API."""

    provider = "upstream"

    def __init__(self, message: str, *, status_code: int | None = None, operation: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.operation = operation

    @property
    def category(self) -> str:
        if self.status_code is None:
            return "transient" if "connectivity error" in str(self).lower() else "unknown"
        if self.status_code in _TRANSIENT_STATUS_CODES or self.status_code >= 500:
            return "transient"
        if 400 <= self.status_code < 500:
            return "terminal"
        return "unknown"

    @property
    def retryable(self) -> bool:
        return self.category == "transient"
