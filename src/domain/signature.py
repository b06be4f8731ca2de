from __future__ import annotations

import hashlib
import hmac
import re
from datetime import datetime, timezone


SIGNATURE_HEADER = "X-Webflow-Signature"
TIMESTAMP_HEADER = "X-Webflow-Timestamp"

_SHA256_HEX = re.compile(r"[0-9a-fA-F]{64}")


def _as_text(raw_body: bytes | str) -> str:
    if isinstance(raw_body, bytes):
        return raw_body.decode("utf-8", errors="strict")
    return raw_body


def sign(secret: str, timestamp: str, raw_body: bytes | str) -> str:
    """HMAC-SHA256 hex digest over ``"{timestamp}:{raw_body}"``."""
    message = f"{timestamp}:{_as_text(raw_body)}"
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def parse_signature_timestamp(raw_timestamp: str) -> datetime | None:
    text = str(raw_timestamp).strip()
    if not text:
        return None
    if text.isdigit():
        try:
            value = int(text)
            # Millisecond timestamps are common for this sender.
            if value > 10**11:
                value //= 1000
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OSError, OverflowError):
            return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_timestamp_fresh(timestamp: str, tolerance_seconds: int, now: datetime | None = None) -> bool:
    if tolerance_seconds <= 0:
        return True
    parsed = parse_signature_timestamp(timestamp)
    if parsed is None:
        return False
    current = now or datetime.now(timezone.utc)
    return abs((current - parsed).total_seconds()) <= tolerance_seconds


def verify_signature(
    raw_body: bytes | str,
    signature: str | None,
    timestamp: str | None,
    secret: str | None,
    *,
    tolerance_seconds: int = 0,
) -> bool:
    """
    Check an inbound webhook signature. Never raises.

    Missing signature, timestamp or secret fails closed. Hex strings of
    different lengths, non-hex input and undecodable bodies are mismatches.
    """
    if not signature or not timestamp or not secret:
        return False
    candidate = signature.strip()
    # bytes.fromhex skips inner whitespace, so check the exact digest shape first.
    if not _SHA256_HEX.fullmatch(candidate):
        return False
    try:
        expected = bytes.fromhex(sign(secret, timestamp, raw_body))
        provided = bytes.fromhex(candidate)
    except (ValueError, UnicodeDecodeError):
        return False
    if len(provided) != len(expected):
        return False
    if not hmac.compare_digest(expected, provided):
        return False
    return is_timestamp_fresh(timestamp, tolerance_seconds)
