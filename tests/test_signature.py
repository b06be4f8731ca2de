from datetime import datetime, timedelta, timezone

from src.domain.signature import is_timestamp_fresh, parse_signature_timestamp, sign, verify_signature


SECRET = "whsec_test"
TIMESTAMP = "1735689600000"
BODY = '{"payload":{"orderId":"o1"}}'


def _flip_bit(signature: str, bit: int) -> str:
    raw = bytearray(bytes.fromhex(signature))
    raw[bit // 8] ^= 1 << (bit % 8)
    return raw.hex()


def test_valid_signature_round_trip():
    signature = sign(SECRET, TIMESTAMP, BODY)
    assert verify_signature(BODY, signature, TIMESTAMP, SECRET) is True
    assert verify_signature(BODY.encode("utf-8"), signature, TIMESTAMP, SECRET) is True


def test_signed_message_binds_timestamp_and_body():
    signature = sign(SECRET, TIMESTAMP, BODY)
    assert verify_signature(BODY, signature, "1735689600001", SECRET) is False
    assert verify_signature(BODY + " ", signature, TIMESTAMP, SECRET) is False
    assert verify_signature(BODY, signature, TIMESTAMP, "other-secret") is False


def test_every_single_bit_mutation_is_rejected():
    signature = sign(SECRET, TIMESTAMP, BODY)
    for bit in range(len(bytes.fromhex(signature)) * 8):
        assert verify_signature(BODY, _flip_bit(signature, bit), TIMESTAMP, SECRET) is False


def test_missing_inputs_fail_closed():
    signature = sign(SECRET, TIMESTAMP, BODY)
    assert verify_signature(BODY, None, TIMESTAMP, SECRET) is False
    assert verify_signature(BODY, "", TIMESTAMP, SECRET) is False
    assert verify_signature(BODY, signature, None, SECRET) is False
    assert verify_signature(BODY, signature, "", SECRET) is False
    assert verify_signature(BODY, signature, TIMESTAMP, None) is False
    assert verify_signature(BODY, signature, TIMESTAMP, "") is False


def test_malformed_or_truncated_hex_is_a_mismatch_not_an_error():
    signature = sign(SECRET, TIMESTAMP, BODY)
    assert verify_signature(BODY, "not-hex", TIMESTAMP, SECRET) is False
    assert verify_signature(BODY, signature[:-2], TIMESTAMP, SECRET) is False
    assert verify_signature(BODY, signature + "00", TIMESTAMP, SECRET) is False
    assert verify_signature(BODY, "abc", TIMESTAMP, SECRET) is False
    assert verify_signature(b"\xff\xfe", signature, TIMESTAMP, SECRET) is False

    spaced = " ".join(signature[i : i + 2] for i in range(0, len(signature), 2))
    assert verify_signature(BODY, spaced, TIMESTAMP, SECRET) is False
    assert verify_signature(BODY, f"{signature[:32]}\n{signature[32:]}", TIMESTAMP, SECRET) is False


def test_surrounding_whitespace_on_signature_is_tolerated():
    signature = sign(SECRET, TIMESTAMP, BODY)
    assert verify_signature(BODY, f"  {signature}\n", TIMESTAMP, SECRET) is True


def test_uppercase_hex_signature_is_accepted():
    signature = sign(SECRET, TIMESTAMP, BODY).upper()
    assert verify_signature(BODY, signature, TIMESTAMP, SECRET) is True


def test_timestamp_window_only_applies_when_configured():
    old = str(int((datetime.now(timezone.utc) - timedelta(hours=2)).timestamp()))
    signature = sign(SECRET, old, BODY)
    assert verify_signature(BODY, signature, old, SECRET) is True
    assert verify_signature(BODY, signature, old, SECRET, tolerance_seconds=300) is False

    fresh = str(int(datetime.now(timezone.utc).timestamp() * 1000))
    assert verify_signature(BODY, sign(SECRET, fresh, BODY), fresh, SECRET, tolerance_seconds=300) is True


def test_timestamp_parsing_accepts_seconds_millis_and_iso():
    expected = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_signature_timestamp("1735689600") == expected
    assert parse_signature_timestamp("1735689600000") == expected
    assert parse_signature_timestamp("2025-01-01T00:00:00Z") == expected
    assert parse_signature_timestamp("yesterday") is None
    assert is_timestamp_fresh("yesterday", 60) is False
    assert is_timestamp_fresh("yesterday", 0) is True
