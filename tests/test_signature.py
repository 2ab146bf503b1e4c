"""
Tests for Slack request signature verification.
"""

import pytest

from esme.errors import ReplayDetected, SignatureInvalid
from esme.services.signature import (
    compute_slack_signature,
    is_url_verification,
    verify_slack_signature,
)

SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
BODY = b"token=xyzz0WbapA4vBCDEFasx0q6G&team_id=T1DC2JH3J&command=%2Fesme-chats&text="
TIMESTAMP = "1531420618"
NOW = 1531420618.0


def test_valid_signature_accepted():
    signature = compute_slack_signature(BODY, TIMESTAMP, SECRET)

    result = verify_slack_signature(BODY, signature, TIMESTAMP, SECRET, now=NOW)

    assert result.ok is True
    assert result.reason is None
    assert signature.startswith("v0=")


def test_flipped_body_byte_rejected():
    signature = compute_slack_signature(BODY, TIMESTAMP, SECRET)
    tampered = bytearray(BODY)
    tampered[10] ^= 0x01

    result = verify_slack_signature(bytes(tampered), signature, TIMESTAMP, SECRET, now=NOW)

    assert result.ok is False
    assert result.reason == "invalid_signature"


def test_wrong_secret_rejected():
    signature = compute_slack_signature(BODY, TIMESTAMP, "another-secret")

    result = verify_slack_signature(BODY, signature, TIMESTAMP, SECRET, now=NOW)

    assert result.reason == "invalid_signature"


def test_flipped_signature_character_rejected():
    signature = compute_slack_signature(BODY, TIMESTAMP, SECRET)
    last = "0" if signature[-1] != "0" else "1"

    result = verify_slack_signature(BODY, signature[:-1] + last, TIMESTAMP, SECRET, now=NOW)

    assert result.reason == "invalid_signature"


def test_signature_of_different_length_rejected():
    result = verify_slack_signature(BODY, "v0=abc", TIMESTAMP, SECRET, now=NOW)

    assert result.ok is False
    assert result.reason == "invalid_signature"


def test_signature_bound_to_timestamp():
    """A valid signature replayed with a different (fresh) timestamp does not verify."""
    signature = compute_slack_signature(BODY, TIMESTAMP, SECRET)
    other_timestamp = str(int(TIMESTAMP) + 10)

    result = verify_slack_signature(BODY, signature, other_timestamp, SECRET, now=NOW)

    assert result.reason == "invalid_signature"


@pytest.mark.parametrize("skew", [301, -301, 3600])
def test_stale_timestamp_rejected_as_replay(skew):
    signature = compute_slack_signature(BODY, TIMESTAMP, SECRET)

    result = verify_slack_signature(BODY, signature, TIMESTAMP, SECRET, now=NOW + skew)

    assert result.ok is False
    assert result.reason == "replay_detected"


def test_timestamp_at_tolerance_edge_accepted():
    signature = compute_slack_signature(BODY, TIMESTAMP, SECRET)

    result = verify_slack_signature(BODY, signature, TIMESTAMP, SECRET, now=NOW + 300)

    assert result.ok is True


@pytest.mark.parametrize("signature,timestamp", [
    (None, TIMESTAMP),
    ("v0=abc", None),
    ("", ""),
])
def test_missing_headers_rejected(signature, timestamp):
    result = verify_slack_signature(BODY, signature, timestamp, SECRET, now=NOW)

    assert result.ok is False
    assert result.reason == "missing_headers"


def test_non_numeric_timestamp_rejected():
    result = verify_slack_signature(BODY, "v0=abc", "yesterday", SECRET, now=NOW)

    assert result.reason == "invalid_timestamp"


def test_raise_for_reject():
    signature = compute_slack_signature(BODY, TIMESTAMP, SECRET)

    verify_slack_signature(BODY, signature, TIMESTAMP, SECRET, now=NOW).raise_for_reject()

    with pytest.raises(ReplayDetected):
        verify_slack_signature(BODY, signature, TIMESTAMP, SECRET, now=NOW + 1000).raise_for_reject()

    with pytest.raises(SignatureInvalid):
        verify_slack_signature(BODY + b"x", signature, TIMESTAMP, SECRET, now=NOW).raise_for_reject()


def test_is_url_verification():
    assert is_url_verification({"type": "url_verification", "challenge": "abc"}) is True
    assert is_url_verification({"type": "event_callback"}) is False
    assert is_url_verification([]) is False
