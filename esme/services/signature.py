"""
Slack request signature verification.

Slack signs every webhook with HMAC-SHA256 over ``v0:{timestamp}:{raw body}``
using the app's signing secret. Verification must run on the exact bytes
received, before any JSON or form parsing.
"""

import hashlib
import hmac
import time
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from fastapi import HTTPException, Request

from ..errors import SignatureInvalid, ReplayDetected

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_VERSION = "v0"
DEFAULT_TOLERANCE_SECONDS = 300


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    reason: Optional[str] = None

    def raise_for_reject(self) -> None:
        if self.ok:
            return
        if self.reason == "replay_detected":
            raise ReplayDetected(self.reason)
        raise SignatureInvalid(self.reason)


def compute_slack_signature(raw_body: bytes, timestamp: str, signing_secret: str) -> str:
    """Compute the ``v0=<hex>`` signature Slack would send for this body."""
    base_string = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + raw_body
    digest = hmac.new(signing_secret.encode("utf-8"), base_string, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_signature(
    raw_body: bytes,
    signature: Optional[str],
    timestamp: Optional[str],
    signing_secret: str,
    now: Optional[float] = None,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS
) -> VerificationResult:
    """Validate a Slack webhook request. Pure; performs no I/O."""
    if not signature or not timestamp:
        return VerificationResult(False, "missing_headers")

    try:
        request_time = int(timestamp)
    except (TypeError, ValueError):
        return VerificationResult(False, "invalid_timestamp")

    current_time = time.time() if now is None else now
    if abs(current_time - request_time) > tolerance:
        return VerificationResult(False, "replay_detected")

    expected = compute_slack_signature(raw_body, timestamp, signing_secret).encode("utf-8")
    supplied = signature.encode("utf-8")

    # compare_digest leaks length anyway; reject mismatched lengths up front
    if len(expected) != len(supplied):
        return VerificationResult(False, "invalid_signature")

    if not hmac.compare_digest(expected, supplied):
        return VerificationResult(False, "invalid_signature")

    return VerificationResult(True)


def is_url_verification(payload: Dict[str, Any]) -> bool:
    """Slack's onboarding handshake, answered before a signing secret exists."""
    return isinstance(payload, dict) and payload.get("type") == "url_verification"


async def require_slack_signature(request: Request, signing_secret: str, tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> bytes:
    """Read the raw body, verify it, and return it. Raises HTTPException(400) on reject."""
    raw_body = await request.body()
    result = verify_slack_signature(
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        request.headers.get(TIMESTAMP_HEADER),
        signing_secret,
        tolerance=tolerance
    )

    if not result.ok:
        logger.warning(f"Rejected Slack request to {request.url.path}: {result.reason}")
        raise HTTPException(status_code=400, detail=result.reason)

    return raw_body
