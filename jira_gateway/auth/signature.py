"""Jira webhook signature verification (``X-Hub-Signature: sha256=<hex>``)."""

import hashlib
import hmac
from enum import Enum

from pydantic import BaseModel


SIGNATURE_HEADER = "X-Hub-Signature"
SIGNATURE_PREFIX = "sha256="


class RejectionReason(str, Enum):
    MISSING_SIGNATURE = "missing_signature"
    INVALID_SIGNATURE = "invalid_signature"


class VerificationResult(BaseModel):
    ok: bool
    reason: RejectionReason | None = None

    @classmethod
    def accepted(cls) -> "VerificationResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "VerificationResult":
        return cls(ok=False, reason=reason)


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Return the header value Jira sends for ``raw_body`` signed with ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_webhook_signature(
    raw_body: bytes, signature: str | None, secret: str | None
) -> VerificationResult:
    """Check an inbound delivery against the shared secret.

    Checking is opt-in: with no secret configured every request is accepted.
    """
    if not secret:
        return VerificationResult.accepted()

    if not signature:
        return VerificationResult.rejected(RejectionReason.MISSING_SIGNATURE)

    expected = compute_signature(secret, raw_body)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        return VerificationResult.rejected(RejectionReason.INVALID_SIGNATURE)

    return VerificationResult.accepted()
