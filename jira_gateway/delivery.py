"""Outbound delivery of normalized events to subscriber callback URLs."""

import asyncio
import hashlib
import hmac
import json
import logging
from typing import Any

import httpx

from jira_gateway.config import settings
from jira_gateway.events import WebhookSubscription


logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Jira-Gateway-Signature"


def generate_hmac_signature(secret: str, payload: dict[str, Any]) -> str:
    """Hex-encoded HMAC-SHA256 of the compact JSON encoding of ``payload``."""
    payload_bytes = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256).hexdigest()


async def deliver_event(
    subscription: WebhookSubscription,
    event: dict[str, Any],
    timeout_seconds: float | None = None,
    max_attempts: int | None = None,
    base_backoff_seconds: float | None = None,
    max_backoff_seconds: float = 10.0,
) -> bool:
    """POST one event to the subscription's callback, retrying with exponential backoff.

    Never raises; returns whether a 2xx response was received.
    """
    if not subscription.callback_url:
        return False

    timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.delivery_timeout_seconds
    max_attempts = max_attempts if max_attempts is not None else settings.delivery_max_attempts
    backoff_seconds = max(
        base_backoff_seconds if base_backoff_seconds is not None else settings.delivery_backoff_seconds,
        0,
    )

    headers = {
        "Content-Type": "application/json",
        "X-Jira-Gateway-Event": subscription.type_id.value,
    }
    if subscription.secret:
        headers[SIGNATURE_HEADER] = f"sha256={generate_hmac_signature(subscription.secret, event)}"
    content = json.dumps(event, separators=(",", ":"))

    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        for attempt in range(1, max_attempts + 1):
            response_status: int | None = None
            try:
                response = await client.post(subscription.callback_url, content=content, headers=headers)
                response_status = response.status_code
                if response.is_success:
                    logger.info(
                        f"Delivered {subscription.type_id.value} event to subscription "
                        f"{subscription.id} (attempt {attempt})"
                    )
                    return True
                error_message = f"HTTP {response.status_code}"
            except httpx.HTTPError as e:
                error_message = str(e)

            will_retry = attempt < max_attempts
            logger.warning(
                f"Event delivery to subscription {subscription.id} failed "
                f"(status={response_status}, error={error_message}, attempt {attempt}/{max_attempts}, "
                f"will_retry={will_retry})"
            )
            if not will_retry:
                break

            if backoff_seconds > 0:
                await asyncio.sleep(backoff_seconds)
                backoff_seconds = min(backoff_seconds * 2, max_backoff_seconds)

    return False
