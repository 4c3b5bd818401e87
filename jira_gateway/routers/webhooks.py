"""Jira webhook endpoint - verifies, classifies and fans out events to subscribers."""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from jira_gateway.auth.signature import SIGNATURE_HEADER, verify_webhook_signature
from jira_gateway.config import settings
from jira_gateway.delivery import deliver_event
from jira_gateway.dependencies import get_field_cache, get_registry
from jira_gateway.events import classify
from jira_gateway.fields import FieldMetadataCache
from jira_gateway.handlers import fan_out
from jira_gateway.subscriptions import SubscriptionRegistry


logger = logging.getLogger(__name__)
router = APIRouter()

limiter = Limiter(key_func=get_remote_address)


@router.post("/jira", response_class=PlainTextResponse)
@limiter.limit(lambda: settings.webhook_rate_limit)
async def receive_jira_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    registry: SubscriptionRegistry = Depends(get_registry),
    field_cache: FieldMetadataCache = Depends(get_field_cache),
):
    """Receive one Jira webhook delivery.

    401 on signature failure, 400 on malformed JSON or processing errors,
    200 otherwise (including unsupported event types). 429 past the rate limit.
    """
    raw_body = await request.body()

    verification = verify_webhook_signature(
        raw_body, request.headers.get(SIGNATURE_HEADER), settings.jira_webhook_secret
    )
    if not verification.ok:
        logger.warning(f"Webhook request rejected: {verification.reason.value}")
        return PlainTextResponse("Unauthorized", status_code=401)

    try:
        payload = json.loads(raw_body)
        logger.debug(f"Jira webhook received: {payload}")

        classified = classify(payload)
        if classified is None:
            event_name = payload.get("webhookEvent") if isinstance(payload, dict) else None
            logger.info(f"Unsupported webhook event type: {event_name}")
        else:
            event_type, body = classified
            for subscription, event in fan_out(event_type, body, registry, field_cache):
                if subscription.callback_url:
                    background_tasks.add_task(deliver_event, subscription, event)

    except Exception as e:
        logger.error(f"Error processing webhook: {e}")
        return PlainTextResponse("Bad Request", status_code=400)

    return PlainTextResponse("OK")
