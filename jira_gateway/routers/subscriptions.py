"""Webhook subscriptions - who receives which Jira events."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field

from jira_gateway.dependencies import get_registry
from jira_gateway.events import FILTER_PATHS, WebhookEventType, WebhookSubscription
from jira_gateway.subscriptions import SubscriptionRegistry


logger = logging.getLogger(__name__)
router = APIRouter()


class SubscriptionRequest(BaseModel):
    type_id: WebhookEventType
    filter_config: dict[str, list[str] | None] = Field(default_factory=dict)
    callback_url: str | None = Field(None, max_length=2048)
    secret: str | None = Field(None, description="Signs deliveries to callback_url when set")


class EventsResponse(BaseModel):
    subscription_id: str
    count: int
    events: list[dict]


def _get_or_404(registry: SubscriptionRegistry, subscription_id: str) -> WebhookSubscription:
    subscription = registry.get(subscription_id)
    if subscription is None:
        raise HTTPException(404, f"Subscription not found: {subscription_id}")
    return subscription


@router.post("", response_model=WebhookSubscription, status_code=201)
async def create_subscription(
    req: SubscriptionRequest, registry: SubscriptionRegistry = Depends(get_registry)
):
    """Subscribe to one event type, optionally narrowed by filter lists."""
    unknown = set(req.filter_config) - set(FILTER_PATHS[req.type_id])
    if unknown:
        logger.info(f"Ignoring filters not supported for {req.type_id.value}: {sorted(unknown)}")

    subscription = registry.add(WebhookSubscription(**req.model_dump()))
    logger.info(f"Created {subscription.type_id.value} subscription {subscription.id}")
    return subscription


@router.get("", response_model=list[WebhookSubscription])
async def list_subscriptions(
    type_id: WebhookEventType | None = Query(default=None),
    registry: SubscriptionRegistry = Depends(get_registry),
):
    return registry.list_subscriptions(type_id)


@router.get("/{subscription_id}", response_model=WebhookSubscription)
async def get_subscription(subscription_id: str, registry: SubscriptionRegistry = Depends(get_registry)):
    return _get_or_404(registry, subscription_id)


@router.delete("/{subscription_id}", status_code=204)
async def delete_subscription(subscription_id: str, registry: SubscriptionRegistry = Depends(get_registry)):
    if not registry.remove(subscription_id):
        raise HTTPException(404, f"Subscription not found: {subscription_id}")
    return Response(status_code=204)


@router.get("/{subscription_id}/events", response_model=EventsResponse)
async def get_subscription_events(
    subscription_id: str, registry: SubscriptionRegistry = Depends(get_registry)
):
    """Most recent events dispatched to this subscription, newest last."""
    _get_or_404(registry, subscription_id)
    events = registry.recent_events(subscription_id)
    return EventsResponse(subscription_id=subscription_id, count=len(events), events=events)
