"""In-process registry of webhook subscriptions and their recent events."""

from collections import deque

from jira_gateway.events import WebhookEventType, WebhookSubscription


class SubscriptionRegistry:
    def __init__(self, recent_events_limit: int = 50):
        self._subscriptions: dict[str, WebhookSubscription] = {}
        self._recent: dict[str, deque] = {}
        self._recent_events_limit = recent_events_limit

    def add(self, subscription: WebhookSubscription) -> WebhookSubscription:
        self._subscriptions[subscription.id] = subscription
        self._recent[subscription.id] = deque(maxlen=self._recent_events_limit)
        return subscription

    def get(self, subscription_id: str) -> WebhookSubscription | None:
        return self._subscriptions.get(subscription_id)

    def remove(self, subscription_id: str) -> bool:
        self._recent.pop(subscription_id, None)
        return self._subscriptions.pop(subscription_id, None) is not None

    def list_subscriptions(self, type_id: WebhookEventType | None = None) -> list[WebhookSubscription]:
        return [
            subscription
            for subscription in self._subscriptions.values()
            if type_id is None or subscription.type_id == type_id
        ]

    def record_event(self, subscription_id: str, event: dict) -> None:
        buffer = self._recent.get(subscription_id)
        if buffer is not None:
            buffer.append(event)

    def recent_events(self, subscription_id: str) -> list[dict]:
        """Most recent events for a subscription, newest last."""
        return list(self._recent.get(subscription_id, ()))
