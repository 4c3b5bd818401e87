"""Inbound Jira webhook classification and subscriber routing."""

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class WebhookEventType(str, Enum):
    ISSUE_CREATED = "issueCreated"
    ISSUE_UPDATED = "issueUpdated"
    COMMENT_CREATED = "commentCreated"
    VERSION_RELEASED = "versionReleased"


# Jira "webhookEvent" -> internal event type. Anything else is ignored.
EVENT_NAMES: dict[str, WebhookEventType] = {
    "jira:issue_created": WebhookEventType.ISSUE_CREATED,
    "jira:issue_updated": WebhookEventType.ISSUE_UPDATED,
    "comment_created": WebhookEventType.COMMENT_CREATED,
    "jira:version_released": WebhookEventType.VERSION_RELEASED,
}

# Payload sub-objects forwarded to subscribers, per event type
MESSAGE_KEYS: dict[WebhookEventType, tuple[str, ...]] = {
    WebhookEventType.ISSUE_CREATED: ("issue", "user"),
    WebhookEventType.ISSUE_UPDATED: ("issue", "user", "changelog"),
    WebhookEventType.COMMENT_CREATED: ("issue", "comment"),
    WebhookEventType.VERSION_RELEASED: ("version", "user"),
}

_ISSUE_FILTER_PATHS: dict[str, tuple[str, ...]] = {
    "projectKeys": ("issue", "fields", "project", "key"),
    "issueTypes": ("issue", "fields", "issuetype", "name"),
    "priorities": ("issue", "fields", "priority", "name"),
    "statuses": ("issue", "fields", "status", "name"),
}

# Filter key -> path into the message body. Keys not listed for a type impose no constraint.
FILTER_PATHS: dict[WebhookEventType, dict[str, tuple[str, ...]]] = {
    WebhookEventType.ISSUE_CREATED: _ISSUE_FILTER_PATHS,
    WebhookEventType.ISSUE_UPDATED: _ISSUE_FILTER_PATHS,
    WebhookEventType.COMMENT_CREATED: _ISSUE_FILTER_PATHS,
    WebhookEventType.VERSION_RELEASED: {
        "projectIds": ("version", "projectId"),
    },
}


class WebhookSubscription(BaseModel):
    """A subscriber interested in one event type, narrowed by filter lists."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type_id: WebhookEventType
    filter_config: dict[str, list[str] | None] = Field(default_factory=dict)
    callback_url: str | None = None
    secret: str | None = Field(default=None, exclude=True)


def classify(payload: Any) -> tuple[WebhookEventType, dict] | None:
    """Map a webhook payload to its event type and message body.

    Returns None for unsupported events. Sub-objects missing from the payload
    are left out of the message body rather than defaulted.
    """
    if not isinstance(payload, dict):
        return None

    name = payload.get("webhookEvent")
    event_type = EVENT_NAMES.get(name) if isinstance(name, str) else None
    if event_type is None:
        return None

    body = {key: payload[key] for key in MESSAGE_KEYS[event_type] if key in payload}
    return event_type, body


def _resolve(body: Any, path: tuple[str, ...]) -> Any:
    current = body
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def matches_filters(
    event_type: WebhookEventType, body: dict, filter_config: dict[str, list[str] | None]
) -> bool:
    """True when every non-empty filter list contains the body's value at that filter's path."""
    paths = FILTER_PATHS[event_type]
    for key, accepted in (filter_config or {}).items():
        if not accepted:
            continue
        path = paths.get(key)
        if path is None:
            continue
        actual = _resolve(body, path)
        if actual is None or str(actual) not in accepted:
            return False
    return True


def route(
    event_type: WebhookEventType, body: dict, subscriptions: list[WebhookSubscription]
) -> list[WebhookSubscription]:
    """Subscriptions of this event type whose filters all accept the message, in input order."""
    return [
        subscription
        for subscription in subscriptions
        if subscription.type_id == event_type
        and matches_filters(event_type, body, subscription.filter_config)
    ]
