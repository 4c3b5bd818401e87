"""Subscriber event builders for routed Jira webhook messages.

Each builder turns a message body from ``events.classify`` into the outbound
event a subscriber receives: issue/version data, custom fields keyed by
display name, and the time the event was processed.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from jira_gateway.events import WebhookEventType, WebhookSubscription, route
from jira_gateway.normalize import FieldLookup, extract_custom_fields, extract_user
from jira_gateway.subscriptions import SubscriptionRegistry


logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _attr(fields: dict, name: str, attr: str) -> Any:
    value = fields.get(name)
    return value.get(attr) if isinstance(value, dict) else None


def issue_data(issue: dict, lookup: FieldLookup | None, timestamp_field: str) -> dict:
    """Flatten the commonly used issue fields and normalize its custom fields."""
    fields = _dict(issue.get("fields"))
    return {
        "id": issue.get("id"),
        "key": issue.get("key"),
        "summary": fields.get("summary"),
        "status": _attr(fields, "status", "name"),
        "assignee": _attr(fields, "assignee", "displayName"),
        "priority": _attr(fields, "priority", "name"),
        "issueType": _attr(fields, "issuetype", "name"),
        "project": _attr(fields, "project", "key"),
        "labels": fields.get("labels") or [],
        timestamp_field: fields.get(timestamp_field),
        "customFields": extract_custom_fields(fields, lookup),
    }


def _require(body: dict, key: str, event_type: WebhookEventType) -> dict:
    value = body.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{event_type.value} payload is missing '{key}'")
    return value


def build_issue_created(body: dict, lookup: FieldLookup | None) -> dict:
    issue = _require(body, "issue", WebhookEventType.ISSUE_CREATED)
    return {
        "issue": issue_data(issue, lookup, "created"),
        "createdBy": extract_user(body.get("user")),
        "timestamp": _now(),
    }


def build_issue_updated(body: dict, lookup: FieldLookup | None) -> dict:
    issue = _require(body, "issue", WebhookEventType.ISSUE_UPDATED)
    items = _dict(body.get("changelog")).get("items")
    changes = [
        {
            "field": item.get("field"),
            "fieldtype": item.get("fieldtype"),
            "from": item.get("fromString"),
            "to": item.get("toString"),
        }
        for item in (items if isinstance(items, list) else [])
        if isinstance(item, dict)
    ]
    return {
        "issue": issue_data(issue, lookup, "updated"),
        "changes": changes,
        "updatedBy": extract_user(body.get("user")),
        "timestamp": _now(),
    }


def build_comment_created(body: dict, lookup: FieldLookup | None) -> dict:
    issue = _require(body, "issue", WebhookEventType.COMMENT_CREATED)
    comment = _dict(body.get("comment"))
    return {
        "issue": issue_data(issue, lookup, "updated"),
        "comment": {
            "id": comment.get("id"),
            "body": comment.get("body"),
            "author": extract_user(comment.get("author")),
            "created": comment.get("created"),
            "updated": comment.get("updated"),
        },
        "timestamp": _now(),
    }


def build_version_released(body: dict, lookup: FieldLookup | None) -> dict:
    version = _require(body, "version", WebhookEventType.VERSION_RELEASED)
    return {
        "version": {
            "id": version.get("id"),
            "name": version.get("name"),
            "description": version.get("description"),
            "projectId": version.get("projectId"),
            "releaseDate": version.get("releaseDate"),
            "released": version.get("released"),
            "archived": version.get("archived"),
        },
        "releasedBy": extract_user(body.get("user")),
        "timestamp": _now(),
    }


EVENT_BUILDERS: dict[WebhookEventType, Callable[[dict, FieldLookup | None], dict]] = {
    WebhookEventType.ISSUE_CREATED: build_issue_created,
    WebhookEventType.ISSUE_UPDATED: build_issue_updated,
    WebhookEventType.COMMENT_CREATED: build_comment_created,
    WebhookEventType.VERSION_RELEASED: build_version_released,
}


def fan_out(
    event_type: WebhookEventType,
    body: dict,
    registry: SubscriptionRegistry,
    lookup: FieldLookup | None,
) -> list[tuple[WebhookSubscription, dict]]:
    """Build the event for every matching subscription and record it.

    A subscription whose event cannot be built is logged and skipped; the
    others still receive theirs. Returns (subscription, event) pairs so the
    caller can schedule delivery.
    """
    matching = route(event_type, body, registry.list_subscriptions(event_type))
    if not matching:
        logger.info(f"No subscriptions matched {event_type.value} event")
        return []

    build = EVENT_BUILDERS[event_type]
    dispatched = []
    for subscription in matching:
        try:
            event = build(body, lookup)
        except Exception as e:
            logger.error(f"Failed to build {event_type.value} event for subscription {subscription.id}: {e}")
            continue
        registry.record_event(subscription.id, event)
        dispatched.append((subscription, event))

    logger.info(f"Dispatched {event_type.value} event to {len(dispatched)} subscription(s)")
    return dispatched
