import json

import pytest

from jira_gateway.auth.signature import SIGNATURE_HEADER, compute_signature
from jira_gateway.events import EVENT_NAMES
from jira_gateway.routers.webhooks import limiter


ISSUE = {
    "id": "10001",
    "key": "PROJ-1",
    "fields": {
        "summary": "Broken login",
        "project": {"key": "PROJ"},
        "issuetype": {"name": "Bug"},
        "customfield_10001": {"value": "Platform"},
        "customfield_10002": {"value": "EMEA", "child": {"value": "UK"}},
    },
}
PAYLOAD = {
    "webhookEvent": "jira:issue_created",
    "issue": ISSUE,
    "user": {"accountId": "abc", "displayName": "Ada"},
}


def _subscribe(client, type_id="issueCreated", **extra) -> str:
    response = client.post("/subscriptions", json={"type_id": type_id, **extra})
    assert response.status_code == 201
    return response.json()["id"]


def _post(client, payload, headers=None):
    return client.post("/webhooks/jira", content=json.dumps(payload).encode(), headers=headers or {})


def test_issue_created_is_dispatched_with_normalized_fields(seeded_client):
    subscription_id = _subscribe(seeded_client, filter_config={"projectKeys": ["PROJ"]})

    response = _post(seeded_client, PAYLOAD)

    assert response.status_code == 200
    assert response.text == "OK"

    events = seeded_client.get(f"/subscriptions/{subscription_id}/events").json()
    assert events["count"] == 1
    issue = events["events"][0]["issue"]
    assert issue["key"] == "PROJ-1"
    assert issue["customFields"] == {"Team": "Platform", "Region": {"parent": "EMEA", "child": "UK"}}


def test_filtered_out_subscription_receives_nothing(client):
    subscription_id = _subscribe(client, filter_config={"projectKeys": ["OTHER"]})

    assert _post(client, PAYLOAD).status_code == 200

    assert client.get(f"/subscriptions/{subscription_id}/events").json()["count"] == 0


def test_without_field_cache_custom_fields_keyed_by_id(client):
    subscription_id = _subscribe(client)

    _post(client, PAYLOAD)

    custom = client.get(f"/subscriptions/{subscription_id}/events").json()["events"][0]["issue"]["customFields"]
    assert custom == {"customfield_10001": "Platform", "customfield_10002": "EMEA"}


def test_unsupported_event_is_acknowledged(client):
    subscription_id = _subscribe(client)

    response = _post(client, {"webhookEvent": "jira:issue_deleted", "issue": ISSUE})

    assert response.status_code == 200
    assert client.get(f"/subscriptions/{subscription_id}/events").json()["count"] == 0


def test_malformed_json_is_rejected(client):
    response = client.post("/webhooks/jira", content=b"{not json")
    assert response.status_code == 400
    assert response.text == "Bad Request"


def test_event_missing_issue_is_acknowledged_without_dispatch(client):
    subscription_id = _subscribe(client)

    response = _post(client, {"webhookEvent": "jira:issue_created", "user": {"accountId": "abc"}})

    assert (response.status_code, response.text) == (200, "OK")
    assert client.get(f"/subscriptions/{subscription_id}/events").json()["count"] == 0


def test_non_string_event_name_is_acknowledged(client):
    subscription_id = _subscribe(client)

    response = _post(client, {"webhookEvent": ["jira:issue_created"], "issue": ISSUE})

    assert (response.status_code, response.text) == (200, "OK")
    assert client.get(f"/subscriptions/{subscription_id}/events").json()["count"] == 0


def test_rate_limit_answers_429(client, isolated_settings, monkeypatch):
    monkeypatch.setattr(isolated_settings, "webhook_rate_limit", "2/minute")
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    try:
        statuses = [_post(client, PAYLOAD).status_code for _ in range(3)]
    finally:
        limiter.reset()

    assert statuses == [200, 200, 429]


def test_signature_enforced_when_secret_configured(client, isolated_settings, monkeypatch):
    monkeypatch.setattr(isolated_settings, "jira_webhook_secret", "s3cret")
    body = json.dumps(PAYLOAD).encode()

    missing = client.post("/webhooks/jira", content=body)
    forged = client.post("/webhooks/jira", content=body, headers={SIGNATURE_HEADER: "sha256=" + "0" * 64})
    valid = client.post(
        "/webhooks/jira", content=body, headers={SIGNATURE_HEADER: compute_signature("s3cret", body)}
    )

    assert (missing.status_code, missing.text) == (401, "Unauthorized")
    assert forged.status_code == 401
    assert valid.status_code == 200


def test_webhook_does_not_require_api_key(client, isolated_settings, monkeypatch):
    monkeypatch.setattr(isolated_settings, "api_key", "gateway-key")
    assert _post(client, PAYLOAD).status_code == 200


def test_callback_delivery_is_scheduled(client, monkeypatch):
    delivered = []

    async def fake_deliver(subscription, event):
        delivered.append((subscription.id, event["issue"]["key"]))

    monkeypatch.setattr("jira_gateway.routers.webhooks.deliver_event", fake_deliver)
    with_callback = _subscribe(client, callback_url="https://example.com/hook")
    _subscribe(client)

    _post(client, PAYLOAD)

    assert delivered == [(with_callback, "PROJ-1")]


@pytest.mark.parametrize(
    "payload,filters",
    [
        ({"webhookEvent": "jira:issue_updated", "issue": ISSUE, "changelog": {"items": []}}, {"issueTypes": ["Bug"]}),
        ({"webhookEvent": "comment_created", "issue": ISSUE, "comment": {"id": "1"}}, {}),
        ({"webhookEvent": "jira:version_released", "version": {"id": "7", "projectId": 10000}}, {"projectIds": ["10000"]}),
    ],
)
def test_other_event_types_dispatch(client, payload, filters):
    type_id = EVENT_NAMES[payload["webhookEvent"]].value
    subscription_id = _subscribe(client, type_id=type_id, filter_config=filters)

    assert _post(client, payload).status_code == 200
    assert client.get(f"/subscriptions/{subscription_id}/events").json()["count"] == 1
