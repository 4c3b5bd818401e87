"""Shared fixtures: isolated settings, a lifespan-managed TestClient and a stubbed Jira API."""

import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from jira_gateway.config import settings
from jira_gateway.dependencies import get_jira_client, get_service_desk_client
from jira_gateway.main import app
from jira_gateway.providers import JiraClient, JiraCredentials, ServiceDeskClient
from jira_gateway.routers.webhooks import limiter


JIRA_URL = "https://example.atlassian.net"

FIELDS = [
    {"id": "summary", "name": "Summary", "custom": False, "schema": {"type": "string"}},
    {"id": "customfield_10001", "name": "Team", "custom": True, "schema": {"type": "option"}},
    {"id": "customfield_10002", "name": "Region", "custom": True, "schema": {"type": "option-with-child"}},
    {"id": "customfield_10003", "name": "Reviewer", "custom": True, "schema": {"type": "user"}},
    {"id": "customfield_10004", "name": "Time to resolution", "custom": True, "schema": {"type": "sd-servicelevelagreement"}},
]


MYSELF = {"accountId": "abc", "displayName": "Integration Bot", "emailAddress": "bot@example.com"}


class FakeJiraClient:
    def __init__(self, myself=MYSELF, fields=FIELDS, error: Exception | None = None):
        self.myself = myself
        self.fields = fields
        self.error = error
        self.field_calls = 0

    async def get_myself(self):
        if self.error is not None:
            raise self.error
        return self.myself

    async def get_fields(self):
        self.field_calls += 1
        return self.fields


class StaticFieldSource:
    """Stand-in for JiraClient.get_fields that counts calls."""

    def __init__(self, fields: list[dict], error: Exception | None = None):
        self.fields = fields
        self.error = error
        self.calls = 0

    async def get_fields(self) -> list[dict]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.fields


class JiraStub:
    """Canned Jira responses keyed by (method, path); records every request."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status_code: int = 200, json: Any = None) -> None:
        self.routes[(method, path)] = (status_code, json)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, body = self.routes.get(
            (request.method, request.url.path), (404, {"errorMessages": ["Not stubbed"]})
        )
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    def sent_json(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "api_key", "")
    monkeypatch.setattr(settings, "jira_url", "")
    monkeypatch.setattr(settings, "jira_email", "")
    monkeypatch.setattr(settings, "jira_api_token", "")
    monkeypatch.setattr(settings, "jira_webhook_secret", "")
    monkeypatch.setattr(settings, "database_url", "")
    monkeypatch.setattr(settings, "scheduler_enabled", False)
    monkeypatch.setattr(limiter, "enabled", False)
    return settings


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_client(client: TestClient):
    """Client whose field cache already holds FIELDS."""
    client.portal.call(client.app.state.field_cache.refresh, StaticFieldSource(FIELDS))
    return client


@pytest.fixture
def jira_stub(client: TestClient) -> JiraStub:
    stub = JiraStub()
    credentials = JiraCredentials(jira_url=JIRA_URL, email="bot@example.com", api_token="token")
    transport = httpx.MockTransport(stub.handler)
    app.dependency_overrides[get_jira_client] = lambda: JiraClient(credentials=credentials, transport=transport)
    app.dependency_overrides[get_service_desk_client] = lambda: ServiceDeskClient(
        credentials=credentials, transport=transport
    )
    return stub
