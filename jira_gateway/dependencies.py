"""Shared FastAPI dependencies."""

import hmac

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from jira_gateway.config import settings
from jira_gateway.fields import FieldMetadataCache
from jira_gateway.providers import JiraClient, ServiceDeskClient
from jira_gateway.subscriptions import SubscriptionRegistry
from jira_gateway.sync import IntegrationSync


api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """Require X-API-Key when API_KEY is configured."""
    if not settings.api_key:
        return
    if not api_key or not hmac.compare_digest(api_key.encode(), settings.api_key.encode()):
        raise HTTPException(401, "Invalid or missing API key")


def get_field_cache(request: Request) -> FieldMetadataCache:
    return request.app.state.field_cache


def get_registry(request: Request) -> SubscriptionRegistry:
    return request.app.state.registry


def get_integration(request: Request) -> IntegrationSync:
    return request.app.state.integration


def _require_jira() -> None:
    if not settings.jira_configured:
        raise HTTPException(503, "Jira credentials not configured")


def get_jira_client() -> JiraClient:
    _require_jira()
    return JiraClient()


def get_service_desk_client() -> ServiceDeskClient:
    _require_jira()
    return ServiceDeskClient()
