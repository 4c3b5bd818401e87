from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from jira_gateway.config import settings


router = APIRouter(tags=["health"])

_startup_time = datetime.now(timezone.utc)

VERSION = "0.1.0"


class EndpointInfo(BaseModel):
    path: str
    description: str
    provider: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    endpoints: list[EndpointInfo]


class IntegrationStatus(BaseModel):
    connected: bool
    status: str
    last_check: str | None = None


class IntegrationsResponse(BaseModel):
    jira: IntegrationStatus
    webhook_signature: IntegrationStatus
    field_mapping: IntegrationStatus


ENDPOINTS = [
    EndpointInfo(path="/health", description="Gateway status and API directory"),
    EndpointInfo(path="/health/integrations", description="Integration connection status"),
    EndpointInfo(path="/webhooks/jira", description="Inbound Jira webhooks", provider="Jira"),
    EndpointInfo(path="/subscriptions", description="Webhook event subscriptions"),
    EndpointInfo(path="/integration", description="Jira sync status and field mapping", provider="Jira"),
    EndpointInfo(path="/issues", description="Issue management", provider="Jira"),
    EndpointInfo(path="/users", description="User details", provider="Jira"),
    EndpointInfo(path="/versions", description="Project versions", provider="Jira"),
    EndpointInfo(path="/servicedesk", description="Service desk requests, SLAs, approvals", provider="Jira Service Management"),
]


def _check_jira(request: Request) -> IntegrationStatus:
    if not settings.jira_configured:
        return IntegrationStatus(connected=False, status="credentials not configured")

    state = request.app.state.integration.state
    return IntegrationStatus(
        connected=state.status == "ready",
        status=state.status.value,
        last_check=state.last_sync,
    )


def _check_webhook_signature() -> IntegrationStatus:
    if not settings.jira_webhook_secret:
        return IntegrationStatus(connected=False, status="secret not configured (signatures not verified)")
    return IntegrationStatus(connected=True, status="ok")


def _check_field_mapping(request: Request) -> IntegrationStatus:
    cache = request.app.state.field_cache
    if not len(cache):
        return IntegrationStatus(connected=False, status="empty (not synced yet)")
    return IntegrationStatus(
        connected=True,
        status=f"{len(cache)} fields cached",
        last_check=cache.last_refreshed.isoformat() if cache.last_refreshed else None,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check():
    uptime = (datetime.now(timezone.utc) - _startup_time).total_seconds()

    return HealthResponse(
        status="ok",
        version=VERSION,
        uptime_seconds=round(uptime, 2),
        endpoints=ENDPOINTS,
    )


@router.get("/health/integrations", response_model=IntegrationsResponse)
async def get_integrations(request: Request):
    return IntegrationsResponse(
        jira=_check_jira(request),
        webhook_signature=_check_webhook_signature(),
        field_mapping=_check_field_mapping(request),
    )
