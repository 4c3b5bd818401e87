"""Jira Gateway - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from jira_gateway.config import settings
from jira_gateway.dependencies import verify_api_key
from jira_gateway.errors import JiraAPIError, jira_api_error_handler
from jira_gateway.fields import FieldMetadataCache
from jira_gateway.routers import (
    health,
    integration,
    issues,
    service_desk,
    subscriptions,
    users,
    versions,
    webhooks,
)
from jira_gateway.scheduler import setup_scheduler
from jira_gateway.store import create_store
from jira_gateway.subscriptions import SubscriptionRegistry
from jira_gateway.sync import IntegrationSync


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = create_store(settings.database_url)
    field_cache = FieldMetadataCache(store)
    await field_cache.load()

    app.state.store = store
    app.state.field_cache = field_cache
    app.state.registry = SubscriptionRegistry(settings.recent_events_limit)
    app.state.integration = IntegrationSync(field_cache)

    scheduler = None
    if settings.jira_configured and settings.scheduler_enabled:
        scheduler = AsyncIOScheduler()
        setup_scheduler(scheduler, app.state.integration, settings.field_refresh_interval_minutes)
        scheduler.start()
    elif not settings.jira_configured:
        logger.warning("Jira credentials not configured; field mapping refresh disabled")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await store.close()


app = FastAPI(
    title="Jira Gateway",
    description="Jira Cloud integration: webhook fan-out, custom field normalization and issue actions",
    version=health.VERSION,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = webhooks.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(JiraAPIError, jira_api_error_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers (health is public, Jira webhooks authenticate by signature; others
# require API key when API_KEY is set)
app.include_router(health.router)
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(
    subscriptions.router,
    prefix="/subscriptions",
    tags=["subscriptions"],
    dependencies=[Depends(verify_api_key)],
)
app.include_router(
    integration.router, prefix="/integration", tags=["integration"], dependencies=[Depends(verify_api_key)]
)
app.include_router(
    issues.router, prefix="/issues", tags=["issues"], dependencies=[Depends(verify_api_key)]
)
app.include_router(
    users.router, prefix="/users", tags=["users"], dependencies=[Depends(verify_api_key)]
)
app.include_router(
    versions.router, prefix="/versions", tags=["versions"], dependencies=[Depends(verify_api_key)]
)
app.include_router(
    service_desk.router, prefix="/servicedesk", tags=["servicedesk"], dependencies=[Depends(verify_api_key)]
)
