"""Integration status and sync - credentials check plus custom field mapping."""

from fastapi import APIRouter, Depends

from jira_gateway.dependencies import get_field_cache, get_integration
from jira_gateway.fields import FieldMetadata, FieldMetadataCache
from jira_gateway.sync import IntegrationState, IntegrationSync


router = APIRouter()


@router.get("/status", response_model=IntegrationState)
async def get_status(integration: IntegrationSync = Depends(get_integration)):
    return integration.state


@router.post("/sync", response_model=IntegrationState)
async def run_sync(integration: IntegrationSync = Depends(get_integration)):
    """Re-validate credentials and refresh the field mapping now."""
    return await integration.sync()


@router.get("/fields", response_model=dict[str, FieldMetadata])
async def get_custom_fields(field_cache: FieldMetadataCache = Depends(get_field_cache)):
    """Cached custom field ids mapped to display name and type."""
    return field_cache.custom_fields()
