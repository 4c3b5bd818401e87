"""Integration sync: validate credentials and refresh the field mapping."""

import logging
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from jira_gateway.fields import FieldMetadata, FieldMetadataCache
from jira_gateway.providers import JiraClient


logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class IntegrationSignals(BaseModel):
    userAccountId: str | None = None
    userDisplayName: str | None = None
    userEmailAddress: str | None = None
    customFieldsMapping: dict[str, FieldMetadata] = Field(default_factory=dict)


class IntegrationState(BaseModel):
    status: SyncStatus = SyncStatus.PENDING
    description: str | None = None
    last_sync: str | None = None
    signals: IntegrationSignals = Field(default_factory=IntegrationSignals)


class IntegrationSync:
    def __init__(self, cache: FieldMetadataCache, client_factory=JiraClient):
        self.cache = cache
        self._client_factory = client_factory
        self.state = IntegrationState()

    async def sync(self) -> IntegrationState:
        """Check credentials via /myself, then refresh the field cache.

        Failures mark the integration failed and keep the previous cache and signals.
        """
        try:
            client = self._client_factory()
            user_info = await client.get_myself()
            await self.cache.refresh(client)
        except Exception as e:
            logger.error(f"Error during Jira API authentication: {e}")
            self.state = self.state.model_copy(
                update={
                    "status": SyncStatus.FAILED,
                    "description": "Authentication error, see logs",
                    "last_sync": datetime.now(timezone.utc).isoformat(),
                }
            )
            return self.state

        self.state = IntegrationState(
            status=SyncStatus.READY,
            last_sync=datetime.now(timezone.utc).isoformat(),
            signals=IntegrationSignals(
                userAccountId=user_info.get("accountId"),
                userDisplayName=user_info.get("displayName"),
                userEmailAddress=user_info.get("emailAddress"),
                customFieldsMapping=self.cache.custom_fields(),
            ),
        )
        logger.info(f"Jira sync complete ({len(self.cache)} fields cached)")
        return self.state
