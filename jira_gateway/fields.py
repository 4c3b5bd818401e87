"""Jira field metadata cache.

Maps field ids (``summary``, ``customfield_10020``, ...) to their display name
and schema type. The whole mapping is rebuilt on every refresh and published
by swapping a single read-only reference, so readers always see either the
previous complete mapping or the new one. Refreshes are serialized; a failed
refresh leaves the previous mapping in place.
"""

import asyncio
import logging
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Protocol

from pydantic import BaseModel, ConfigDict

from jira_gateway.store import FIELD_MAPPING_KEY


logger = logging.getLogger(__name__)

CUSTOM_FIELD_PREFIX = "customfield_"


class FieldMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str | None = None


class FieldSource(Protocol):
    async def get_fields(self) -> list[dict]: ...


class KeyValueStore(Protocol):
    async def get(self, key: str): ...

    async def set(self, key: str, value) -> None: ...


def parse_fields(fields: list[dict]) -> dict[str, FieldMetadata]:
    """Build the id -> metadata mapping from a ``GET /field`` response."""
    mapping: dict[str, FieldMetadata] = {}
    for field in fields:
        schema = field.get("schema") or {}
        mapping[field["id"]] = FieldMetadata(
            id=field["id"],
            name=field.get("name") or field["id"],
            type=schema.get("type"),
        )
    return mapping


class FieldMetadataCache:
    def __init__(self, store: KeyValueStore):
        self._store = store
        self._fields: Mapping[str, FieldMetadata] = MappingProxyType({})
        self._refresh_lock = asyncio.Lock()
        self.last_refreshed: datetime | None = None

    def get(self, field_id: str) -> FieldMetadata | None:
        return self._fields.get(field_id)

    def snapshot(self) -> Mapping[str, FieldMetadata]:
        """Current mapping; stays self-consistent even if a refresh lands meanwhile."""
        return self._fields

    def custom_fields(self) -> dict[str, FieldMetadata]:
        return {
            field_id: meta
            for field_id, meta in self._fields.items()
            if field_id.startswith(CUSTOM_FIELD_PREFIX)
        }

    def __len__(self) -> int:
        return len(self._fields)

    async def load(self) -> int:
        """Warm the in-process mapping from the persisted copy, if any."""
        stored = await self._store.get(FIELD_MAPPING_KEY)
        if not stored:
            return 0
        self._fields = MappingProxyType(
            {field_id: FieldMetadata(id=field_id, **meta) for field_id, meta in stored.items()}
        )
        logger.info(f"Loaded {len(self._fields)} Jira field mappings from store")
        return len(self._fields)

    async def refresh(self, source: FieldSource) -> Mapping[str, FieldMetadata]:
        """Fetch all fields and replace the mapping. Raises on failure."""
        async with self._refresh_lock:
            mapping = parse_fields(await source.get_fields())
            await self._store.set(
                FIELD_MAPPING_KEY,
                {field_id: {"name": m.name, "type": m.type} for field_id, m in mapping.items()},
            )
            self._fields = MappingProxyType(mapping)
            self.last_refreshed = datetime.now(timezone.utc)

        logger.info(f"Cached {len(mapping)} Jira field mappings")
        return self._fields
