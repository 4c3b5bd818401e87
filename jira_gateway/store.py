"""Key-value storage for process-wide integration state (the field mapping)."""

import json
import logging
from typing import Any, Optional

import asyncpg


logger = logging.getLogger(__name__)

FIELD_MAPPING_KEY = "jira_field_mapping"

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key        TEXT PRIMARY KEY,
    value      JSONB NOT NULL,
    updated_at TIMESTAMPTZ DEFAULT NOW()
);
"""


class MemoryStore:
    """In-process store. Values are replaced wholesale on every write."""

    def __init__(self):
        self._data: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def close(self) -> None:
        pass


class PostgresStore:
    """Postgres-backed store, one JSONB row per key."""

    def __init__(self, database_url: str):
        self._dsn = database_url.replace("postgresql+asyncpg://", "postgresql://")
        self._pool: Optional[asyncpg.Pool] = None

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(dsn=self._dsn, min_size=1, max_size=3)
            async with self._pool.acquire() as conn:
                await conn.execute(_SCHEMA_SQL)
            logger.info("KV store DB pool ready")
        return self._pool

    async def get(self, key: str) -> Any | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            raw = await conn.fetchval("SELECT value FROM kv_store WHERE key = $1", key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES ($1, $2::jsonb, NOW())
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                """,
                key,
                json.dumps(value),
            )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None


def create_store(database_url: str = "") -> MemoryStore | PostgresStore:
    if database_url:
        return PostgresStore(database_url)
    return MemoryStore()
