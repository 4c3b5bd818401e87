"""Jira Cloud platform REST API (v3) client."""

from .base import BaseAtlassianClient


class JiraClient(BaseAtlassianClient):
    """Client for ``/rest/api/3``."""

    api_path = "/rest/api/3"

    async def get_myself(self) -> dict:
        """Return the account behind the configured credentials."""
        return await self.get("/myself")

    async def get_fields(self) -> list[dict]:
        """Return every standard and custom field: ``[{id, name, custom, schema?}]``."""
        return await self.get("/field") or []
