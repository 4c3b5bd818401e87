"""Jira Service Management REST API client."""

from typing import Any

from .base import BaseAtlassianClient


class ServiceDeskClient(BaseAtlassianClient):
    """Client for ``/rest/servicedeskapi``.

    Approval endpoints are still experimental and need an opt-in header.
    """

    api_path = "/rest/servicedeskapi"

    def _experimental(self, experimental: bool) -> dict[str, str]:
        return {"X-ExperimentalApi": "opt-in"} if experimental else {}

    async def get(self, endpoint: str, params: dict | None = None, experimental: bool = False) -> Any:
        return await self._request(
            "GET", endpoint, params=params, headers=self._experimental(experimental)
        )

    async def post(self, endpoint: str, data: Any = None, experimental: bool = False) -> Any:
        return await self._request(
            "POST", endpoint, json=data, headers=self._experimental(experimental)
        )
