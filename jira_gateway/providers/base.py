"""Base REST client shared by the Jira platform and Service Desk APIs."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from jira_gateway.config import settings
from jira_gateway.errors import JiraAPIError, JiraAuthError, parse_jira_error


logger = logging.getLogger(__name__)


class JiraCredentials(BaseModel):
    """Site URL plus basic-auth credentials (account email + API token)."""
    jira_url: str
    email: str
    api_token: str

    @classmethod
    def from_settings(cls) -> "JiraCredentials":
        return cls(
            jira_url=settings.jira_url,
            email=settings.jira_email,
            api_token=settings.jira_api_token,
        )


class BaseAtlassianClient:
    """Async REST client for one Atlassian API root.

    A fresh ``httpx.AsyncClient`` is opened per call; ``transport`` lets tests
    swap in an ``httpx.MockTransport``.
    """

    api_path: str = ""

    def __init__(
        self,
        credentials: JiraCredentials | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.credentials = credentials or JiraCredentials.from_settings()
        self.base_url = f"{self.credentials.jira_url.rstrip('/')}{self.api_path}"
        self.timeout = timeout if timeout is not None else settings.jira_timeout_seconds
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                auth=(self.credentials.email, self.credentials.api_token),
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers={**self._get_headers(), **(headers or {})},
                )
        except httpx.HTTPError as e:
            logger.error(f"Jira request {method} {endpoint} failed: {e}")
            raise JiraAPIError(502, f"request failed: {e}") from e

        if response.status_code in (401, 403):
            logger.error(f"Jira authentication failed - Status: {response.status_code}")
            raise JiraAuthError(response.status_code, parse_jira_error(response.text))
        if not response.is_success:
            message = parse_jira_error(response.text)
            logger.error(f"Jira API request failed - Status: {response.status_code}, Error: {message}")
            raise JiraAPIError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get(self, endpoint: str, params: dict | None = None, **kwargs) -> Any:
        return await self._request("GET", endpoint, params=params, **kwargs)

    async def post(self, endpoint: str, data: Any = None, **kwargs) -> Any:
        return await self._request("POST", endpoint, json=data, **kwargs)

    async def put(self, endpoint: str, data: Any = None, **kwargs) -> Any:
        return await self._request("PUT", endpoint, json=data, **kwargs)

    async def delete(self, endpoint: str, params: dict | None = None, **kwargs) -> Any:
        return await self._request("DELETE", endpoint, params=params, **kwargs)
