"""Shared error types and error-parsing utilities for the Jira integration."""

import json

from fastapi import Request
from fastapi.responses import JSONResponse


class JiraAPIError(Exception):
    """Non-success response (or transport failure) from the Jira REST API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Jira API error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class JiraAuthError(JiraAPIError):
    """Jira rejected the configured credentials (401/403)."""


def parse_jira_error(response_text: str) -> str:
    """Extract a readable message from a Jira API error response.

    Jira returns JSON like {"errorMessages": ["..."], "errors": {"field": "..."}}.
    Returns the messages joined with "; " when parseable, raw text otherwise.
    """
    try:
        body = json.loads(response_text)
        messages = list(body.get("errorMessages") or [])
        for field, msg in (body.get("errors") or {}).items():
            messages.append(f"{field}: {msg}")
        if not messages and body.get("message"):
            messages.append(body["message"])
        if messages:
            return "; ".join(str(m) for m in messages)
    except Exception:
        pass
    return response_text


async def jira_api_error_handler(request: Request, exc: JiraAPIError) -> JSONResponse:
    """Map Jira failures raised inside routers to gateway responses."""
    if isinstance(exc, JiraAuthError):
        return JSONResponse(status_code=502, content={"detail": "Jira rejected credentials"})
    if exc.status_code in (400, 404):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
    return JSONResponse(status_code=502, content={"detail": f"Jira API error: {exc.message}"})
