"""Project versions (releases)."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from jira_gateway.dependencies import get_jira_client
from jira_gateway.providers import JiraClient


router = APIRouter()


class CreateVersionRequest(BaseModel):
    project_id: int
    name: str = Field(..., min_length=1)
    description: str | None = None
    start_date: str | None = Field(None, description="YYYY-MM-DD")
    release_date: str | None = Field(None, description="YYYY-MM-DD")
    released: bool = False


class UpdateVersionRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    release_date: str | None = None
    released: bool | None = None
    archived: bool | None = None


def _version_out(v: dict) -> dict:
    return {
        "id": v["id"],
        "name": v.get("name"),
        "description": v.get("description"),
        "projectId": v.get("projectId"),
        "releaseDate": v.get("releaseDate"),
        "released": v.get("released", False),
        "archived": v.get("archived", False),
    }


@router.post("", status_code=201)
async def create_version(req: CreateVersionRequest, jira: JiraClient = Depends(get_jira_client)):
    payload: dict[str, Any] = {"projectId": req.project_id, "name": req.name, "released": req.released}
    if req.description:
        payload["description"] = req.description
    if req.start_date:
        payload["startDate"] = req.start_date
    if req.release_date:
        payload["releaseDate"] = req.release_date

    return _version_out(await jira.post("/version", payload))


@router.put("/{version_id}")
async def update_version(
    version_id: str, req: UpdateVersionRequest, jira: JiraClient = Depends(get_jira_client)
):
    """Rename, reschedule, release or archive a version."""
    payload = {
        key: value
        for key, value in {
            "name": req.name,
            "description": req.description,
            "releaseDate": req.release_date,
            "released": req.released,
            "archived": req.archived,
        }.items()
        if value is not None
    }
    if not payload:
        raise HTTPException(400, "No fields to update")

    return _version_out(await jira.put(f"/version/{version_id}", payload))
