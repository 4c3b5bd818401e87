"""Jira issues - CRUD, workflow transitions, JQL search and collaboration."""

from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from jira_gateway.dependencies import get_field_cache, get_jira_client
from jira_gateway.fields import FieldMetadataCache
from jira_gateway.handlers import issue_data
from jira_gateway.normalize import extract_custom_fields, extract_user
from jira_gateway.providers import JiraClient

router = APIRouter()

MAX_SEARCH_RESULTS = 100


def to_adf(text: str) -> dict:
    """Wrap plain text in a single-paragraph Atlassian Document Format doc."""
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
    }


def _key(issue_key: str) -> str:
    return quote(issue_key, safe="")


# ---------------------------------------------------------------------------
# Create / read / update
# ---------------------------------------------------------------------------


class CreateIssueRequest(BaseModel):
    project_key: str
    issue_type_name: str
    summary: str = Field(..., min_length=1)
    description: str | None = None
    priority_name: str | None = None
    assignee_account_id: str | None = None
    parent_key: str | None = None
    labels: list[str] | None = None
    additional_fields: dict[str, Any] | None = Field(
        None, description="Extra fields (custom fields, components, ...) merged into the request"
    )


@router.post("", status_code=201)
async def create_issue(req: CreateIssueRequest, jira: JiraClient = Depends(get_jira_client)):
    """Create a new issue."""
    fields: dict[str, Any] = {
        "project": {"key": req.project_key},
        "issuetype": {"name": req.issue_type_name},
        "summary": req.summary,
    }
    if req.description:
        fields["description"] = to_adf(req.description)
    if req.priority_name:
        fields["priority"] = {"name": req.priority_name}
    if req.assignee_account_id:
        fields["assignee"] = {"accountId": req.assignee_account_id}
    if req.parent_key:
        fields["parent"] = {"key": req.parent_key}
    if req.labels:
        fields["labels"] = req.labels
    if req.additional_fields:
        fields.update(req.additional_fields)

    created = await jira.post("/issue", {"fields": fields})
    return {"issueId": created["id"], "issueKey": created["key"], "issueUrl": created["self"]}


@router.get("/{issue_key}")
async def get_issue(
    issue_key: str,
    jira: JiraClient = Depends(get_jira_client),
    field_cache: FieldMetadataCache = Depends(get_field_cache),
):
    """Get an issue with its custom fields resolved to display names."""
    issue = await jira.get(f"/issue/{_key(issue_key)}")
    data = issue_data(issue, field_cache, "updated")
    data["created"] = (issue.get("fields") or {}).get("created")
    data["issueUrl"] = issue.get("self")
    data["fields"] = issue.get("fields")
    return data


class UpdateIssueRequest(BaseModel):
    summary: str | None = None
    description: str | None = None
    priority_name: str | None = None
    labels: list[str] | None = None
    additional_fields: dict[str, Any] | None = None


@router.put("/{issue_key}")
async def update_issue(
    issue_key: str, req: UpdateIssueRequest, jira: JiraClient = Depends(get_jira_client)
):
    """Update summary, description, priority, labels, or arbitrary fields."""
    fields: dict[str, Any] = {}
    if req.summary is not None:
        fields["summary"] = req.summary
    if req.description is not None:
        fields["description"] = to_adf(req.description)
    if req.priority_name is not None:
        fields["priority"] = {"name": req.priority_name}
    if req.labels is not None:
        fields["labels"] = req.labels
    if req.additional_fields:
        fields.update(req.additional_fields)
    if not fields:
        raise HTTPException(400, "No fields to update")

    await jira.put(f"/issue/{_key(issue_key)}", {"fields": fields})
    return {"issueKey": issue_key, "updated": True, "updatedFields": sorted(fields)}


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


class TransitionRequest(BaseModel):
    transition_id: str | None = None
    transition_name: str | None = Field(None, description="Matched case-insensitively")
    comment: str | None = None


@router.post("/{issue_key}/transitions")
async def transition_issue(
    issue_key: str, req: TransitionRequest, jira: JiraClient = Depends(get_jira_client)
):
    """Move an issue through its workflow by transition id or name."""
    if not req.transition_id and not req.transition_name:
        raise HTTPException(400, "transition_id or transition_name is required")

    available = await jira.get(f"/issue/{_key(issue_key)}/transitions")
    transitions = (available or {}).get("transitions", [])

    if req.transition_id:
        match = next((t for t in transitions if t["id"] == req.transition_id), None)
    else:
        wanted = req.transition_name.lower()
        match = next((t for t in transitions if t["name"].lower() == wanted), None)

    if match is None:
        names = ", ".join(t["name"] for t in transitions) or "none"
        raise HTTPException(
            404, f"Transition not available for {issue_key} (available: {names})"
        )

    payload: dict[str, Any] = {"transition": {"id": match["id"]}}
    if req.comment:
        payload["update"] = {"comment": [{"add": {"body": to_adf(req.comment)}}]}

    await jira.post(f"/issue/{_key(issue_key)}/transitions", payload)
    return {
        "issueKey": issue_key,
        "transitionId": match["id"],
        "transitionName": match["name"],
        "toStatus": (match.get("to") or {}).get("name"),
    }


class AssignRequest(BaseModel):
    account_id: str | None = Field(None, description="Omit or null to unassign")


@router.put("/{issue_key}/assignee")
async def assign_issue(
    issue_key: str, req: AssignRequest, jira: JiraClient = Depends(get_jira_client)
):
    """Assign (or unassign) an issue."""
    await jira.put(f"/issue/{_key(issue_key)}/assignee", {"accountId": req.account_id})
    return {"issueKey": issue_key, "assigneeAccountId": req.account_id}


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchRequest(BaseModel):
    jql: str = Field(..., min_length=1)
    fields: list[str] | None = None
    expand: list[str] | None = None
    next_page_token: str | None = None
    max_results: int = Field(default=50, ge=1)


@router.post("/search")
async def search_issues(
    req: SearchRequest,
    jira: JiraClient = Depends(get_jira_client),
    field_cache: FieldMetadataCache = Depends(get_field_cache),
):
    """Search issues with JQL; each result carries its normalized custom fields."""
    payload: dict[str, Any] = {
        "jql": req.jql,
        "maxResults": min(req.max_results, MAX_SEARCH_RESULTS),
        "fields": req.fields or ["*all"],
    }
    if req.expand:
        payload["expand"] = ",".join(req.expand)
    if req.next_page_token:
        payload["nextPageToken"] = req.next_page_token

    results = await jira.post("/search/jql", payload)
    issues = results.get("issues", [])
    return {
        "total": results.get("total", len(issues)),
        "nextPageToken": results.get("nextPageToken"),
        "issues": [
            {
                "id": issue["id"],
                "key": issue["key"],
                "issueUrl": issue.get("self"),
                "fields": issue.get("fields"),
                "customFields": extract_custom_fields(issue.get("fields"), field_cache),
                "expand": issue.get("expand"),
                "names": issue.get("names"),
                "renderedFields": issue.get("renderedFields"),
                "changelog": issue.get("changelog"),
            }
            for issue in issues
        ],
        "warningMessages": results.get("warningMessages") or [],
    }


# ---------------------------------------------------------------------------
# Comments, watchers, links, notifications
# ---------------------------------------------------------------------------


class CommentRequest(BaseModel):
    body: str = Field(..., min_length=1)


@router.post("/{issue_key}/comments", status_code=201)
async def add_comment(issue_key: str, req: CommentRequest, jira: JiraClient = Depends(get_jira_client)):
    """Add a comment to an issue."""
    c = await jira.post(f"/issue/{_key(issue_key)}/comment", {"body": to_adf(req.body)})
    return {
        "issueKey": issue_key,
        "commentId": c["id"],
        "author": extract_user(c.get("author")),
        "created": c.get("created"),
    }


class WatchersRequest(BaseModel):
    account_ids: list[str] = Field(..., min_length=1)


@router.post("/{issue_key}/watchers")
async def add_watchers(issue_key: str, req: WatchersRequest, jira: JiraClient = Depends(get_jira_client)):
    """Add one or more watchers (one Jira call per account)."""
    for account_id in req.account_ids:
        await jira.post(f"/issue/{_key(issue_key)}/watchers", account_id)
    return {"issueKey": issue_key, "addedCount": len(req.account_ids), "accountIds": req.account_ids}


class LinkRequest(BaseModel):
    link_type: str = Field(..., description="Link type name, e.g. 'Blocks' or 'Relates'")
    outward_issue_key: str
    comment: str | None = None


@router.post("/{issue_key}/links", status_code=201)
async def link_issues(issue_key: str, req: LinkRequest, jira: JiraClient = Depends(get_jira_client)):
    """Link this issue (inward) to another issue (outward)."""
    payload: dict[str, Any] = {
        "type": {"name": req.link_type},
        "inwardIssue": {"key": issue_key},
        "outwardIssue": {"key": req.outward_issue_key},
    }
    if req.comment:
        payload["comment"] = {"body": to_adf(req.comment)}
    await jira.post("/issueLink", payload)
    return {"inwardIssueKey": issue_key, "outwardIssueKey": req.outward_issue_key, "linkType": req.link_type}


class ExternalLinkRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    title: str = Field(..., min_length=1)
    summary: str | None = None


@router.post("/{issue_key}/remotelinks", status_code=201)
async def add_external_link(
    issue_key: str, req: ExternalLinkRequest, jira: JiraClient = Depends(get_jira_client)
):
    """Attach a web link to an issue."""
    link: dict[str, Any] = {"url": req.url, "title": req.title}
    if req.summary:
        link["summary"] = req.summary
    created = await jira.post(f"/issue/{_key(issue_key)}/remotelink", {"object": link})
    return {"issueKey": issue_key, "linkId": created.get("id"), "linkUrl": created.get("self")}


class NotifyRequest(BaseModel):
    subject: str = Field(..., min_length=1)
    text_body: str = Field(..., min_length=1)
    html_body: str | None = None
    account_ids: list[str] | None = None
    groups: list[str] | None = None
    reporter: bool = False
    assignee: bool = False
    watchers: bool = False
    voters: bool = False


@router.post("/{issue_key}/notify", status_code=202)
async def send_notification(issue_key: str, req: NotifyRequest, jira: JiraClient = Depends(get_jira_client)):
    """Send an email notification about an issue to users, groups, or issue roles."""
    to: dict[str, Any] = {
        "reporter": req.reporter,
        "assignee": req.assignee,
        "watchers": req.watchers,
        "voters": req.voters,
    }
    if req.account_ids:
        to["users"] = [{"accountId": a} for a in req.account_ids]
    if req.groups:
        to["groups"] = [{"name": g} for g in req.groups]

    payload: dict[str, Any] = {"subject": req.subject, "textBody": req.text_body, "to": to}
    if req.html_body:
        payload["htmlBody"] = req.html_body

    await jira.post(f"/issue/{_key(issue_key)}/notify", payload)
    return {"issueKey": issue_key, "sent": True}
