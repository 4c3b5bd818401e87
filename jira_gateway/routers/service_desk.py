"""Jira Service Management - desks, request types, requests, SLAs and approvals."""

from enum import Enum
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from jira_gateway.dependencies import get_service_desk_client
from jira_gateway.normalize import extract_sla, extract_user
from jira_gateway.providers import ServiceDeskClient


router = APIRouter()


def _key(issue_id_or_key: str) -> str:
    return quote(issue_id_or_key, safe="")


def _iso(timestamp: dict | None) -> str | None:
    return (timestamp or {}).get("iso8601")


# ---------------------------------------------------------------------------
# Desks and request types
# ---------------------------------------------------------------------------


@router.get("")
async def list_service_desks(sd: ServiceDeskClient = Depends(get_service_desk_client)):
    response = await sd.get("/servicedesk")
    desks = [
        {
            "id": d["id"],
            "projectId": d.get("projectId"),
            "projectKey": d.get("projectKey"),
            "projectName": d.get("projectName"),
        }
        for d in response.get("values", [])
    ]
    return {"count": len(desks), "serviceDesks": desks}


@router.get("/{service_desk_id}/requesttypes")
async def list_request_types(
    service_desk_id: str, sd: ServiceDeskClient = Depends(get_service_desk_client)
):
    response = await sd.get(f"/servicedesk/{quote(service_desk_id, safe='')}/requesttype")
    request_types = [
        {
            "id": rt["id"],
            "name": rt.get("name"),
            "helpText": rt.get("helpText"),
            "issueTypeId": rt.get("issueTypeId"),
            "serviceDeskId": rt.get("serviceDeskId"),
            "portalId": rt.get("portalId"),
            "groupIds": rt.get("groupIds", []),
            "iconUrl": ((rt.get("icon") or {}).get("_links") or {}).get("iconUrls", {}).get("48x48"),
        }
        for rt in response.get("values", [])
    ]
    return {"count": len(request_types), "requestTypes": request_types}


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateRequestRequest(BaseModel):
    service_desk_id: str
    request_type_id: str
    summary: str = Field(..., min_length=1)
    description: str | None = None
    request_field_values: dict[str, Any] | None = Field(
        None, description="Additional request field values keyed by field id"
    )
    request_participants: list[str] | None = None
    raise_on_behalf_of: str | None = Field(None, description="Customer account id")


@router.post("/requests", status_code=201)
async def create_request(req: CreateRequestRequest, sd: ServiceDeskClient = Depends(get_service_desk_client)):
    """Raise a customer request."""
    field_values: dict[str, Any] = {"summary": req.summary}
    if req.description:
        field_values["description"] = req.description
    if req.request_field_values:
        field_values.update(req.request_field_values)

    payload: dict[str, Any] = {
        "serviceDeskId": req.service_desk_id,
        "requestTypeId": req.request_type_id,
        "requestFieldValues": field_values,
    }
    if req.request_participants:
        payload["requestParticipants"] = req.request_participants
    if req.raise_on_behalf_of:
        payload["raiseOnBehalfOf"] = req.raise_on_behalf_of

    created = await sd.post("/request", payload)
    status = created.get("currentStatus") or {}
    return {
        "issueId": created["issueId"],
        "issueKey": created["issueKey"],
        "requestTypeId": created.get("requestTypeId"),
        "serviceDeskId": created.get("serviceDeskId"),
        "createdDate": _iso(created.get("createdDate")),
        "status": status.get("status"),
        "statusCategory": status.get("statusCategory"),
        "webUrl": (created.get("_links") or {}).get("web"),
    }


class ParticipantsRequest(BaseModel):
    account_ids: list[str] = Field(..., min_length=1)


@router.post("/requests/{issue_id_or_key}/participants")
async def add_participants(
    issue_id_or_key: str,
    req: ParticipantsRequest,
    sd: ServiceDeskClient = Depends(get_service_desk_client),
):
    response = await sd.post(
        f"/request/{_key(issue_id_or_key)}/participant", {"accountIds": req.account_ids}
    )
    return {
        "issueIdOrKey": issue_id_or_key,
        "addedCount": len(req.account_ids),
        "participants": [extract_user(p) for p in (response or {}).get("values", [])],
    }


class RequestCommentRequest(BaseModel):
    body: str = Field(..., min_length=1)


async def _add_request_comment(sd: ServiceDeskClient, issue_id_or_key: str, body: str, public: bool) -> dict:
    comment = await sd.post(
        f"/request/{_key(issue_id_or_key)}/comment", {"body": body, "public": public}
    )
    return {
        "issueIdOrKey": issue_id_or_key,
        "commentId": comment["id"],
        "isPublic": comment.get("public", public),
        "author": extract_user(comment.get("author")),
        "created": _iso(comment.get("created")),
    }


@router.post("/requests/{issue_id_or_key}/internal-notes", status_code=201)
async def add_internal_note(
    issue_id_or_key: str,
    req: RequestCommentRequest,
    sd: ServiceDeskClient = Depends(get_service_desk_client),
):
    """Agent-only comment, hidden from the customer."""
    return await _add_request_comment(sd, issue_id_or_key, req.body, public=False)


@router.post("/requests/{issue_id_or_key}/responses", status_code=201)
async def add_customer_response(
    issue_id_or_key: str,
    req: RequestCommentRequest,
    sd: ServiceDeskClient = Depends(get_service_desk_client),
):
    """Public comment, visible to the customer."""
    return await _add_request_comment(sd, issue_id_or_key, req.body, public=True)


# ---------------------------------------------------------------------------
# SLAs
# ---------------------------------------------------------------------------


@router.get("/requests/{issue_id_or_key}/sla")
async def get_sla_information(
    issue_id_or_key: str, sd: ServiceDeskClient = Depends(get_service_desk_client)
):
    """SLA metrics for a request, with breached and active counts."""
    response = await sd.get(f"/request/{_key(issue_id_or_key)}/sla")

    metrics = []
    for sla in response.get("values", []):
        metric = extract_sla(sla)
        ongoing = sla.get("ongoingCycle")
        # a metric counts as breached if any cycle, current or completed, breached
        metric["breached"] = bool((ongoing or {}).get("breached")) or any(
            c.get("breached") for c in sla.get("completedCycles") or []
        )
        metric["paused"] = bool((ongoing or {}).get("paused"))
        metric["hasOngoingCycle"] = bool(ongoing)
        metrics.append(metric)

    breached = [m["name"] for m in metrics if m["breached"]]
    active = [m for m in metrics if m["hasOngoingCycle"] and not m["paused"]]
    return {
        "issueIdOrKey": issue_id_or_key,
        "totalSlaCount": len(metrics),
        "breachedCount": len(breached),
        "breachedSlaNames": breached,
        "activeSlaCount": len(active),
        "slaMetrics": metrics,
    }


# ---------------------------------------------------------------------------
# Approvals (experimental API)
# ---------------------------------------------------------------------------


class ApprovalDecision(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"


class ApprovalDecisionRequest(BaseModel):
    decision: ApprovalDecision


def _approvers(approval: dict) -> list[dict]:
    return [
        {**extract_user(a.get("approver") or {}), "decision": a.get("approverDecision")}
        for a in approval.get("approvers", [])
    ]


@router.get("/requests/{issue_id_or_key}/approvals")
async def get_approvals(
    issue_id_or_key: str, sd: ServiceDeskClient = Depends(get_service_desk_client)
):
    response = await sd.get(f"/request/{_key(issue_id_or_key)}/approval", experimental=True)
    approvals = [
        {
            "id": a["id"],
            "name": a.get("name"),
            "finalDecision": a.get("finalDecision"),
            "canAnswerApproval": a.get("canAnswerApproval", False),
            "createdDate": _iso(a.get("createdDate")),
            "completedDate": _iso(a.get("completedDate")),
            "approvers": _approvers(a),
        }
        for a in response.get("values", [])
    ]

    decisions = [a["finalDecision"] for a in approvals]
    return {
        "issueIdOrKey": issue_id_or_key,
        "totalCount": len(approvals),
        "pendingCount": decisions.count("pending"),
        "approvedCount": decisions.count("approved"),
        "declinedCount": decisions.count("declined"),
        "approvals": approvals,
    }


@router.post("/requests/{issue_id_or_key}/approvals/{approval_id}")
async def respond_to_approval(
    issue_id_or_key: str,
    approval_id: str,
    req: ApprovalDecisionRequest,
    sd: ServiceDeskClient = Depends(get_service_desk_client),
):
    """Approve or decline a pending approval as the configured user."""
    approval = await sd.post(
        f"/request/{_key(issue_id_or_key)}/approval/{quote(approval_id, safe='')}",
        {"decision": req.decision.value},
        experimental=True,
    )
    return {
        "issueIdOrKey": issue_id_or_key,
        "approvalId": approval.get("id", approval_id),
        "name": approval.get("name"),
        "finalDecision": approval.get("finalDecision"),
        "completedDate": _iso(approval.get("completedDate")),
        "approvers": _approvers(approval),
    }
