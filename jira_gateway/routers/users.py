"""Jira user lookup."""

from fastapi import APIRouter, Depends

from jira_gateway.dependencies import get_jira_client
from jira_gateway.normalize import extract_user
from jira_gateway.providers import JiraClient


router = APIRouter()


@router.get("/{account_id}")
async def get_user(account_id: str, jira: JiraClient = Depends(get_jira_client)):
    user = await jira.get("/user", params={"accountId": account_id})
    return {
        **extract_user(user),
        "active": user.get("active"),
        "timeZone": user.get("timeZone"),
        "accountType": user.get("accountType"),
    }
