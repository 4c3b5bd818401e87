#!/usr/bin/env python3
"""
Jira Test Webhook Sender

Post a signed sample Jira webhook to a running gateway, to check signature
verification and subscriber fan-out end to end.

Usage:
    python scripts/send_test_webhook.py [event] [--url URL]

    event: issue_created (default), issue_updated, comment_created, version_released

The payload is signed with JIRA_WEBHOOK_SECRET from .env when it is set.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

# Add parent directory to path so we can import from jira_gateway
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
from dotenv import load_dotenv

from jira_gateway.auth.signature import SIGNATURE_HEADER, compute_signature

# Load environment variables
load_dotenv()

USER = {"accountId": "5b10a2844c20165700ede21g", "displayName": "Test User", "emailAddress": "test@example.com"}

ISSUE = {
    "id": "10001",
    "key": "TEST-1",
    "fields": {
        "summary": "Test webhook issue",
        "status": {"name": "To Do"},
        "priority": {"name": "Medium"},
        "issuetype": {"name": "Task"},
        "project": {"key": "TEST"},
        "labels": ["webhook-test"],
        "created": "2024-01-01T00:00:00.000+0000",
        "updated": "2024-01-01T00:00:00.000+0000",
    },
}

SAMPLES = {
    "issue_created": {"webhookEvent": "jira:issue_created", "issue": ISSUE, "user": USER},
    "issue_updated": {
        "webhookEvent": "jira:issue_updated",
        "issue": ISSUE,
        "user": USER,
        "changelog": {
            "items": [{"field": "status", "fieldtype": "jira", "fromString": "To Do", "toString": "In Progress"}]
        },
    },
    "comment_created": {
        "webhookEvent": "comment_created",
        "issue": ISSUE,
        "comment": {"id": "20001", "body": "Test comment", "author": USER},
    },
    "version_released": {
        "webhookEvent": "jira:version_released",
        "version": {"id": "30001", "name": "1.0.0", "projectId": 10000, "released": True},
        "user": USER,
    },
}


async def main():
    parser = argparse.ArgumentParser(description="Send a signed sample Jira webhook")
    parser.add_argument("event", nargs="?", default="issue_created", choices=sorted(SAMPLES))
    parser.add_argument("--url", default="http://localhost:8000/webhooks/jira")
    args = parser.parse_args()

    body = json.dumps(SAMPLES[args.event]).encode("utf-8")
    headers = {"Content-Type": "application/json"}

    secret = os.getenv("JIRA_WEBHOOK_SECRET")
    if secret:
        headers[SIGNATURE_HEADER] = compute_signature(secret, body)
    else:
        print("JIRA_WEBHOOK_SECRET not set - sending unsigned")

    print(f"POST {args.url} ({args.event})")

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(args.url, content=body, headers=headers)
    except httpx.HTTPError as e:
        print()
        print("ERROR:", str(e))
        print()
        print("Is the gateway running? Start it with:")
        print("  uvicorn jira_gateway.main:app --reload")
        sys.exit(1)

    print(f"{response.status_code} {response.text}")
    if not response.is_success:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
