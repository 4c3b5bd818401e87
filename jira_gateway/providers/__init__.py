"""
Jira REST Clients

External API adapters for the Jira gateway.
"""

from .base import BaseAtlassianClient, JiraCredentials
from .jira import JiraClient
from .service_desk import ServiceDeskClient

__all__ = ["BaseAtlassianClient", "JiraCredentials", "JiraClient", "ServiceDeskClient"]
