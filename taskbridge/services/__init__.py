"""Services"""

from taskbridge.services.jira_client import JiraClient
from taskbridge.services.sync_service import SyncService
from taskbridge.services.todoist_client import TodoistClient

__all__ = ["JiraClient", "SyncService", "TodoistClient"]
