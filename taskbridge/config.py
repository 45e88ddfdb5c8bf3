"""Application configuration"""

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskbridge.exceptions import ConfigError

DEFAULT_STATUS_MAP = {
    "To Do": "To Do",
    "In Progress": "In Progress",
    "In Review": "In Review",
    "Done": "Done",
    "Blocked": "Blocked",
}


class Settings(BaseSettings):
    """Application settings"""

    # Todoist
    todoist_token: Optional[str] = None
    todoist_project: str = "Work"

    # Jira
    jira_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_token: Optional[str] = None
    jira_project: str = "DX"
    # Comma-separated issue type names to sync.
    jira_issue_types: str = "Story,Task,Bug,Sub-task"
    jira_default_issue_type: str = "Story"
    jira_initial_status: str = "To Do"
    jira_resolve_status: str = "Closed"
    jira_max_results: int = 200

    # Sync
    # Todoist label that puts an unlinked task under sync management.
    sync_label: str = "jira-sync"
    # Todoist section name -> Jira status name (JSON in the environment).
    status_map: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_STATUS_MAP))
    # Groups of Jira status names treated as the same state.
    status_equivalents: List[List[str]] = Field(default_factory=lambda: [["To Do", "Open"]])
    # Only create Todoist tasks for issues in an active sprint.
    require_active_sprint: bool = True
    completed_lookback_hours: int = 72
    sync_interval_minutes: int = 5
    cycle_timeout_seconds: Optional[float] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    def issue_types(self) -> List[str]:
        return [t.strip() for t in (self.jira_issue_types or "").split(",") if t.strip()]

    def issue_types_jql(self) -> str:
        """JQL fragment filtering by the configured issue types ('' when none)"""
        types = self.issue_types()
        if not types:
            return ""
        quoted = []
        for t in types:
            if " " in t or "," in t:
                quoted.append('"' + t.replace('"', '\\"') + '"')
            else:
                quoted.append(t)
        return "issuetype IN (" + ", ".join(quoted) + ")"

    def search_jql(self) -> str:
        jql = f"project = {self.jira_project} AND assignee = currentUser()"
        types_jql = self.issue_types_jql()
        if types_jql:
            jql += f" AND {types_jql}"
        return jql + " ORDER BY updated DESC"

    def validate_required(self) -> "Settings":
        """Check required settings and normalize the Jira URL"""
        required = {
            "todoist_token": self.todoist_token,
            "todoist_project": self.todoist_project,
            "jira_url": self.jira_url,
            "jira_email": self.jira_email,
            "jira_token": self.jira_token,
            "jira_project": self.jira_project,
        }
        for name, value in required.items():
            if not value:
                raise ConfigError(f"{name} is required")
        if self.sync_interval_minutes <= 0:
            raise ConfigError("sync_interval_minutes must be positive")
        if self.completed_lookback_hours <= 0:
            raise ConfigError("completed_lookback_hours must be positive")
        url = self.jira_url.strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            url = "https://" + url
        self.jira_url = url
        return self
