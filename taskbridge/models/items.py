"""Item records fetched from Todoist and Jira"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class Project(BaseModel):
    """Todoist project (the container all synced tasks live in)"""

    id: str
    name: str


class Section(BaseModel):
    """Todoist section, the List-side counterpart of a workflow status"""

    id: str
    name: str
    project_id: Optional[str] = None


class Task(BaseModel):
    """Todoist task"""

    id: str
    content: str = ""
    description: str = ""
    project_id: Optional[str] = None
    section_id: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    priority: int = 1
    # YYYY-MM-DD; None when the task has no due date.
    due_date: Optional[str] = None
    checked: bool = False
    # Raw remote timestamps; parsing happens where they are compared.
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None


class Comment(BaseModel):
    """Comment on either side.

    On the Todoist side ``body`` is plain text; on the Jira side it is the
    remote document (ADF) exactly as returned by the API.
    """

    id: Optional[str] = None
    body: Any = None
    author: Optional[str] = None
    created_at: Optional[str] = None


class IssueStatus(BaseModel):
    name: str


class Sprint(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    state: Optional[str] = None


class Issue(BaseModel):
    """Jira issue"""

    key: str
    id: Optional[str] = None
    summary: str = ""
    # Remote document (ADF) or None when the issue has no description.
    description: Any = None
    due_date: Optional[str] = None
    status: Optional[IssueStatus] = None
    resolution: Optional[str] = None
    priority_id: Optional[str] = None
    updated_at: Optional[str] = None
    # None: sprint field not present; []: present but not in any sprint.
    sprints: Optional[List[Sprint]] = None
    # None: comments not fetched (or only a partial page was returned).
    comments: Optional[List[Comment]] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolution is not None

    @property
    def status_name(self) -> str:
        return self.status.name if self.status else ""

    def in_active_sprint(self) -> bool:
        return any(s.state == "active" for s in self.sprints or [])


class Transition(BaseModel):
    id: str
    name: str
    to_status: Optional[str] = None
