"""Records passed between the clients and the sync engine"""

from taskbridge.models.items import (
    Comment,
    Issue,
    IssueStatus,
    Project,
    Section,
    Sprint,
    Task,
    Transition,
)
from taskbridge.models.summary import ActionKind, RunSummary, SyncAction

__all__ = [
    "ActionKind",
    "Comment",
    "Issue",
    "IssueStatus",
    "Project",
    "RunSummary",
    "Section",
    "Sprint",
    "SyncAction",
    "Task",
    "Transition",
]
