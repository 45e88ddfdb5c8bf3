"""Run summary for a single sync cycle"""

import enum
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional


class ActionKind(str, enum.Enum):
    """Summary bucket a sync action belongs to"""

    CREATED_JIRA = "created_jira"
    CREATED_TODOIST = "created_todoist"
    UPDATED_TO_TODOIST = "updated_to_todoist"
    UPDATED_TO_JIRA = "updated_to_jira"
    COMPLETED_TODOIST = "completed_todoist"
    RESOLVED_JIRA = "resolved_jira"
    ERROR = "error"


_LABELS = {
    ActionKind.CREATED_JIRA: "Created in Jira",
    ActionKind.CREATED_TODOIST: "Created in Todoist",
    ActionKind.UPDATED_TO_TODOIST: "Updated Jira -> Todoist",
    ActionKind.UPDATED_TO_JIRA: "Updated Todoist -> Jira",
    ActionKind.COMPLETED_TODOIST: "Completed in Todoist",
    ActionKind.RESOLVED_JIRA: "Resolved in Jira",
    ActionKind.ERROR: "Errors",
}


@dataclass(frozen=True)
class SyncAction:
    kind: ActionKind
    key: Optional[str]
    description: str


@dataclass
class RunSummary:
    """Actions taken (and failed) during one cycle"""

    actions: List[SyncAction] = field(default_factory=list)
    duration: Optional[timedelta] = None

    def record(self, kind: ActionKind, key: Optional[str], description: str) -> SyncAction:
        action = SyncAction(kind=kind, key=key, description=description)
        self.actions.append(action)
        return action

    def record_error(self, key: Optional[str], description: str) -> SyncAction:
        return self.record(ActionKind.ERROR, key, description)

    def of_kind(self, kind: ActionKind) -> List[SyncAction]:
        return [a for a in self.actions if a.kind == kind]

    @property
    def errors(self) -> List[SyncAction]:
        return self.of_kind(ActionKind.ERROR)

    @property
    def has_activity(self) -> bool:
        return bool(self.actions)

    def as_dict(self) -> Dict[str, int]:
        """Per-bucket counters, in the shape used for log lines"""
        return {kind.value: len(self.of_kind(kind)) for kind in ActionKind}

    def render(self, duration: Optional[timedelta] = None) -> str:
        """Grouped, human-readable report"""
        rule = "=" * 32
        lines = [rule, "  Sync Summary", rule]

        for kind in ActionKind:
            actions = self.of_kind(kind)
            if not actions:
                continue
            lines.append("")
            lines.append(f"{_LABELS[kind]} ({len(actions)}):")
            for a in actions:
                if a.key:
                    lines.append(f"  - [{a.key}] {a.description}")
                else:
                    lines.append(f"  - {a.description}")

        if not self.has_activity:
            lines.append("")
            lines.append("Everything is up to date.")

        if duration is None:
            duration = self.duration
        if duration is not None:
            millis = int(duration.total_seconds() * 1000)
            lines.append("")
            lines.append(f"Completed in {millis}ms")
        lines.append(rule)
        return "\n".join(lines)
