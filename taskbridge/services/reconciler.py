"""Creation, update and resolution of mirrored tasks and issues"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional

from taskbridge.exceptions import SyncCancelled
from taskbridge.models import ActionKind, Issue, RunSummary, Section, Task
from taskbridge.services.adf import AdfFormatter
from taskbridge.services.comment_sync import CommentSync
from taskbridge.services.link_codec import LinkCodec
from taskbridge.services.status_mapper import StatusMapper

logger = logging.getLogger(__name__)

JIRA_TO_TODOIST = "jira_to_todoist"
TODOIST_TO_JIRA = "todoist_to_jira"
CLOSED = "closed"

# Jira priority id -> Todoist priority (4 is the most urgent in Todoist).
_PRIORITY_MAP = {"1": 4, "2": 3, "3": 2}

_COMPACT_OFFSET_RE = re.compile(r"^(.*\d{2}:\d{2}:\d{2}(?:\.\d+)?)([+-]\d{2})(\d{2})$")


def todoist_priority(jira_priority_id: Optional[str]) -> int:
    return _PRIORITY_MAP.get((jira_priority_id or "").strip(), 1)


def parse_remote_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a Jira/Todoist timestamp into an aware UTC datetime (None if unparsable)."""
    if not value:
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    # Jira: 2024-01-15T10:30:00.000+0000
    m = _COMPACT_OFFSET_RE.match(raw)
    if m:
        raw = f"{m.group(1)}{m.group(2)}:{m.group(3)}"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _noop():
    return None


class SectionIndex:
    """Sections of the synced project, created on demand"""

    def __init__(
        self,
        project_id: str,
        sections: Iterable[Section],
        todoist,
        checkpoint: Optional[Callable[[], None]] = None,
    ):
        self.project_id = project_id
        self.todoist = todoist
        self.checkpoint = checkpoint or _noop
        self.by_id: Dict[str, str] = {}
        self.by_name: Dict[str, str] = {}
        for s in sections:
            self._add(s)

    def _add(self, section: Section):
        self.by_id[section.id] = section.name
        self.by_name[section.name] = section.id

    def name_for(self, section_id: Optional[str]) -> str:
        if not section_id:
            return ""
        return self.by_id.get(section_id, "")

    def ensure(self, name: str) -> str:
        """Return the id of the named section, creating it if needed."""
        if name in self.by_name:
            return self.by_name[name]
        self.checkpoint()
        section = self.todoist.create_bucket(self.project_id, name)
        self._add(section)
        return section.id


class Reconciler:
    """Drives the remote mutations for one item or linked pair"""

    def __init__(
        self,
        todoist,
        jira,
        settings,
        codec: LinkCodec,
        mapper: StatusMapper,
        formatter=None,
        comments: Optional[CommentSync] = None,
        checkpoint: Optional[Callable[[], None]] = None,
    ):
        self.todoist = todoist
        self.jira = jira
        self.settings = settings
        self.codec = codec
        self.mapper = mapper
        self.formatter = formatter or AdfFormatter()
        self.checkpoint = checkpoint or _noop
        self.comments = comments or CommentSync(todoist, jira, self.formatter, self.checkpoint)

    def _sync_comments(self, task: Task, issue: Issue):
        """Best-effort: comment failures never fail the item."""
        try:
            self.comments.sync_pair(task, issue)
        except SyncCancelled:
            raise
        except Exception as e:
            logger.warning(f"Failed to sync comments between task {task.id} and {issue.key}: {e}")

    def create_issue_from_task(self, task: Task, sections: SectionIndex, summary: RunSummary) -> Issue:
        """Create a Jira issue for an unlinked task and link the task to it"""
        title = self.codec.strip(task.content)
        fields: Dict[str, Any] = {
            "project": {"key": self.settings.jira_project},
            "summary": title,
            "issuetype": {"name": self.settings.jira_default_issue_type},
        }
        description = self.formatter.to_remote(task.description)
        if description:
            fields["description"] = description
        if task.due_date:
            fields["duedate"] = task.due_date

        self.checkpoint()
        created = self.jira.create_issue(fields)
        summary.record(ActionKind.CREATED_JIRA, created.key, title)
        logger.info(f"Created issue {created.key} from task {task.id} ({title})")

        # Issue creation and the link write-back are one step; no checkpoint between them.
        linked_content = self.codec.embed(task.content, created.key)
        self.todoist.update_item(task.id, {"content": linked_content})

        section_name = sections.name_for(task.section_id)
        if section_name:
            target = self.mapper.status_for_bucket(section_name)
            if not self.mapper.statuses_equivalent(target, self.settings.jira_initial_status):
                self.checkpoint()
                try:
                    self.jira.transition_to(created.key, target)
                except SyncCancelled:
                    raise
                except Exception as e:
                    logger.warning(f"Failed to transition new issue {created.key} to '{target}': {e}")

        linked_task = task.model_copy(update={"content": linked_content})
        self._sync_comments(linked_task, created)
        return created

    def create_task_from_issue(
        self, issue: Issue, sections: SectionIndex, summary: RunSummary
    ) -> Optional[Task]:
        """Create a linked Todoist task for an unlinked issue"""
        if issue.is_resolved:
            return None

        section_id = None
        if issue.status:
            section_name = self.mapper.bucket_for_status(issue.status_name)
            if section_name:
                section_id = sections.ensure(section_name)

        task_data: Dict[str, Any] = {
            "content": self.codec.embed(issue.summary, issue.key),
            "description": self.formatter.from_remote(issue.description),
            "project_id": sections.project_id,
            "labels": [self.settings.sync_label],
            "priority": todoist_priority(issue.priority_id),
        }
        if section_id:
            task_data["section_id"] = section_id
        if issue.due_date:
            task_data["due_date"] = issue.due_date

        self.checkpoint()
        task = self.todoist.create_item(task_data)
        summary.record(ActionKind.CREATED_TODOIST, issue.key, issue.summary)
        logger.info(f"Created task {task.id} from issue {issue.key} (priority {task_data['priority']})")

        self._sync_comments(task, issue)
        return task

    def sync_linked_pair(
        self, task: Task, issue: Issue, sections: SectionIndex, summary: RunSummary
    ) -> str:
        """Bring a linked pair in line; returns the direction taken."""
        if issue.is_resolved:
            # Resolution on Jira wins over any Todoist-side timestamp.
            logger.info(f"Issue {issue.key} resolved, closing task {task.id}")
            self.checkpoint()
            self.todoist.close_item(task.id)
            summary.record(ActionKind.COMPLETED_TODOIST, issue.key, issue.summary)
            return CLOSED

        issue_updated = parse_remote_datetime(issue.updated_at)
        task_updated = parse_remote_datetime(task.updated_at)
        if issue_updated is None:
            logger.warning(f"Could not parse updated timestamp {issue.updated_at!r} of {issue.key}")
        if task_updated is None:
            logger.warning(f"Could not parse updated_at {task.updated_at!r} of task {task.id}, assuming Todoist is newer")

        if issue_updated is not None and task_updated is not None and issue_updated > task_updated:
            logger.debug(f"Issue {issue.key} is newer, syncing Jira -> Todoist")
            direction = JIRA_TO_TODOIST
            if self.push_issue_to_task(task, issue, sections):
                summary.record(ActionKind.UPDATED_TO_TODOIST, issue.key, issue.summary)
        else:
            logger.debug(f"Task {task.id} is newer (or same), syncing Todoist -> Jira")
            direction = TODOIST_TO_JIRA
            if self.push_task_to_issue(task, issue, sections):
                summary.record(ActionKind.UPDATED_TO_JIRA, issue.key, issue.summary)

        self._sync_comments(task, issue)
        return direction

    def push_issue_to_task(self, task: Task, issue: Issue, sections: SectionIndex) -> bool:
        """Copy title/description/due date/section from the issue; True if anything changed."""
        changed = False

        update: Dict[str, Any] = {}
        linked_content = self.codec.embed(issue.summary, issue.key)
        if task.content != linked_content:
            update["content"] = linked_content
        description = self.formatter.from_remote(issue.description)
        if (task.description or "") != description:
            update["description"] = description
        if issue.due_date and issue.due_date != task.due_date:
            update["due_date"] = issue.due_date
        if update:
            self.checkpoint()
            self.todoist.update_item(task.id, update)
            changed = True

        if issue.status:
            target = self.mapper.bucket_for_status(issue.status_name)
            current = sections.name_for(task.section_id)
            if target and target != current:
                section_id = sections.ensure(target)
                self.checkpoint()
                self.todoist.move_item_to_bucket(task.id, section_id)
                changed = True

        return changed

    def push_task_to_issue(self, task: Task, issue: Issue, sections: SectionIndex) -> bool:
        """Copy title/description/due date/status from the task; True if anything changed."""
        changed = False

        fields: Dict[str, Any] = {}
        title = self.codec.strip(task.content)
        if title != issue.summary:
            fields["summary"] = title
        if (task.description or "") != self.formatter.from_remote(issue.description):
            fields["description"] = self.formatter.to_remote(task.description)
        if task.due_date and task.due_date != issue.due_date:
            fields["duedate"] = task.due_date
        if fields:
            self.checkpoint()
            self.jira.update_issue(issue.key, fields)
            changed = True

        section_name = sections.name_for(task.section_id)
        if section_name:
            target = self.mapper.status_for_bucket(section_name)
            if not self.mapper.statuses_equivalent(target, issue.status_name):
                self.checkpoint()
                try:
                    self.jira.transition_to(issue.key, target)
                    changed = True
                except SyncCancelled:
                    raise
                except Exception as e:
                    logger.warning(f"Failed to transition issue {issue.key} to '{target}': {e}")

        return changed

    def resolve_issue(self, issue: Issue, summary: RunSummary) -> bool:
        """Close an issue whose task was completed in Todoist"""
        if issue.is_resolved:
            logger.debug(f"Issue {issue.key} already resolved, skipping")
            return False
        logger.info(f"Task for {issue.key} completed, resolving issue")
        self.checkpoint()
        self.jira.transition_to(issue.key, self.settings.jira_resolve_status, resolve=True)
        summary.record(ActionKind.RESOLVED_JIRA, issue.key, issue.summary)
        return True
