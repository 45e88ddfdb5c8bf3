"""Comment propagation between a linked task and issue"""

import logging
import re
from typing import Callable, List, Optional, Tuple

from taskbridge.exceptions import SyncCancelled
from taskbridge.models import Comment, Issue, Task
from taskbridge.services.adf import AdfFormatter

logger = logging.getLogger(__name__)

JIRA = "Jira"
TODOIST = "Todoist"

_PROVENANCE_RE = re.compile(rf"^\[From (?:{JIRA}|{TODOIST})\b[^\]]*\] ")


def provenance_prefix(system: str, identity: Optional[str]) -> str:
    who = (identity or "unknown").replace("]", "").strip() or "unknown"
    return f"[From {system} {who}] "


def is_synced_comment(body: Optional[str]) -> bool:
    """True for comments this tool wrote (they are never propagated again)."""
    return bool(body) and bool(_PROVENANCE_RE.match(body))


def render_synced(system: str, comment: Comment, body: str) -> str:
    return provenance_prefix(system, comment.author) + body


def _noop():
    return None


class CommentSync:
    """Mirror comments both ways, tagging each copy with where it came from"""

    def __init__(self, todoist, jira, formatter=None, checkpoint: Optional[Callable[[], None]] = None):
        self.todoist = todoist
        self.jira = jira
        self.formatter = formatter or AdfFormatter()
        self.checkpoint = checkpoint or _noop

    def _jira_comments(self, issue: Issue) -> List[Comment]:
        if issue.comments is not None:
            return issue.comments
        self.checkpoint()
        return self.jira.list_comments(issue.key)

    def sync_pair(self, task: Task, issue: Issue) -> Tuple[int, int]:
        """Propagate new comments; returns (copied to Todoist, copied to Jira)."""
        jira_comments = self._jira_comments(issue)
        self.checkpoint()
        todoist_comments = self.todoist.list_comments(task.id)

        jira_texts = [(c, self.formatter.from_remote(c.body)) for c in jira_comments]
        todoist_texts = [(c, c.body or "") for c in todoist_comments]

        existing_in_todoist = {text for _, text in todoist_texts}
        existing_in_jira = {text for _, text in jira_texts}

        to_todoist = 0
        for comment, text in jira_texts:
            if not text or is_synced_comment(text):
                continue
            rendered = render_synced(JIRA, comment, text)
            if rendered in existing_in_todoist:
                continue
            self.checkpoint()
            try:
                self.todoist.create_comment(task.id, rendered)
            except SyncCancelled:
                raise
            except Exception as e:
                logger.error(f"Failed to copy comment {comment.id} from {issue.key} to task {task.id}: {e}")
                continue
            existing_in_todoist.add(rendered)
            to_todoist += 1

        to_jira = 0
        for comment, text in todoist_texts:
            if not text or is_synced_comment(text):
                continue
            rendered = render_synced(TODOIST, comment, text)
            if rendered in existing_in_jira:
                continue
            self.checkpoint()
            remote_body = self.formatter.to_remote(rendered)
            try:
                self.jira.create_comment(issue.key, remote_body)
            except SyncCancelled:
                raise
            except Exception as e:
                logger.error(f"Failed to copy comment {comment.id} from task {task.id} to {issue.key}: {e}")
                continue
            if issue.comments is not None:
                # keep the search snapshot in step with what is now on Jira
                issue.comments.append(Comment(body=remote_body))
            existing_in_jira.add(rendered)
            to_jira += 1

        if to_todoist or to_jira:
            logger.info(
                f"Synced comments for {issue.key}: {to_todoist} to Todoist, {to_jira} to Jira"
            )
        return to_todoist, to_jira
