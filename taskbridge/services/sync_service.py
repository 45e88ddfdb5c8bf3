"""Task synchronization service"""

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from taskbridge.exceptions import FetchError, SyncCancelled
from taskbridge.models import Issue, Project, RunSummary, Section, Task
from taskbridge.services.adf import AdfFormatter
from taskbridge.services.classifier import active_sprint_filter, classify
from taskbridge.services.comment_sync import CommentSync
from taskbridge.services.jira_client import SEARCH_FIELDS
from taskbridge.services.link_codec import LinkCodec
from taskbridge.services.reconciler import Reconciler, SectionIndex
from taskbridge.services.status_mapper import StatusMapper

logger = logging.getLogger(__name__)


@dataclass
class TodoistSnapshot:
    project: Project
    sections: List[Section] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    # None when the completed-task fetch failed; completion sync is skipped.
    completed: Optional[List[Task]] = None


class SyncService:
    """Service for synchronizing a Todoist project with a Jira project"""

    def __init__(self, settings, todoist, jira, formatter=None):
        self.settings = settings
        self.todoist = todoist
        self.jira = jira
        self.formatter = formatter or AdfFormatter()
        self.codec = LinkCodec(settings.jira_url)
        self.mapper = StatusMapper.from_settings(settings)

    @staticmethod
    def _utcnow() -> datetime:
        return datetime.now(timezone.utc)

    def _make_checkpoint(self, cancel_event: threading.Event, deadline: Optional[float]):
        def checkpoint():
            if cancel_event.is_set():
                raise SyncCancelled("Sync cycle cancelled")
            if deadline is not None and time.monotonic() > deadline:
                raise SyncCancelled("Sync cycle timed out")

        return checkpoint

    def _fetch_todoist(self, checkpoint) -> TodoistSnapshot:
        checkpoint()
        project = self.todoist.find_container(self.settings.todoist_project)
        logger.debug(f"Found Todoist project {project.name} ({project.id})")
        checkpoint()
        sections = self.todoist.list_buckets(project.id)
        checkpoint()
        tasks = self.todoist.list_items(project.id)
        logger.debug(f"Fetched {len(tasks)} Todoist tasks")

        until = self._utcnow()
        since = until - timedelta(hours=self.settings.completed_lookback_hours)
        checkpoint()
        completed = None
        try:
            completed = self.todoist.list_recently_completed(project.id, since, until)
        except SyncCancelled:
            raise
        except Exception as e:
            logger.warning(f"Failed to fetch completed Todoist tasks, skipping completion sync: {e}")
        return TodoistSnapshot(project=project, sections=sections, tasks=tasks, completed=completed)

    def _fetch_jira(self, checkpoint) -> List[Issue]:
        checkpoint()
        issues = self.jira.search_issues(
            self.settings.search_jql(), SEARCH_FIELDS, self.settings.jira_max_results
        )
        logger.debug(f"Fetched {len(issues)} Jira issues")
        return issues

    def fetch(self, checkpoint, cancel_event: threading.Event):
        """Fetch both systems concurrently; the first failure aborts the other."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="taskbridge-fetch") as pool:
            todoist_future = pool.submit(self._fetch_todoist, checkpoint)
            jira_future = pool.submit(self._fetch_jira, checkpoint)
            done, pending = wait([todoist_future, jira_future], return_when=FIRST_EXCEPTION)

            failed = next((f for f in done if f.exception() is not None), None)
            if failed is not None:
                # Stop the other unit at its next remote call.
                cancel_event.set()
                for f in pending:
                    f.cancel()
                exc = failed.exception()
                if isinstance(exc, SyncCancelled):
                    raise exc
                name = "Todoist" if failed is todoist_future else "Jira"
                raise FetchError(f"Failed to fetch {name} data: {exc}") from exc

            return todoist_future.result(), jira_future.result()

    def run_cycle(self, cancel_event: Optional[threading.Event] = None) -> RunSummary:
        """Run one sync cycle.

        Only fetch-phase failures (FetchError) and cancellation (SyncCancelled)
        escape; per-item failures end up in the summary's error bucket.
        """
        started = time.monotonic()
        logger.info("Syncing Todoist and Jira")

        cancel_event = cancel_event or threading.Event()
        # The fetch join sets its own event on failure; the caller's stays untouched.
        fetch_event = threading.Event()
        deadline = None
        if self.settings.cycle_timeout_seconds:
            deadline = started + float(self.settings.cycle_timeout_seconds)
        checkpoint = self._make_checkpoint(cancel_event, deadline)

        def fetch_checkpoint():
            if fetch_event.is_set():
                raise SyncCancelled("Fetch aborted")
            checkpoint()

        snapshot, issues = self.fetch(fetch_checkpoint, fetch_event)

        summary = RunSummary()
        classification = classify(
            snapshot.tasks,
            issues,
            self.codec,
            sync_label=self.settings.sync_label,
            completed_tasks=snapshot.completed,
            issue_filter=active_sprint_filter if self.settings.require_active_sprint else None,
        )
        sections = SectionIndex(snapshot.project.id, snapshot.sections, self.todoist, checkpoint)
        comments = CommentSync(self.todoist, self.jira, self.formatter, checkpoint)
        reconciler = Reconciler(
            self.todoist,
            self.jira,
            self.settings,
            self.codec,
            self.mapper,
            formatter=self.formatter,
            comments=comments,
            checkpoint=checkpoint,
        )

        for issue in classification.to_resolve:
            try:
                reconciler.resolve_issue(issue, summary)
            except SyncCancelled:
                raise
            except Exception as e:
                logger.error(f"Failed to resolve issue {issue.key}: {e}")
                summary.record_error(issue.key, f"resolve: {issue.summary}")

        for task in classification.unlinked_tasks:
            try:
                reconciler.create_issue_from_task(task, sections, summary)
            except SyncCancelled:
                raise
            except Exception as e:
                logger.error(f"Failed to create issue from task {task.id} ({task.content}): {e}")
                summary.record_error(None, f"create Jira from: {task.content}")

        for issue in classification.unlinked_issues:
            try:
                reconciler.create_task_from_issue(issue, sections, summary)
            except SyncCancelled:
                raise
            except Exception as e:
                logger.error(f"Failed to create task from issue {issue.key} ({issue.summary}): {e}")
                summary.record_error(issue.key, f"create Todoist from: {issue.summary}")

        for task, issue in classification.linked:
            try:
                reconciler.sync_linked_pair(task, issue, sections, summary)
            except SyncCancelled:
                raise
            except Exception as e:
                logger.error(f"Failed to sync task {task.id} with {issue.key} ({issue.summary}): {e}")
                summary.record_error(issue.key, f"sync: {issue.summary}")

        elapsed = time.monotonic() - started
        logger.info(f"Sync completed in {elapsed:.2f}s: {summary.as_dict()}")
        summary.duration = timedelta(seconds=elapsed)
        return summary
