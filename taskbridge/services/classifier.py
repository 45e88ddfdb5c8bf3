"""Partition fetched tasks and issues into sync work"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from taskbridge.models import Issue, Task
from taskbridge.services.link_codec import LinkCodec

logger = logging.getLogger(__name__)


def active_sprint_filter(issue: Issue) -> bool:
    return issue.in_active_sprint()


@dataclass
class Classification:
    """Work derived from one snapshot of both systems"""

    linked: List[Tuple[Task, Issue]] = field(default_factory=list)
    # Linked tasks whose issue was not in the fetched set.
    orphaned: List[Task] = field(default_factory=list)
    unlinked_tasks: List[Task] = field(default_factory=list)
    unlinked_issues: List[Issue] = field(default_factory=list)
    # Issues whose task was completed recently; they get resolved.
    to_resolve: List[Issue] = field(default_factory=list)
    ignored: int = 0


def classify(
    tasks: Iterable[Task],
    issues: Iterable[Issue],
    codec: LinkCodec,
    *,
    sync_label: str,
    completed_tasks: Optional[Iterable[Task]] = None,
    issue_filter: Optional[Callable[[Issue], bool]] = active_sprint_filter,
) -> Classification:
    """Split tasks and issues into linked pairs, creations and resolutions.

    For issues the order of checks matters: a recently completed task is
    looked at before anything else, so an issue whose task was just closed
    gets resolved instead of a fresh task being created for it.
    """
    result = Classification()

    tasks_by_key: Dict[str, Task] = {}
    for task in tasks:
        key = codec.extract(task.content)
        if key:
            if key in tasks_by_key:
                logger.warning(
                    f"Tasks {tasks_by_key[key].id} and {task.id} both link {key}; ignoring task {task.id}"
                )
                result.ignored += 1
                continue
            tasks_by_key[key] = task
        elif sync_label in task.labels:
            result.unlinked_tasks.append(task)
        else:
            result.ignored += 1

    completed_keys: Set[str] = set()
    for task in completed_tasks or []:
        key = codec.extract(task.content)
        if key:
            completed_keys.add(key)

    issues_by_key: Dict[str, Issue] = {}
    for issue in issues:
        issues_by_key[issue.key] = issue
        if issue.key in tasks_by_key:
            continue
        if issue.key in completed_keys:
            result.to_resolve.append(issue)
            continue
        if issue.is_resolved:
            result.ignored += 1
            continue
        if issue_filter is not None and not issue_filter(issue):
            logger.debug(f"Issue {issue.key} not selected for sync, skipping task creation")
            result.ignored += 1
            continue
        result.unlinked_issues.append(issue)

    for key, task in tasks_by_key.items():
        issue = issues_by_key.get(key)
        if issue is None:
            logger.warning(f"Linked issue {key} not found for task {task.id}, skipping")
            result.orphaned.append(task)
            continue
        result.linked.append((task, issue))

    return result
