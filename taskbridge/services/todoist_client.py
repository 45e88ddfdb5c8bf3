"""Todoist API v1 client wrapper"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from taskbridge.models import Comment, Project, Section, Task
from taskbridge.services.retry import with_retries

logger = logging.getLogger(__name__)

BASE_URL = "https://api.todoist.com/api/v1"


def _ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class TodoistClient:
    """Wrapper for the Todoist operations the sync engine needs"""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize Todoist client"""
        self.http = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        self.http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = {}
        if method != "GET":
            # Same id on every attempt so Todoist drops duplicate writes.
            headers["X-Request-Id"] = str(uuid.uuid4())

        def _do():
            resp = self.http.request(method, path, headers=headers, **kwargs)
            logger.debug(f"{method} {path} -> {resp.status_code}")
            resp.raise_for_status()
            if resp.status_code == 204 or not resp.content:
                return None
            return resp.json()

        return with_retries(_do)

    def _paginate(self, path: str, params: Dict[str, Any], results_key: str = "results") -> List[Any]:
        """Exhaust cursor pagination on a list endpoint."""
        items: List[Any] = []
        cursor: Optional[str] = None
        while True:
            page_params = dict(params)
            if cursor:
                page_params["cursor"] = cursor
            page = self._request("GET", path, params=page_params) or {}
            items.extend(page.get(results_key) or [])
            cursor = page.get("next_cursor")
            if not cursor:
                return items

    @staticmethod
    def _task(data: Dict[str, Any]) -> Task:
        due = data.get("due") or None
        due_date = None
        if isinstance(due, dict) and due.get("date"):
            due_date = str(due["date"])[:10]
        return Task(
            id=str(data["id"]),
            content=data.get("content") or "",
            description=data.get("description") or "",
            project_id=data.get("project_id"),
            section_id=data.get("section_id") or None,
            labels=list(data.get("labels") or []),
            priority=int(data.get("priority") or 1),
            due_date=due_date,
            checked=bool(data.get("checked", False)),
            updated_at=data.get("updated_at"),
            completed_at=data.get("completed_at"),
        )

    @staticmethod
    def _comment(data: Dict[str, Any]) -> Comment:
        return Comment(
            id=str(data["id"]) if data.get("id") is not None else None,
            body=data.get("content") or "",
            author=data.get("posted_uid"),
            created_at=data.get("posted_at"),
        )

    def find_container(self, name: str) -> Project:
        """Find a project by exact name"""
        try:
            projects = self._paginate("/projects", {})
        except Exception as e:
            logger.error(f"Failed to list Todoist projects: {e}")
            raise
        for p in projects:
            if p.get("name") == name:
                return Project(id=str(p["id"]), name=p["name"])
        raise LookupError(f"Todoist project '{name}' not found")

    def list_buckets(self, project_id: str) -> List[Section]:
        """Get all sections of a project"""
        try:
            sections = self._paginate("/sections", {"project_id": project_id})
        except Exception as e:
            logger.error(f"Failed to get sections for project {project_id}: {e}")
            raise
        return [
            Section(id=str(s["id"]), name=s.get("name") or "", project_id=s.get("project_id"))
            for s in sections
            if not s.get("is_deleted") and not s.get("is_archived")
        ]

    def create_bucket(self, project_id: str, name: str) -> Section:
        """Create a section in a project"""
        try:
            data = self._request("POST", "/sections", json={"project_id": project_id, "name": name})
            logger.info(f"Created section '{name}' in project {project_id}")
            return Section(id=str(data["id"]), name=data.get("name") or name, project_id=project_id)
        except Exception as e:
            logger.error(f"Failed to create section '{name}': {e}")
            raise

    def list_items(self, project_id: str) -> List[Task]:
        """Get all active tasks of a project"""
        try:
            return [self._task(t) for t in self._paginate("/tasks", {"project_id": project_id})]
        except Exception as e:
            logger.error(f"Failed to get tasks for project {project_id}: {e}")
            raise

    def list_recently_completed(self, project_id: str, since: datetime, until: datetime) -> List[Task]:
        """Get tasks completed between since and until"""
        params = {"project_id": project_id, "since": _ts(since), "until": _ts(until)}
        try:
            items = self._paginate("/tasks/completed/by_completion_date", params, results_key="items")
        except Exception as e:
            logger.error(f"Failed to get completed tasks for project {project_id}: {e}")
            raise
        return [self._task(t) for t in items]

    def create_item(self, task_data: Dict[str, Any]) -> Task:
        """Create a new task"""
        try:
            task = self._task(self._request("POST", "/tasks", json=task_data))
            logger.info(f"Created task {task.id}")
            return task
        except Exception as e:
            logger.error(f"Failed to create task: {e}")
            raise

    def update_item(self, task_id: str, task_data: Dict[str, Any]) -> Task:
        """Update an existing task"""
        try:
            task = self._task(self._request("POST", f"/tasks/{task_id}", json=task_data))
            logger.info(f"Updated task {task_id}")
            return task
        except Exception as e:
            logger.error(f"Failed to update task {task_id}: {e}")
            raise

    def close_item(self, task_id: str) -> None:
        """Mark a task as completed"""
        try:
            self._request("POST", f"/tasks/{task_id}/close")
            logger.info(f"Closed task {task_id}")
        except Exception as e:
            logger.error(f"Failed to close task {task_id}: {e}")
            raise

    def move_item_to_bucket(self, task_id: str, section_id: str) -> None:
        """Move a task to another section"""
        try:
            self._request("POST", f"/tasks/{task_id}/move", json={"section_id": section_id})
            logger.info(f"Moved task {task_id} to section {section_id}")
        except Exception as e:
            logger.error(f"Failed to move task {task_id}: {e}")
            raise

    def list_comments(self, task_id: str) -> List[Comment]:
        """Get all comments of a task"""
        try:
            comments = self._paginate("/comments", {"task_id": task_id})
        except Exception as e:
            logger.error(f"Failed to get comments for task {task_id}: {e}")
            raise
        return [self._comment(c) for c in comments if not c.get("is_deleted")]

    def create_comment(self, task_id: str, body: str) -> Comment:
        """Add a comment to a task"""
        try:
            data = self._request("POST", "/comments", json={"task_id": task_id, "content": body})
            logger.info(f"Created comment on task {task_id}")
            return self._comment(data)
        except Exception as e:
            logger.error(f"Failed to create comment on task {task_id}: {e}")
            raise
