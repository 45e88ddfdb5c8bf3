"""Jira Cloud REST API v3 client wrapper"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from taskbridge.models import Comment, Issue, IssueStatus, Sprint, Transition
from taskbridge.services.retry import with_retries

logger = logging.getLogger(__name__)

# Custom field ids used by Jira Cloud for sprint and epic link.
SPRINT_FIELD = "customfield_10020"
EPIC_LINK_FIELD = "customfield_10014"

SEARCH_FIELDS = [
    "summary",
    "description",
    "status",
    "updated",
    "duedate",
    "comment",
    "priority",
    "resolution",
    SPRINT_FIELD,
    EPIC_LINK_FIELD,
]


class JiraClient:
    """Wrapper for the Jira operations the sync engine needs"""

    def __init__(
        self,
        url: str,
        email: str,
        token: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize Jira client"""
        self.url = url.rstrip("/")
        self.http = httpx.Client(
            base_url=f"{self.url}/rest/api/3",
            auth=(email, token),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        self.http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        def _do():
            resp = self.http.request(method, path, **kwargs)
            logger.debug(f"{method} {path} -> {resp.status_code}")
            resp.raise_for_status()
            if resp.status_code == 204 or not resp.content:
                return None
            return resp.json()

        return with_retries(_do)

    @staticmethod
    def _comment(data: Dict[str, Any]) -> Comment:
        author = data.get("author") or {}
        return Comment(
            id=str(data["id"]) if data.get("id") is not None else None,
            body=data.get("body"),
            author=author.get("displayName") or author.get("accountId"),
            created_at=data.get("created"),
        )

    @classmethod
    def _issue(cls, data: Dict[str, Any]) -> Issue:
        fields = data.get("fields") or {}

        status = None
        if fields.get("status"):
            status = IssueStatus(name=fields["status"].get("name") or "")

        resolution = None
        if fields.get("resolution"):
            resolution = fields["resolution"].get("name") or "Resolved"

        priority_id = None
        if fields.get("priority") and fields["priority"].get("id") is not None:
            priority_id = str(fields["priority"]["id"])

        sprints = None
        if SPRINT_FIELD in fields:
            sprints = [
                Sprint(id=s.get("id"), name=s.get("name"), state=s.get("state"))
                for s in fields.get(SPRINT_FIELD) or []
                if isinstance(s, dict)
            ]

        # Only trust the embedded comment page when it holds every comment.
        comments = None
        page = fields.get("comment")
        if isinstance(page, dict):
            items = page.get("comments") or []
            if int(page.get("total", len(items)) or 0) <= len(items):
                comments = [cls._comment(c) for c in items]

        return Issue(
            key=data["key"],
            id=str(data["id"]) if data.get("id") is not None else None,
            summary=fields.get("summary") or "",
            description=fields.get("description"),
            due_date=fields.get("duedate"),
            status=status,
            resolution=resolution,
            priority_id=priority_id,
            updated_at=fields.get("updated"),
            sprints=sprints,
            comments=comments,
        )

    def search_issues(self, jql: str, fields: Optional[List[str]] = None, max_results: int = 200) -> List[Issue]:
        """Search issues with JQL (enhanced search, token pagination)"""
        issues: List[Issue] = []
        token: Optional[str] = None
        try:
            while len(issues) < max_results:
                params: Dict[str, Any] = {
                    "jql": jql,
                    "maxResults": min(100, max_results - len(issues)),
                }
                if fields:
                    params["fields"] = ",".join(fields)
                if token:
                    params["nextPageToken"] = token
                page = self._request("GET", "/search/jql", params=params) or {}
                issues.extend(self._issue(i) for i in page.get("issues") or [])
                token = page.get("nextPageToken")
                if not token or page.get("isLast"):
                    break
        except Exception as e:
            logger.error(f"Failed to search Jira issues: {e}")
            raise
        return issues

    def create_issue(self, fields: Dict[str, Any]) -> Issue:
        """Create a new issue"""
        try:
            data = self._request("POST", "/issue", json={"fields": fields})
            logger.info(f"Created issue {data['key']}")
            return Issue(key=data["key"], id=str(data.get("id")), summary=fields.get("summary") or "")
        except Exception as e:
            logger.error(f"Failed to create issue: {e}")
            raise

    def update_issue(self, key: str, fields: Dict[str, Any]) -> None:
        """Update fields of an existing issue"""
        try:
            self._request("PUT", f"/issue/{key}", json={"fields": fields})
            logger.info(f"Updated issue {key}")
        except Exception as e:
            logger.error(f"Failed to update issue {key}: {e}")
            raise

    def list_transitions(self, key: str) -> List[Transition]:
        """Get the transitions currently available for an issue"""
        try:
            data = self._request("GET", f"/issue/{key}/transitions") or {}
        except Exception as e:
            logger.error(f"Failed to get transitions for issue {key}: {e}")
            raise
        return [
            Transition(id=str(t["id"]), name=t.get("name") or "", to_status=(t.get("to") or {}).get("name"))
            for t in data.get("transitions") or []
        ]

    def transition_to(self, key: str, status: str, resolve: bool = False) -> None:
        """Move an issue to the given status (by transition or target status name).

        With ``resolve`` the transition also sets the resolution to Done.
        """
        transitions = self.list_transitions(key)
        wanted = status.casefold()
        match = next(
            (
                t
                for t in transitions
                if t.name.casefold() == wanted or (t.to_status or "").casefold() == wanted
            ),
            None,
        )
        if match is None:
            available = [f"{t.name} (-> {t.to_status})" for t in transitions]
            raise LookupError(f"No transition to '{status}' for {key}, available: {available}")

        payload: Dict[str, Any] = {"transition": {"id": match.id}}
        if resolve:
            payload["fields"] = {"resolution": {"name": "Done"}}
        try:
            self._request("POST", f"/issue/{key}/transitions", json=payload)
            logger.info(f"Transitioned issue {key} to '{status}'")
        except Exception as e:
            logger.error(f"Failed to transition issue {key} to '{status}': {e}")
            raise

    def list_comments(self, key: str) -> List[Comment]:
        """Get all comments of an issue"""
        comments: List[Comment] = []
        start_at = 0
        try:
            while True:
                page = self._request(
                    "GET", f"/issue/{key}/comment", params={"startAt": start_at, "maxResults": 100}
                ) or {}
                items = page.get("comments") or []
                comments.extend(self._comment(c) for c in items)
                start_at += len(items)
                if not items or start_at >= int(page.get("total") or 0):
                    return comments
        except Exception as e:
            logger.error(f"Failed to get comments for issue {key}: {e}")
            raise

    def create_comment(self, key: str, body: Any) -> Comment:
        """Add a comment (ADF body) to an issue"""
        try:
            data = self._request("POST", f"/issue/{key}/comment", json={"body": body})
            logger.info(f"Created comment on issue {key}")
            return self._comment(data or {})
        except Exception as e:
            logger.error(f"Failed to create comment on issue {key}: {e}")
            raise
