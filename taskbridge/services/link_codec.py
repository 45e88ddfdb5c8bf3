"""Link marker embedded in Todoist task titles.

A linked task title starts with a markdown link to its Jira issue::

    [PROJ-123](https://example.atlassian.net/browse/PROJ-123) Fix login bug

Only that leading position is authoritative; links further into the text are
ordinary user content.
"""

import re
from typing import Optional

KEY_PATTERN = r"[A-Z][A-Z0-9_]+-\d+"

_KEY_RE = re.compile(rf"^{KEY_PATTERN}$")
# The marker plus at most one separating space.
_PREFIX_RE = re.compile(rf"^\[(?P<key>{KEY_PATTERN})\]\(https?://[^)\s]+\)(?: |$)")


def normalize_base_url(url: str) -> str:
    """Ensure the URL has a scheme and no trailing slash."""
    u = (url or "").strip().rstrip("/")
    if u and not u.startswith(("http://", "https://")):
        u = "https://" + u
    return u


class LinkCodec:
    """Reads and writes the Jira link prefix of a task title"""

    def __init__(self, base_url: str):
        self.base_url = normalize_base_url(base_url)

    def extract(self, text: Optional[str]) -> Optional[str]:
        """Return the linked issue key, or None when the title is unlinked."""
        if not text:
            return None
        m = _PREFIX_RE.match(text)
        return m.group("key") if m else None

    def strip(self, text: Optional[str]) -> str:
        """Return the user-authored part of the title."""
        if not text:
            return ""
        return _PREFIX_RE.sub("", text, count=1)

    def link_for(self, key: str) -> str:
        return f"[{key}]({self.base_url}/browse/{key})"

    def embed(self, text: Optional[str], key: str) -> str:
        """Set (or replace) the link prefix for ``key``."""
        if not key or not _KEY_RE.match(key):
            raise ValueError(f"Invalid issue key {key!r}")
        stripped = self.strip(text)
        link = self.link_for(key)
        if not stripped:
            return link
        return f"{link} {stripped}"
