"""Todoist section <-> Jira status mapping"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Tuple


class StatusMapper:
    """Static section/status translation.

    Unmapped names pass through unchanged in both directions, so a section
    called "QA" becomes the status "QA" and back again.
    """

    def __init__(
        self,
        status_map: Optional[Mapping[str, str]] = None,
        equivalents: Optional[Iterable[Sequence[str]]] = None,
    ):
        self._map = MappingProxyType(dict(status_map or {}))
        self._groups: Tuple[frozenset, ...] = tuple(
            frozenset(s.casefold() for s in group) for group in (equivalents or [])
        )

    @classmethod
    def from_settings(cls, settings) -> "StatusMapper":
        return cls(settings.status_map, settings.status_equivalents)

    def status_for_bucket(self, bucket: str) -> str:
        return self._map.get(bucket, bucket)

    def bucket_for_status(self, status: str) -> str:
        for bucket, mapped in self._map.items():
            if mapped == status:
                return bucket
        # e.g. "Open" finds the "To Do" section when the two are equivalent
        for bucket, mapped in self._map.items():
            if self.statuses_equivalent(mapped, status):
                return bucket
        return status

    def statuses_equivalent(self, a: Optional[str], b: Optional[str]) -> bool:
        a_key = (a or "").casefold()
        b_key = (b or "").casefold()
        if a_key == b_key:
            return True
        return any(a_key in group and b_key in group for group in self._groups)
