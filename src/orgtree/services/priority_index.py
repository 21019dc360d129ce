"""Designation priority lookup used for sibling ordering."""

from .hierarchy_store import PrioritySource

UNRANKED_PRIORITY = 999


class PriorityIndex:
    """
    In-memory designation id -> priority map.

    Built fresh for each request from a PrioritySource; never cached across
    requests so a reorder is visible to the very next read.
    """

    def __init__(self, priorities: dict | None = None, unranked: int = UNRANKED_PRIORITY):
        self._priorities = dict(priorities or {})
        self.unranked = unranked

    @classmethod
    def build(cls, source: PrioritySource, unranked: int = UNRANKED_PRIORITY) -> "PriorityIndex":
        return cls({entry.id: entry.priority for entry in source.list_all()}, unranked=unranked)

    def priority_of(self, designation_id) -> int:
        """Priority for a designation; the unranked sentinel when missing."""
        if designation_id is None:
            return self.unranked
        return self._priorities.get(designation_id, self.unranked)

    def __len__(self) -> int:
        return len(self._priorities)
