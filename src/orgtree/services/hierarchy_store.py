"""Storage port for the hierarchy engine.

The engine never touches SQLAlchemy directly. It reads and writes
``NodeRecord`` values through a ``NodeStore`` and reads designation
priorities through a ``PrioritySource``. ``SqlNodeStore`` (see
``sql_store``) backs the running service; the in-memory implementations here
back the unit tests and any tooling that works on a snapshot of the org.
"""

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Iterable, Protocol

from .hierarchy_errors import VersionConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeRecord:
    """Engine view of one member."""

    id: int
    name: str
    managers: tuple[int, ...] = ()
    ancestors: tuple[int, ...] = ()
    depth: int | None = 0
    designation_id: int | None = None
    active: bool = True
    version: int = 1
    emp_id: str | None = None
    status: str = "active"

    @property
    def primary_manager(self) -> int | None:
        return self.managers[0] if self.managers else None

    @property
    def effective_depth(self) -> int:
        """Stored depth, or the chain length for legacy rows without one."""
        if self.depth is None:
            return len(self.ancestors)
        return self.depth

    def to_dict(self) -> dict:
        data = asdict(self)
        data["managers"] = list(self.managers)
        data["ancestors"] = list(self.ancestors)
        data["depth"] = self.effective_depth
        return data


@dataclass(frozen=True)
class NodeFilter:
    """
    Predicates for a single bounded scan over the member collection.

    All set predicates are ANDed together:
        active: only members with this active flag (None = either)
        roots_only: only members with no managers
        within: members whose id is in the set OR whose ancestors overlap it
        ancestors_contain: members whose ancestors contain this id
        reports_to: members whose managers contain this id
        max_depth: members whose effective depth is at most this value
        search: case-insensitive substring of name or emp_id
        status: members with this status
        designation_id: members holding this designation
    """

    active: bool | None = True
    roots_only: bool = False
    within: tuple[int, ...] | None = None
    ancestors_contain: int | None = None
    reports_to: int | None = None
    max_depth: int | None = None
    search: str | None = None
    status: str | None = None
    designation_id: int | None = None

    def matches(self, record: NodeRecord) -> bool:
        if self.active is not None and record.active != self.active:
            return False
        if self.roots_only and record.managers:
            return False
        if self.within is not None:
            ids = set(self.within)
            if record.id not in ids and ids.isdisjoint(record.ancestors):
                return False
        if self.ancestors_contain is not None and self.ancestors_contain not in record.ancestors:
            return False
        if self.reports_to is not None and self.reports_to not in record.managers:
            return False
        if self.max_depth is not None and record.effective_depth > self.max_depth:
            return False
        if self.search:
            needle = self.search.casefold()
            if needle not in record.name.casefold() and needle not in (record.emp_id or "").casefold():
                return False
        if self.status is not None and record.status != self.status:
            return False
        if self.designation_id is not None and record.designation_id != self.designation_id:
            return False
        return True


@dataclass(frozen=True)
class PriorityEntry:
    """One designation's sibling priority (lower = more senior)."""

    id: int
    priority: int
    name: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class NodeStore(Protocol):
    """Persistence operations the hierarchy engine relies on."""

    def find_by_id(self, node_id: int) -> NodeRecord | None: ...

    def find(self, node_filter: NodeFilter) -> list[NodeRecord]: ...

    def page(self, node_filter: NodeFilter, offset: int, limit: int) -> tuple[list[NodeRecord], int]: ...

    def create(self, fields: dict) -> NodeRecord: ...

    def update(self, node_id: int, fields: dict, expected_version: int | None = None) -> NodeRecord: ...

    def delete(self, node_id: int) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class PrioritySource(Protocol):
    """Read/write access to the designation priority catalogue."""

    def list_all(self) -> list[PriorityEntry]: ...

    def set_priority(self, designation_id: int, priority: int) -> bool: ...


class InMemoryNodeStore:
    """
    Dict-backed NodeStore with commit/rollback snapshots.

    Records are immutable, so a snapshot is a shallow copy of the id map.
    ``find`` returns records in insertion order.
    """

    def __init__(self, records: Iterable[NodeRecord] = ()):
        self._records: dict[int, NodeRecord] = {}
        for record in records:
            self._records[record.id] = record
        self._next_id = max(self._records, default=0) + 1
        self._committed = dict(self._records)
        self._committed_next_id = self._next_id

    def find_by_id(self, node_id: int) -> NodeRecord | None:
        return self._records.get(node_id)

    def find(self, node_filter: NodeFilter) -> list[NodeRecord]:
        return [r for r in self._records.values() if node_filter.matches(r)]

    def page(self, node_filter: NodeFilter, offset: int, limit: int) -> tuple[list[NodeRecord], int]:
        """Matching records ordered by name then id, sliced, plus the total match count."""
        matched = sorted(self.find(node_filter), key=lambda r: (r.name, r.id))
        return matched[offset:offset + limit], len(matched)

    def all(self) -> list[NodeRecord]:
        return list(self._records.values())

    def create(self, fields: dict) -> NodeRecord:
        fields = dict(fields)
        node_id = fields.pop("id", None) or self._next_id
        self._next_id = max(self._next_id, node_id + 1)
        record = NodeRecord(id=node_id, **_coerce(fields))
        self._records[node_id] = record
        return record

    def update(self, node_id: int, fields: dict, expected_version: int | None = None) -> NodeRecord:
        current = self._records.get(node_id)
        if current is None:
            raise KeyError(node_id)
        if expected_version is not None and current.version != expected_version:
            raise VersionConflict(node_id, expected_version, current.version)
        updated = replace(current, version=current.version + 1, **_coerce(fields))
        self._records[node_id] = updated
        return updated

    def delete(self, node_id: int) -> bool:
        return self._records.pop(node_id, None) is not None

    def commit(self) -> None:
        self._committed = dict(self._records)
        self._committed_next_id = self._next_id

    def rollback(self) -> None:
        self._records = dict(self._committed)
        self._next_id = self._committed_next_id


@dataclass
class InMemoryPrioritySource:
    """Dict-backed PrioritySource: designation id -> priority, with optional names."""

    priorities: dict[int, int] = field(default_factory=dict)
    names: dict[int, str] = field(default_factory=dict)

    def list_all(self) -> list[PriorityEntry]:
        return [
            PriorityEntry(id=k, priority=v, name=self.names.get(k))
            for k, v in self.priorities.items()
        ]

    def set_priority(self, designation_id: int, priority: int) -> bool:
        if designation_id not in self.priorities:
            return False
        self.priorities[designation_id] = priority
        return True


def _coerce(fields: dict) -> dict:
    """Normalise list-valued id fields to tuples for frozen records."""
    result = dict(fields)
    for key in ("managers", "ancestors"):
        if key in result and result[key] is not None:
            result[key] = tuple(result[key])
    return result
