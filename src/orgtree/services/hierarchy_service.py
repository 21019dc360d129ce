"""Hierarchy service: root discovery, subtree and forest reads, member writes.

Reads are single bounded scans over the member collection followed by one
sort; nothing here walks the tree node by node. Writes run inside a unit of
work on the store: every validation happens before the first store write and
any error rolls the whole operation back.
"""

import logging
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass, field

from ..config import get_hierarchy_config
from .hierarchy_errors import (
    DerivedFieldWrite,
    InvalidDepthCap,
    InvalidDesignationId,
    InvalidPriority,
    NotFound,
)
from .hierarchy_store import NodeFilter, NodeRecord, NodeStore, PriorityEntry, PrioritySource
from .path_maintainer import (
    ROOT_PATH,
    PathResult,
    cascade_paths,
    normalize_managers,
    recompute_path,
)
from .priority_index import PriorityIndex
from .sort_policy import sort_by_depth, sort_members

logger = logging.getLogger(__name__)

# Fields callers may set on a member
MEMBER_FIELDS = frozenset({"name", "managers", "designation_id", "active", "emp_id", "status"})

# Fields only the engine (or the store) writes
DERIVED_FIELDS = frozenset({"id", "ancestors", "depth", "version"})

# Member listing page sizes
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def parse_depth_cap(value) -> int | None:
    """
    Validate a depth cap from a caller.

    Accepts non-negative ints and their string or integral-float forms.
    None and "" mean "no cap supplied".

    Raises:
        InvalidDepthCap: negative, fractional, boolean or non-numeric input
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidDepthCap(value)
    if isinstance(value, int):
        cap = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidDepthCap(value)
        cap = int(value)
    elif isinstance(value, str):
        try:
            cap = int(value.strip())
        except ValueError:
            raise InvalidDepthCap(value) from None
    else:
        raise InvalidDepthCap(value)
    if cap < 0:
        raise InvalidDepthCap(value)
    return cap


@dataclass
class Forest:
    """Depth-bounded multi-root forest, flat and depth-ordered."""

    roots: list[NodeRecord]
    tree: list[NodeRecord]
    my_reports: list[NodeRecord] | None = None
    max_depth: int = 0

    def to_dict(self) -> dict:
        data = {
            "roots": [r.to_dict() for r in self.roots],
            "tree": [r.to_dict() for r in self.tree],
            "maxDepth": self.max_depth,
        }
        if self.my_reports is not None:
            data["myReports"] = [r.to_dict() for r in self.my_reports]
        return data


@dataclass
class MemberPage:
    """One page of the member listing."""

    page: int
    limit: int
    total: int
    items: list[NodeRecord]

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "items": [r.to_dict() for r in self.items],
        }


@dataclass
class RebuildReport:
    """Outcome of a full path rebuild."""

    updated: int = 0
    unresolved: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"updated": self.updated, "unresolved": self.unresolved}


class HierarchyService:
    """
    Hierarchy engine over a NodeStore and a PrioritySource.

    A PriorityIndex is built per call from the priority source, so sibling
    order always reflects the current designation catalogue.
    """

    def __init__(self, store: NodeStore, priorities: PrioritySource, config: dict | None = None):
        self._store = store
        self._priorities = priorities
        settings = get_hierarchy_config(config or {})
        self.default_depth_cap = settings["default_depth_cap"]
        self.unranked_priority = settings["unranked_priority"]

    @property
    def store(self) -> NodeStore:
        return self._store

    def priority_index(self) -> PriorityIndex:
        return PriorityIndex.build(self._priorities, unranked=self.unranked_priority)

    @contextmanager
    def _unit_of_work(self):
        try:
            yield
        except Exception:
            self._store.rollback()
            raise
        self._store.commit()

    # --- Reads ---

    def get_member(self, member_id: int, include_inactive: bool = False) -> NodeRecord:
        record = self._store.find_by_id(member_id)
        if record is None or (not record.active and not include_inactive):
            raise NotFound(member_id)
        return record

    def find_roots(self, index: PriorityIndex | None = None) -> list[NodeRecord]:
        """Active members with no manager, in sibling order."""
        index = index or self.priority_index()
        return sort_members(self._store.find(NodeFilter(roots_only=True)), index)

    def get_subtree(self, root_id: int, depth_cap=None) -> list[NodeRecord]:
        """
        Return a member and every active member below it.

        Args:
            root_id: Member at the top of the subtree (may itself be mid-tree)
            depth_cap: Optional number of levels below the root to include

        Returns:
            Records ordered by depth, then sibling order

        Raises:
            NotFound: root_id is absent or inactive
            InvalidDepthCap: depth_cap is negative or not an integer
        """
        cap = parse_depth_cap(depth_cap)
        root = self.get_member(root_id)

        max_depth = None if cap is None else root.effective_depth + cap
        members = self._store.find(NodeFilter(within=(root.id,), max_depth=max_depth))
        return sort_by_depth(members, self.priority_index())

    def direct_reports(self, manager_id: int, index: PriorityIndex | None = None) -> list[NodeRecord]:
        """Active members listing ``manager_id`` among their managers."""
        index = index or self.priority_index()
        return sort_members(self._store.find(NodeFilter(reports_to=manager_id)), index)

    def list_members(
        self,
        q: str | None = None,
        status: str | None = None,
        designation_id: int | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> MemberPage:
        """
        Page through active members ordered by name.

        ``q`` matches a case-insensitive substring of the name or employee id.
        ``page`` is clamped to at least 1 and ``limit`` to 1..MAX_PAGE_SIZE.
        """
        page = max(page or 1, 1)
        limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)

        node_filter = NodeFilter(
            search=q.strip() if q else None,
            status=status or None,
            designation_id=designation_id,
        )
        items, total = self._store.page(node_filter, offset=(page - 1) * limit, limit=limit)
        return MemberPage(page=page, limit=limit, total=total, items=items)

    def list_designations(self) -> list[PriorityEntry]:
        """Designations from most to least senior."""
        return sorted(self._priorities.list_all(), key=lambda e: (e.priority, e.id))

    def build_forest(self, depth_cap=None, include_reports_of: int | None = None) -> Forest:
        """
        Build the depth-bounded forest under every root in one scan.

        The cap is measured from the shallowest root. Without a cap the
        configured ``hierarchy.default_depth_cap`` applies.

        Raises:
            InvalidDepthCap: depth_cap is negative or not an integer
        """
        cap = parse_depth_cap(depth_cap)
        if cap is None:
            cap = self.default_depth_cap

        index = self.priority_index()
        roots = self.find_roots(index)
        min_root_depth = min((r.effective_depth for r in roots), default=0)
        max_depth = min_root_depth + cap

        tree: list[NodeRecord] = []
        if roots:
            members = self._store.find(
                NodeFilter(within=tuple(r.id for r in roots), max_depth=max_depth)
            )
            tree = sort_by_depth(members, index)

        my_reports = None
        if include_reports_of is not None:
            my_reports = self.direct_reports(include_reports_of, index)

        logger.debug(
            "Forest built: %d root(s), %d member(s), max_depth=%d",
            len(roots), len(tree), max_depth,
        )
        return Forest(roots=roots, tree=tree, my_reports=my_reports, max_depth=max_depth)

    # --- Writes ---

    def create_member(self, fields: dict) -> NodeRecord:
        """
        Create a member, deriving its path from the primary manager.

        Raises:
            DerivedFieldWrite: fields include ancestors, depth, id or version
            PrimaryManagerNotFound: managers[0] does not resolve
        """
        changes = self._member_fields(fields)
        changes["managers"] = normalize_managers(changes.get("managers"))

        with self._unit_of_work():
            path = recompute_path(None, changes["managers"], self._store)
            record = self._store.create({**changes, **path.as_fields()})

        logger.info(f"Created member {record.id} ({record.name}) at depth {record.depth}")
        return record

    def update_member(self, member_id: int, fields: dict, expected_version: int | None = None) -> NodeRecord:
        """
        Update a member; a new managers list re-derives its path.

        When the chain changes, every member below is rebased in the same
        unit of work. Passing ``expected_version`` turns the write into a
        compare-and-swap; without it the last write wins.

        Raises:
            NotFound: member_id is absent
            DerivedFieldWrite: fields include ancestors, depth, id or version
            PrimaryManagerNotFound: managers[0] does not resolve
            CyclicReportingLine: the member would become its own ancestor
            VersionConflict: expected_version is stale
        """
        changes = self._member_fields(fields)

        try:
            with self._unit_of_work():
                current = self._store.find_by_id(member_id)
                if current is None:
                    raise NotFound(member_id)

                path_changed = False
                if "managers" in changes:
                    changes["managers"] = normalize_managers(changes["managers"])
                    path = recompute_path(member_id, changes["managers"], self._store)
                    path_changed = (
                        path.ancestors != current.ancestors or path.depth != current.depth
                    )
                    changes.update(path.as_fields())

                record = self._store.update(member_id, changes, expected_version=expected_version)
                if path_changed:
                    cascade_paths(record, self._store)
        except Exception as e:
            logger.warning(f"Rejected update of member {member_id}: {e}")
            raise

        if path_changed:
            logger.info(
                f"Member {member_id} moved under {record.primary_manager} (depth {record.depth})"
            )
        return record

    def soft_delete(self, member_id: int) -> NodeRecord:
        """Hide a member from hierarchy reads; its row and chain stay."""
        with self._unit_of_work():
            if self._store.find_by_id(member_id) is None:
                raise NotFound(member_id)
            record = self._store.update(member_id, {"active": False})
        logger.info(f"Soft-deleted member {member_id}")
        return record

    def hard_delete(self, member_id: int) -> int:
        """
        Remove a member's row entirely.

        Descendant chains that mention the member are left as they are and
        reported, not repaired; ``rebuild_paths`` is the explicit repair.

        Returns:
            Number of members now carrying a dangling ancestor reference
        """
        with self._unit_of_work():
            if self._store.find_by_id(member_id) is None:
                raise NotFound(member_id)
            dangling = self._store.find(NodeFilter(active=None, ancestors_contain=member_id))
            self._store.delete(member_id)

        if dangling:
            logger.warning(
                "Hard-deleted member %s; %d member(s) still list it as an ancestor",
                member_id, len(dangling),
            )
        else:
            logger.info(f"Hard-deleted member {member_id}")
        return len(dangling)

    def reorder_priorities(self, items: list[dict]) -> int:
        """
        Apply a bulk ``[{id, priority}]`` re-prioritisation.

        All items are validated before any is written. Items are independent
        of each other; unknown designation ids are skipped.

        Returns:
            Number of designations updated

        Raises:
            InvalidDesignationId: an id is not an integer
            InvalidPriority: a priority is not an integer >= 1
        """
        parsed = []
        for item in items:
            designation_id = item.get("id")
            priority = item.get("priority")
            if isinstance(designation_id, bool) or not isinstance(designation_id, int):
                raise InvalidDesignationId(designation_id)
            if isinstance(priority, bool) or not isinstance(priority, int) or priority < 1:
                raise InvalidPriority(designation_id, priority)
            parsed.append((designation_id, priority))

        # Priority writes share the store's unit of work
        with self._unit_of_work():
            updated = sum(
                1 for designation_id, priority in parsed
                if self._priorities.set_priority(designation_id, priority)
            )

        logger.info(f"Reordered {updated} of {len(parsed)} designation(s)")
        return updated

    def rebuild_paths(self) -> RebuildReport:
        """
        Re-derive every member's chain from primary-manager links.

        Walks breadth-first from the members with no managers. Members that
        cannot be reached (missing primary manager, or a loop of primary
        links) are left untouched and listed in the report.
        """
        records = {r.id: r for r in self._store.find(NodeFilter(active=None))}
        children: dict[int, list[int]] = defaultdict(list)
        resolved: dict[int, PathResult] = {}
        queue: deque[int] = deque()

        for record in records.values():
            if record.managers:
                children[record.managers[0]].append(record.id)
            else:
                resolved[record.id] = ROOT_PATH
                queue.append(record.id)

        while queue:
            parent_id = queue.popleft()
            parent_path = resolved[parent_id]
            for child_id in children.get(parent_id, ()):
                if child_id in resolved:
                    continue
                ancestors = parent_path.ancestors + (parent_id,)
                resolved[child_id] = PathResult(ancestors=ancestors, depth=len(ancestors))
                queue.append(child_id)

        report = RebuildReport(unresolved=sorted(i for i in records if i not in resolved))
        with self._unit_of_work():
            for member_id, path in resolved.items():
                record = records[member_id]
                if record.ancestors != path.ancestors or record.depth != path.depth:
                    self._store.update(member_id, path.as_fields())
                    report.updated += 1

        if report.unresolved:
            logger.warning(
                "Path rebuild left %d member(s) unresolved: %s",
                len(report.unresolved), report.unresolved,
            )
        logger.info(f"Path rebuild updated {report.updated} member(s)")
        return report

    @staticmethod
    def _member_fields(fields: dict) -> dict:
        derived = DERIVED_FIELDS.intersection(fields)
        if derived:
            raise DerivedFieldWrite(derived)
        unknown = set(fields) - MEMBER_FIELDS
        if unknown:
            raise ValueError(f"Unknown member fields: {', '.join(sorted(unknown))}")
        return dict(fields)
