"""Materialized path maintenance for reporting lines.

A member's ``ancestors`` is its primary manager's ``ancestors`` plus the
primary manager's id, and ``depth`` is the length of that chain. Every write
that touches ``managers`` goes through ``recompute_path`` before anything is
persisted, so "no member is its own ancestor" holds by induction over all
stored rows.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from .hierarchy_errors import CyclicReportingLine, PrimaryManagerNotFound
from .hierarchy_store import NodeFilter, NodeRecord, NodeStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathResult:
    """Derived path values to persist with the member."""

    ancestors: tuple[int, ...]
    depth: int

    def as_fields(self) -> dict:
        return {"ancestors": self.ancestors, "depth": self.depth}


ROOT_PATH = PathResult(ancestors=(), depth=0)


def normalize_managers(managers: Iterable | None) -> tuple[int, ...]:
    """Coerce ids to int and drop duplicates, keeping first occurrence."""
    seen: dict[int, None] = {}
    for manager_id in managers or ():
        seen.setdefault(int(manager_id), None)
    return tuple(seen)


def recompute_path(node_id: int | None, managers: Iterable, store: NodeStore) -> PathResult:
    """
    Derive ``ancestors``/``depth`` for a member from its proposed managers.

    Args:
        node_id: The member being written, or None when it does not exist yet
        managers: Proposed manager ids; the first is the primary manager
        store: NodeStore used to load the primary manager

    Returns:
        PathResult for the member

    Raises:
        PrimaryManagerNotFound: managers[0] does not resolve
        CyclicReportingLine: the member would appear in its own ancestry
    """
    managers = normalize_managers(managers)
    if not managers:
        return ROOT_PATH

    if node_id is not None and node_id in managers:
        raise CyclicReportingLine(node_id, node_id)

    primary_id = managers[0]
    primary = store.find_by_id(primary_id)
    if primary is None:
        raise PrimaryManagerNotFound(primary_id)

    ancestors = primary.ancestors + (primary.id,)
    if node_id is not None and node_id in ancestors:
        raise CyclicReportingLine(node_id, primary_id)

    return PathResult(ancestors=ancestors, depth=primary.effective_depth + 1)


def rebase_descendant(descendant: NodeRecord, node: NodeRecord) -> PathResult:
    """Re-derive a descendant's chain after ``node`` moved.

    The part of the chain below ``node`` is kept; everything above it is
    replaced by ``node``'s current chain.
    """
    position = descendant.ancestors.index(node.id)
    ancestors = node.ancestors + descendant.ancestors[position:]
    return PathResult(ancestors=ancestors, depth=len(ancestors))


def cascade_paths(node: NodeRecord, store: NodeStore) -> int:
    """
    Rewrite the chains of every member below ``node``.

    One scan collects all members with ``node.id`` in their ancestors,
    inactive ones included so a later reactivation finds a correct path.

    Returns:
        Number of descendants rewritten
    """
    rewritten = 0
    for descendant in store.find(NodeFilter(active=None, ancestors_contain=node.id)):
        path = rebase_descendant(descendant, node)
        if path.ancestors != descendant.ancestors or descendant.depth != path.depth:
            store.update(descendant.id, path.as_fields())
            rewritten += 1
    if rewritten:
        logger.info("Re-derived paths for %d member(s) below %s", rewritten, node.id)
    return rewritten
