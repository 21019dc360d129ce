"""Services package for orgtree."""

from .hierarchy_errors import (
    CyclicReportingLine,
    DerivedFieldWrite,
    HierarchyError,
    InvalidDepthCap,
    InvalidDesignationId,
    InvalidPriority,
    NotFound,
    PrimaryManagerNotFound,
    VersionConflict,
)
from .hierarchy_service import Forest, HierarchyService, MemberPage, RebuildReport
from .hierarchy_store import (
    InMemoryNodeStore,
    InMemoryPrioritySource,
    NodeFilter,
    NodeRecord,
    NodeStore,
    PriorityEntry,
    PrioritySource,
)
from .path_maintainer import PathResult, recompute_path
from .priority_index import PriorityIndex
from .sort_policy import compare, sort_by_depth, sort_members

__all__ = [
    # Errors
    "HierarchyError",
    "NotFound",
    "PrimaryManagerNotFound",
    "CyclicReportingLine",
    "InvalidDepthCap",
    "InvalidPriority",
    "InvalidDesignationId",
    "DerivedFieldWrite",
    "VersionConflict",
    # Storage port
    "NodeRecord",
    "NodeFilter",
    "NodeStore",
    "PriorityEntry",
    "PrioritySource",
    "InMemoryNodeStore",
    "InMemoryPrioritySource",
    # Engine
    "PathResult",
    "recompute_path",
    "PriorityIndex",
    "compare",
    "sort_members",
    "sort_by_depth",
    "HierarchyService",
    "Forest",
    "RebuildReport",
    "MemberPage",
]
