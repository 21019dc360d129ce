"""Deterministic sibling ordering: designation priority, then name.

Names compare case-insensitively (``str.casefold``). The raw name and then
the member id break any remaining tie, which makes the order total: the same
input set always yields the same sequence regardless of storage order.
"""

from typing import Iterable

from .hierarchy_store import NodeRecord
from .priority_index import PriorityIndex


def sort_key(record: NodeRecord, index: PriorityIndex) -> tuple:
    name = record.name or ""
    return (index.priority_of(record.designation_id), name.casefold(), name, record.id)


def compare(a: NodeRecord, b: NodeRecord, index: PriorityIndex) -> int:
    """Three-way comparison under the sibling policy (-1, 0 or 1)."""
    ka, kb = sort_key(a, index), sort_key(b, index)
    return (ka > kb) - (ka < kb)


def sort_members(records: Iterable[NodeRecord], index: PriorityIndex) -> list[NodeRecord]:
    return sorted(records, key=lambda r: sort_key(r, index))


def sort_by_depth(records: Iterable[NodeRecord], index: PriorityIndex) -> list[NodeRecord]:
    """Depth ascending, then the sibling policy; parents always precede children."""
    return sorted(records, key=lambda r: (r.effective_depth, *sort_key(r, index)))
