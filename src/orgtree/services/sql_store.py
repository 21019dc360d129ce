"""Flask-SQLAlchemy implementation of the hierarchy storage port.

Filters compile to PostgreSQL array operators so each NodeFilter is one
indexed scan:
    within            -> id = ANY(:ids) OR ancestors && :ids
    ancestors_contain -> ancestors @> ARRAY[:id]
    reports_to        -> managers @> ARRAY[:id]
    roots_only        -> cardinality(managers) = 0
    max_depth         -> coalesce(depth, cardinality(ancestors)) <= :n
    search            -> name ILIKE :q OR emp_id ILIKE :q

Both classes use the request-scoped ``db.session`` and must be called inside
an application context.
"""

import logging

from sqlalchemy import func, or_

from ..database import db
from ..models.designation import Designation
from ..models.member import Member
from .hierarchy_errors import VersionConflict
from .hierarchy_store import NodeFilter, NodeRecord, PriorityEntry

logger = logging.getLogger(__name__)


def to_record(member: Member) -> NodeRecord:
    """Convert a Member row into the engine's NodeRecord."""
    return NodeRecord(
        id=member.id,
        name=member.name,
        managers=tuple(member.managers or ()),
        ancestors=tuple(member.ancestors or ()),
        depth=member.depth,
        designation_id=member.designation_id,
        active=not member.is_deleted,
        version=member.version,
        emp_id=member.emp_id,
        status=member.status,
    )


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so a search term matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_columns(fields: dict) -> dict:
    """Map NodeRecord field names onto Member columns."""
    columns = {}
    for key, value in fields.items():
        if key == "active":
            columns["is_deleted"] = not value
        elif key in ("managers", "ancestors"):
            columns[key] = list(value or ())
        else:
            columns[key] = value
    return columns


class SqlNodeStore:
    """NodeStore over the ``members`` table."""

    def find_by_id(self, node_id: int) -> NodeRecord | None:
        member = db.session.get(Member, node_id)
        return to_record(member) if member else None

    def _query(self, node_filter: NodeFilter):
        """Compile a NodeFilter into a Member query, or None if it can match nothing."""
        query = db.session.query(Member)

        if node_filter.active is not None:
            query = query.filter(Member.is_deleted.is_(not node_filter.active))
        if node_filter.roots_only:
            query = query.filter(func.cardinality(Member.managers) == 0)
        if node_filter.within is not None:
            ids = list(node_filter.within)
            if not ids:
                return None
            query = query.filter(or_(Member.id.in_(ids), Member.ancestors.overlap(ids)))
        if node_filter.ancestors_contain is not None:
            query = query.filter(Member.ancestors.contains([node_filter.ancestors_contain]))
        if node_filter.reports_to is not None:
            query = query.filter(Member.managers.contains([node_filter.reports_to]))
        if node_filter.max_depth is not None:
            effective_depth = func.coalesce(Member.depth, func.cardinality(Member.ancestors))
            query = query.filter(effective_depth <= node_filter.max_depth)
        if node_filter.search:
            pattern = f"%{_escape_like(node_filter.search)}%"
            query = query.filter(or_(
                Member.name.ilike(pattern, escape="\\"),
                Member.emp_id.ilike(pattern, escape="\\"),
            ))
        if node_filter.status is not None:
            query = query.filter(Member.status == node_filter.status)
        if node_filter.designation_id is not None:
            query = query.filter(Member.designation_id == node_filter.designation_id)

        return query

    def find(self, node_filter: NodeFilter) -> list[NodeRecord]:
        query = self._query(node_filter)
        if query is None:
            return []
        return [to_record(m) for m in query.order_by(Member.id.asc()).all()]

    def page(self, node_filter: NodeFilter, offset: int, limit: int) -> tuple[list[NodeRecord], int]:
        query = self._query(node_filter)
        if query is None:
            return [], 0
        total = query.order_by(None).count()
        rows = query.order_by(Member.name.asc(), Member.id.asc()).offset(offset).limit(limit).all()
        return [to_record(m) for m in rows], total

    def create(self, fields: dict) -> NodeRecord:
        member = Member(**_to_columns(fields))
        db.session.add(member)
        db.session.flush()
        return to_record(member)

    def update(self, node_id: int, fields: dict, expected_version: int | None = None) -> NodeRecord:
        query = db.session.query(Member).filter(Member.id == node_id)
        if expected_version is not None:
            # Row lock so the version check and the write are one step
            query = query.with_for_update()
        member = query.first()
        if member is None:
            raise KeyError(node_id)
        if expected_version is not None and member.version != expected_version:
            raise VersionConflict(node_id, expected_version, member.version)

        for column, value in _to_columns(fields).items():
            setattr(member, column, value)
        member.version = member.version + 1
        db.session.flush()
        return to_record(member)

    def delete(self, node_id: int) -> bool:
        member = db.session.get(Member, node_id)
        if member is None:
            return False
        db.session.delete(member)
        db.session.flush()
        return True

    def commit(self) -> None:
        db.session.commit()

    def rollback(self) -> None:
        db.session.rollback()


class SqlPrioritySource:
    """PrioritySource over the ``designations`` table."""

    def list_all(self) -> list[PriorityEntry]:
        rows = db.session.query(Designation.id, Designation.priority, Designation.name).all()
        return [PriorityEntry(id=row.id, priority=row.priority, name=row.name) for row in rows]

    def set_priority(self, designation_id: int, priority: int) -> bool:
        designation = db.session.get(Designation, designation_id)
        if designation is None:
            logger.debug(f"Reorder skipped unknown designation {designation_id}")
            return False
        designation.priority = priority
        return True
