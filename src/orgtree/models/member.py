"""Member model."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import db

if TYPE_CHECKING:
    from .designation import Designation

MEMBER_STATUSES = ("active", "inactive", "vacant", "on_leave")


class Member(db.Model):
    """
    Represents a person (or vacant seat) in the organisation chart.

    ``managers`` is the ordered list of member ids this member reports to; the
    first entry is the primary manager. ``ancestors`` and ``depth`` form a
    materialized path derived from the primary manager only, so a subtree is a
    single ``ancestors @> ARRAY[id]`` scan. Both are written exclusively by the
    hierarchy service and never accepted from callers.

    ``is_deleted`` is the soft-delete flag: soft-deleted members vanish from
    every hierarchy read but keep their row, so descendants may still list
    them in ``ancestors``.
    """

    __tablename__ = "members"
    __table_args__ = (
        Index("ix_members_managers", "managers", postgresql_using="gin"),
        Index("ix_members_ancestors", "ancestors", postgresql_using="gin"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(
        String(128), nullable=False
    )
    emp_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True
    )
    designation_id: Mapped[int | None] = mapped_column(
        ForeignKey("designations.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="active"
    )
    managers: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=lambda: [], server_default=text("'{}'")
    )
    ancestors: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=lambda: [], server_default=text("'{}'")
    )
    # Nullable for rows imported before paths were materialized
    depth: Mapped[int | None] = mapped_column(
        Integer, nullable=True, default=0, index=True
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    designation: Mapped["Designation | None"] = relationship(
        "Designation", back_populates="members"
    )

    def __repr__(self) -> str:
        return f"<Member id={self.id} name={self.name} depth={self.depth}>"
