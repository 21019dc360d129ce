"""Designation model."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import db

if TYPE_CHECKING:
    from .member import Member


class Designation(db.Model):
    """
    Represents a job designation (e.g., CEO, Director, Engineer).

    Designation is the priority catalogue used to order siblings in the
    reporting hierarchy: a lower ``priority`` means a more senior designation.
    It is never itself part of the tree.
    """

    __tablename__ = "designations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True
    )
    priority: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
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
    members: Mapped[list["Member"]] = relationship(
        "Member", back_populates="designation"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "priority": self.priority,
            "description": self.description,
        }

    def __repr__(self) -> str:
        return f"<Designation id={self.id} name={self.name} priority={self.priority}>"
