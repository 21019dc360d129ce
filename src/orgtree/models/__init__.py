"""Database models package.

This package contains all SQLAlchemy model definitions for orgtree.

Models:
    - Designation: Role/designation catalogue carrying the sibling priority
    - Member: Organisation member with reporting lines and materialized path

Constants:
    - MEMBER_STATUSES: active, inactive, vacant, on_leave
"""

from .designation import Designation
from .member import MEMBER_STATUSES, Member

__all__ = [
    # Models
    "Designation",
    "Member",
    # Constants
    "MEMBER_STATUSES",
]
