"""Hierarchy engine errors.

Every rejection carries a machine-readable ``code`` and the HTTP ``status``
the API layer answers with. These are data errors, never transient faults,
so callers should correct the request rather than retry it.
"""


class HierarchyError(Exception):
    """Base class for hierarchy rejections."""

    code = "hierarchy_error"
    status = 400

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


class NotFound(HierarchyError):
    """Raised when an explicitly referenced member is absent or inactive."""

    code = "not_found"
    status = 404

    def __init__(self, member_id):
        self.member_id = member_id
        super().__init__(f"Member {member_id} not found")


class PrimaryManagerNotFound(HierarchyError):
    """Raised when the first entry of ``managers`` does not resolve."""

    code = "primary_manager_not_found"
    status = 422

    def __init__(self, manager_id):
        self.manager_id = manager_id
        super().__init__(f"Primary manager {manager_id} not found")


class CyclicReportingLine(HierarchyError):
    """Raised when a write would place a member inside its own ancestry."""

    code = "cyclic_reporting_line"
    status = 409

    def __init__(self, member_id, manager_id):
        self.member_id = member_id
        self.manager_id = manager_id
        super().__init__(
            f"Member {member_id} cannot report to {manager_id}: "
            f"{member_id} would become its own ancestor"
        )


class InvalidDepthCap(HierarchyError):
    """Raised for a negative or non-integer depth cap."""

    code = "invalid_depth_cap"
    status = 400

    def __init__(self, value):
        self.value = value
        super().__init__(f"Depth cap must be a non-negative integer, got {value!r}")


class InvalidPriority(HierarchyError):
    """Raised when a reorder item carries a priority below 1 or a non-integer."""

    code = "invalid_priority"
    status = 400

    def __init__(self, designation_id, value):
        self.designation_id = designation_id
        self.value = value
        super().__init__(
            f"Invalid priority {value!r} for designation {designation_id}"
        )


class DerivedFieldWrite(HierarchyError):
    """Raised when a caller tries to set a field only the engine may write."""

    code = "derived_field_write"
    status = 400

    def __init__(self, fields):
        self.fields = sorted(fields)
        super().__init__(
            f"Fields are derived and cannot be set directly: {', '.join(self.fields)}"
        )


class VersionConflict(HierarchyError):
    """Raised when an update names a version that is no longer current."""

    code = "version_conflict"
    status = 409

    def __init__(self, member_id, expected, actual):
        self.member_id = member_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Member {member_id} is at version {actual}, update expected {expected}"
        )


class InvalidDesignationId(HierarchyError):
    """Raised when a reorder item names a designation id that is not an integer."""

    code = "invalid_designation_id"
    status = 400

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid designation id: {value!r}")
