"""REST API endpoints for the reporting hierarchy."""

import logging

from flask import Blueprint, current_app, jsonify, request

from ..models.member import MEMBER_STATUSES
from ..services.hierarchy_errors import DerivedFieldWrite, HierarchyError
from ..services.hierarchy_service import DERIVED_FIELDS

logger = logging.getLogger(__name__)

hierarchy_bp = Blueprint("hierarchy", __name__, url_prefix="/api")


def _get_service():
    """Get the hierarchy service from app extensions."""
    return current_app.extensions.get("hierarchy_service")


def _flag(name: str) -> bool:
    return request.args.get(name, "").lower() in ("1", "true", "yes")


def _service_unavailable():
    return jsonify({"error": "Hierarchy service not available"}), 503


def _validation_error(issues: list[str]):
    return jsonify({"error": "Validation error", "details": issues}), 400


def _json_body() -> dict | None:
    """Request body as a dict, or None when it is JSON but not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _int_arg(name: str, issues: list[str]) -> int | None:
    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        issues.append(f"{name}: must be an integer")
        return None


def _member_payload(data: dict, partial: bool) -> tuple[dict, list[str]]:
    """Pick and validate member fields from a request body.

    Returns:
        Tuple of (fields, issues); issues is empty when the body is valid
    """
    derived = DERIVED_FIELDS.intersection(data) - {"version"}
    if derived:
        raise DerivedFieldWrite(derived)

    fields: dict = {}
    issues: list[str] = []

    if "name" in data or not partial:
        name = data.get("name")
        if not isinstance(name, str) or len(name.strip()) < 2:
            issues.append("name: must be a string of at least 2 characters")
        else:
            fields["name"] = name.strip()

    if "managers" in data:
        managers = data["managers"]
        if managers is None:
            managers = []
        if not isinstance(managers, list) or not all(
            isinstance(m, int) and not isinstance(m, bool) for m in managers
        ):
            issues.append("managers: must be a list of member ids")
        else:
            fields["managers"] = managers

    if "designation_id" in data:
        designation_id = data["designation_id"]
        if designation_id is not None and (
            isinstance(designation_id, bool) or not isinstance(designation_id, int)
        ):
            issues.append("designation_id: must be an integer or null")
        else:
            fields["designation_id"] = designation_id

    if "emp_id" in data:
        emp_id = data["emp_id"]
        if emp_id is not None and (not isinstance(emp_id, str) or len(emp_id) > 64):
            issues.append("emp_id: must be a string of at most 64 characters or null")
        else:
            fields["emp_id"] = emp_id

    if "status" in data:
        if data["status"] not in MEMBER_STATUSES:
            issues.append(f"status: must be one of {', '.join(MEMBER_STATUSES)}")
        else:
            fields["status"] = data["status"]

    if "active" in data:
        if not isinstance(data["active"], bool):
            issues.append("active: must be a boolean")
        else:
            fields["active"] = data["active"]

    return fields, issues


@hierarchy_bp.errorhandler(HierarchyError)
def handle_hierarchy_error(error: HierarchyError):
    return jsonify(error.to_dict()), error.status


# --- Reads ---


@hierarchy_bp.route("/members", methods=["GET"])
def api_list_members():
    """Page through active members ordered by name.

    Query params:
        - q: case-insensitive search over name and emp_id
        - status: one of the member statuses
        - designation: designation id
        - page: 1-based page number (default 1)
        - limit: page size, 1..100 (default 20)

    Returns:
        200: {page, limit, total, items}
        400: validation error
    """
    service = _get_service()
    if not service:
        return _service_unavailable()

    issues: list[str] = []
    status = request.args.get("status") or None
    if status is not None and status not in MEMBER_STATUSES:
        issues.append(f"status: must be one of {', '.join(MEMBER_STATUSES)}")
    designation_id = _int_arg("designation", issues)
    page = _int_arg("page", issues)
    limit = _int_arg("limit", issues)
    if issues:
        return _validation_error(issues)

    result = service.list_members(
        q=request.args.get("q"),
        status=status,
        designation_id=designation_id,
        page=page,
        limit=limit,
    )
    return jsonify(result.to_dict()), 200


@hierarchy_bp.route("/members/roots", methods=["GET"])
def api_roots():
    """List top-of-organisation members, optionally with the full forest.

    Query params:
        - full: "1"/"true" to include the depth-bounded forest as ``tree``
        - depth: forest depth cap below the shallowest root
        - includeMyReports: "1"/"true" to include ``myReports``
        - viewer: member id whose direct reports ``myReports`` lists

    Returns:
        200: list of roots, or {roots, myReports?, tree?}
        400: invalid depth cap
    """
    service = _get_service()
    if not service:
        return _service_unavailable()

    include_mine = _flag("includeMyReports")
    viewer = request.args.get("viewer", type=int) if include_mine else None

    if _flag("full"):
        forest = service.build_forest(
            depth_cap=request.args.get("depth"),
            include_reports_of=viewer,
        )
        data = forest.to_dict()
        if include_mine and "myReports" not in data:
            data["myReports"] = []
        return jsonify(data), 200

    index = service.priority_index()
    roots = [r.to_dict() for r in service.find_roots(index)]
    if not include_mine:
        return jsonify(roots), 200

    reports = service.direct_reports(viewer, index) if viewer is not None else []
    return jsonify({"roots": roots, "myReports": [r.to_dict() for r in reports]}), 200


@hierarchy_bp.route("/members/<int:member_id>", methods=["GET"])
def api_get_member(member_id: int):
    """Fetch one member, soft-deleted ones included."""
    service = _get_service()
    if not service:
        return _service_unavailable()
    return jsonify(service.get_member(member_id, include_inactive=True).to_dict()), 200


@hierarchy_bp.route("/members/<int:member_id>/subtree", methods=["GET"])
def api_subtree(member_id: int):
    """Return a member plus everyone below it, optionally capped by ``depth``."""
    service = _get_service()
    if not service:
        return _service_unavailable()

    members = service.get_subtree(member_id, depth_cap=request.args.get("depth"))
    return jsonify([m.to_dict() for m in members]), 200


@hierarchy_bp.route("/members/<int:member_id>/reports", methods=["GET"])
def api_direct_reports(member_id: int):
    """Return the active members reporting directly to ``member_id``."""
    service = _get_service()
    if not service:
        return _service_unavailable()
    return jsonify([m.to_dict() for m in service.direct_reports(member_id)]), 200


@hierarchy_bp.route("/designations", methods=["GET"])
def api_list_designations():
    """List designations by priority, most senior first."""
    service = _get_service()
    if not service:
        return _service_unavailable()
    return jsonify([d.to_dict() for d in service.list_designations()]), 200


# --- Writes ---


@hierarchy_bp.route("/members", methods=["POST"])
def api_create_member():
    """Create a member.

    Accepts JSON:
        - name (required)
        - managers (optional): member ids, primary manager first
        - designation_id, emp_id, status (optional)

    Returns:
        201: created member
        400: validation error or derived field supplied
        422: primary manager not found
    """
    service = _get_service()
    if not service:
        return _service_unavailable()

    data = _json_body()
    if data is None:
        return _validation_error(["body: must be a JSON object"])
    fields, issues = _member_payload(data, partial=False)
    if issues:
        return _validation_error(issues)

    record = service.create_member(fields)
    return jsonify(record.to_dict()), 201


@hierarchy_bp.route("/members/<int:member_id>", methods=["PATCH"])
def api_update_member(member_id: int):
    """Update a member; a new ``managers`` list moves it in the tree.

    An optional ``version`` in the body makes the write conditional on the
    member still being at that version (409 otherwise).
    """
    service = _get_service()
    if not service:
        return _service_unavailable()

    data = _json_body()
    if data is None:
        return _validation_error(["body: must be a JSON object"])
    fields, issues = _member_payload(data, partial=True)

    expected_version = data.get("version")
    if expected_version is not None and (
        isinstance(expected_version, bool) or not isinstance(expected_version, int)
    ):
        issues.append("version: must be an integer")
    if issues:
        return _validation_error(issues)
    if not fields:
        return jsonify({"error": "No updatable fields provided"}), 400

    record = service.update_member(member_id, fields, expected_version=expected_version)
    return jsonify(record.to_dict()), 200


@hierarchy_bp.route("/members/<int:member_id>", methods=["DELETE"])
def api_soft_delete_member(member_id: int):
    """Soft-delete a member (hidden from hierarchy reads, row kept)."""
    service = _get_service()
    if not service:
        return _service_unavailable()
    service.soft_delete(member_id)
    return jsonify({"ok": True}), 200


@hierarchy_bp.route("/members/<int:member_id>/hard", methods=["DELETE"])
def api_hard_delete_member(member_id: int):
    """Delete a member's row; reports how many chains now dangle."""
    service = _get_service()
    if not service:
        return _service_unavailable()
    dangling = service.hard_delete(member_id)
    return jsonify({"ok": True, "danglingDescendants": dangling}), 200


@hierarchy_bp.route("/designations/reorder", methods=["PATCH"])
def api_reorder_designations():
    """Bulk re-prioritise designations.

    Accepts JSON:
        - items (required): non-empty list of {id, priority}

    Returns:
        200: {ok, updated}
        400: validation error
    """
    service = _get_service()
    if not service:
        return _service_unavailable()

    data = _json_body()
    if data is None:
        return _validation_error(["body: must be a JSON object"])
    items = data.get("items")
    if not isinstance(items, list) or not items:
        return jsonify({"error": "items must be a non-empty array"}), 400
    if not all(isinstance(item, dict) for item in items):
        return _validation_error(["items: each item must be an object with id and priority"])

    updated = service.reorder_priorities(items)
    return jsonify({"ok": True, "updated": updated}), 200
