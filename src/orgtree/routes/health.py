"""Health check endpoint."""

import logging

from flask import Blueprint, current_app, jsonify

from ..database import check_database_health

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


def get_hierarchy_health() -> dict:
    """
    Describe the hierarchy service wiring.

    Returns:
        Dictionary with service status and the storage backend in use
    """
    service = current_app.extensions.get("hierarchy_service")
    if service is None:
        return {"status": "not_initialized", "store": None}
    return {
        "status": "ready",
        "store": type(service.store).__name__,
        "default_depth_cap": service.default_depth_cap,
    }


@health_bp.route("/health")
def health_check():
    """
    Health check endpoint.

    Returns:
        JSON response with status, version, database and hierarchy service state
    """
    version = current_app.config.get("APP_VERSION", "unknown")

    db_connected, db_error = check_database_health()
    hierarchy = get_hierarchy_health()

    if db_connected and hierarchy["status"] == "ready":
        overall_status = "healthy"
    else:
        overall_status = "degraded"

    response = {
        "status": overall_status,
        "version": version,
        "database": "connected" if db_connected else "disconnected",
        "hierarchy": hierarchy,
    }

    if db_error:
        response["database_error"] = db_error

    return jsonify(response)
