"""Database setup and utilities using Flask-SQLAlchemy."""

import logging
from typing import Tuple

from flask import Flask
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import inspect, text

from .config import get_database_url, get_value, mask_database_url

logger = logging.getLogger(__name__)

# SQLAlchemy instance - imported by models and app
db = SQLAlchemy()

# Flask-Migrate instance
migrate = Migrate()

# Tables the hierarchy engine cannot run without
REQUIRED_TABLES = ("designations", "members")


def build_engine_options(config: dict) -> dict:
    """Build SQLAlchemy engine options from the ``database`` config section."""
    return {
        "pool_size": get_value(config, "database", "pool_size", default=10),
        "pool_timeout": get_value(config, "database", "pool_timeout", default=30),
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "connect_args": {
            "connect_timeout": 5,
        },
    }


def init_database(app: Flask, config: dict) -> bool:
    """
    Initialize the database connection and Flask-Migrate.

    The app keeps starting when the database is unreachable; the health
    endpoint then reports it as disconnected.

    Args:
        app: Flask application instance
        config: Application configuration dictionary

    Returns:
        True if database connection successful, False otherwise
    """
    database_url = get_database_url(config)
    masked_url = mask_database_url(database_url)

    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = build_engine_options(config)

    db.init_app(app)
    migrate.init_app(app, db)

    connected = verify_connection(app)
    if not connected:
        logger.error(f"Database connection failed: {masked_url}")
        return False

    logger.info(f"Database connected to {masked_url}")
    with app.app_context():
        missing = missing_tables()
    if missing:
        logger.warning(
            "Hierarchy tables missing (%s); run 'flask db upgrade'",
            ", ".join(missing),
        )
    return True


def verify_connection(app: Flask) -> bool:
    """Run ``SELECT 1`` inside an app context; False on any failure."""
    try:
        with app.app_context():
            db.session.execute(text("SELECT 1"))
            db.session.commit()
        return True
    except Exception as e:
        logger.error(f"Database connection verification failed: {e}")
        return False


def missing_tables() -> list[str]:
    """Return the required hierarchy tables absent from the connected schema."""
    existing = set(inspect(db.engine).get_table_names())
    return [name for name in REQUIRED_TABLES if name not in existing]


def check_database_health() -> Tuple[bool, str | None]:
    """
    Check database connectivity for health checks.

    Returns:
        (True, None) if connected, (False, error_string) otherwise
    """
    try:
        db.session.execute(text("SELECT 1"))
        db.session.commit()
        return True, None
    except Exception as e:
        # Type and a truncated message only
        error_msg = f"{type(e).__name__}: {str(e)[:100]}"
        return False, error_msg
