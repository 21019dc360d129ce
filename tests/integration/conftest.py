"""Database lifecycle fixtures for integration tests.

Manages a dedicated Postgres test database:
- Session-scoped: create/drop test database, create schema
- Function-scoped: Flask app context whose tables are truncated after each test

Integration tests are skipped when no Postgres server is reachable.
"""

import os
from pathlib import Path

import pytest
from flask import Flask
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from orgtree.config import load_config
from orgtree.database import db


def _get_test_database_url() -> str:
    """Build the test database URL.

    Priority:
    1. TEST_DATABASE_URL env var
    2. Production config with '_test' suffix on database name
    """
    test_url = os.environ.get("TEST_DATABASE_URL")
    if test_url:
        return test_url

    project_root = Path(__file__).parent.parent.parent
    config = load_config(str(project_root / "config.yaml"))
    db_config = config.get("database", {})

    host = db_config.get("host", "localhost")
    port = db_config.get("port", 5432)
    user = db_config.get("user", "postgres")
    password = db_config.get("password", "")
    name = db_config.get("name", "orgtree") + "_test"

    if password:
        return f"postgresql://{user}:{password}@{host}:{port}/{name}"
    return f"postgresql://{user}@{host}:{port}/{name}"


def _get_admin_url() -> str:
    """Get a connection URL to the 'postgres' database for admin operations."""
    return _get_test_database_url().rsplit("/", 1)[0] + "/postgres"


def _get_test_db_name() -> str:
    return _get_test_database_url().rsplit("/", 1)[1]


@pytest.fixture(scope="session")
def test_database_url():
    """Provide the test database URL."""
    return _get_test_database_url()


@pytest.fixture(scope="session")
def test_db_engine(test_database_url):
    """Create the test database and schema for the session, drop it afterwards."""
    admin_url = _get_admin_url()
    db_name = _get_test_db_name()

    admin_engine = create_engine(
        admin_url, isolation_level="AUTOCOMMIT", connect_args={"connect_timeout": 3}
    )
    try:
        with admin_engine.connect() as conn:
            # Drop if exists (handles interrupted previous runs)
            conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))
            conn.execute(text(f'CREATE DATABASE "{db_name}"'))
    except OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e.orig}")
    finally:
        admin_engine.dispose()

    engine = create_engine(test_database_url)

    from orgtree import models  # noqa: F401

    db.metadata.create_all(engine)

    yield engine

    engine.dispose()

    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")
    try:
        with admin_engine.connect() as conn:
            # Terminate any remaining connections
            conn.execute(text(
                f"SELECT pg_terminate_backend(pg_stat_activity.pid) "
                f"FROM pg_stat_activity "
                f"WHERE pg_stat_activity.datname = '{db_name}' "
                f"AND pid <> pg_backend_pid()"
            ))
            conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session")
def db_app(test_db_engine):
    """Bare Flask app bound to the integration database."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SQLALCHEMY_DATABASE_URI"] = test_db_engine.url.render_as_string(hide_password=False)
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    db.init_app(app)
    return app


@pytest.fixture
def db_context(db_app):
    """Push an app context and truncate all tables when the test finishes.

    The SQL store commits for real, so isolation is by truncation rather
    than an outer rollback.
    """
    with db_app.app_context():
        yield db.session
        db.session.rollback()
        db.session.execute(text(
            "TRUNCATE members, designations RESTART IDENTITY CASCADE"
        ))
        db.session.commit()
        db.session.remove()
