"""Pytest fixtures for orgtree tests."""

import os
from pathlib import Path

import pytest

from orgtree.config import load_config
from orgtree.services.hierarchy_service import HierarchyService
from orgtree.services.hierarchy_store import InMemoryNodeStore, InMemoryPrioritySource


# ---------------------------------------------------------------------------
# Production database safety guard (session-scoped, autouse)
# ---------------------------------------------------------------------------

_PROJECT_ROOT = Path(__file__).parent.parent

# Designation ids used across the suite
CEO, DIRECTOR, ENGINEER = 1, 2, 3


def _build_test_database_url() -> str:
    """Build the test database URL from config, appending '_test' suffix."""
    env_url = os.environ.get("TEST_DATABASE_URL")
    if env_url:
        return env_url

    config = load_config(str(_PROJECT_ROOT / "config.yaml"))
    db_config = config.get("database", {})
    host = db_config.get("host", "localhost")
    port = db_config.get("port", 5432)
    user = db_config.get("user", "postgres")
    password = db_config.get("password", "")
    name = db_config.get("name", "orgtree") + "_test"

    if password:
        return f"postgresql://{user}:{password}@{host}:{port}/{name}"
    return f"postgresql://{user}@{host}:{port}/{name}"


@pytest.fixture(scope="session", autouse=True)
def _force_test_database():
    """Force ALL tests to use the test database. Never connect to production."""
    test_url = _build_test_database_url()
    original = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = test_url

    yield

    if original is not None:
        os.environ["DATABASE_URL"] = original
    else:
        os.environ.pop("DATABASE_URL", None)


# ---------------------------------------------------------------------------
# In-memory hierarchy fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def priorities():
    """Designation catalogue: CEO outranks Director outranks Engineer."""
    return InMemoryPrioritySource(
        {CEO: 1, DIRECTOR: 2, ENGINEER: 3},
        names={CEO: "CEO", DIRECTOR: "Director", ENGINEER: "Engineer"},
    )


@pytest.fixture
def store():
    return InMemoryNodeStore()


@pytest.fixture
def service(store, priorities):
    return HierarchyService(store, priorities)


@pytest.fixture
def org(service):
    """Build a small org and return its members by short name.

        Ada (CEO)
        ├── Bea (Director)
        │   ├── Dan (Engineer)
        │   └── cal (Engineer)
        │       └── Eve (Engineer)
        └── Fay (Director)
        Gus (unranked root)
    """
    members = {}
    members["ada"] = service.create_member({"name": "Ada", "designation_id": CEO})
    members["gus"] = service.create_member({"name": "Gus"})
    members["bea"] = service.create_member(
        {"name": "Bea", "designation_id": DIRECTOR, "managers": [members["ada"].id]}
    )
    members["fay"] = service.create_member(
        {"name": "Fay", "designation_id": DIRECTOR, "managers": [members["ada"].id]}
    )
    members["dan"] = service.create_member(
        {"name": "Dan", "designation_id": ENGINEER, "managers": [members["bea"].id]}
    )
    members["cal"] = service.create_member(
        {"name": "cal", "designation_id": ENGINEER, "managers": [members["bea"].id]}
    )
    members["eve"] = service.create_member(
        {"name": "Eve", "designation_id": ENGINEER, "managers": [members["cal"].id]}
    )
    return members
