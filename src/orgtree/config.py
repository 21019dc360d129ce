"""Configuration loader with YAML and environment variable support."""

import os
import sys
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.engine import URL, make_url


# Default configuration values
DEFAULTS = {
    "server": {
        "host": "0.0.0.0",
        "port": 5060,
        "debug": False,
    },
    "logging": {
        "level": "INFO",
        "file": "logs/app.log",
        "max_bytes": 10_000_000,
        "backup_count": 5,
    },
    "database": {
        "host": "localhost",
        "port": 5432,
        "name": "orgtree",
        "user": "postgres",
        "password": "",
        "pool_size": 10,
        "pool_timeout": 30,
    },
    "hierarchy": {
        "default_depth_cap": 6,
        "unranked_priority": 999,
    },
}

# Environment variable mappings
# Maps env var name to (config_section, config_key, type_converter)
ENV_MAPPINGS = {
    "FLASK_SERVER_HOST": ("server", "host", str),
    "FLASK_SERVER_PORT": ("server", "port", int),
    "FLASK_DEBUG": ("server", "debug", lambda x: x.lower() in ("true", "1", "yes")),
    "FLASK_LOG_LEVEL": ("logging", "level", str),
    "DATABASE_HOST": ("database", "host", str),
    "DATABASE_PORT": ("database", "port", int),
    "DATABASE_NAME": ("database", "name", str),
    "DATABASE_USER": ("database", "user", str),
    "DATABASE_PASSWORD": ("database", "password", str),
    "DATABASE_POOL_SIZE": ("database", "pool_size", int),
    "DATABASE_POOL_TIMEOUT": ("database", "pool_timeout", int),
    "HIERARCHY_DEFAULT_DEPTH_CAP": ("hierarchy", "default_depth_cap", int),
    "HIERARCHY_UNRANKED_PRIORITY": ("hierarchy", "unranked_priority", int),
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r") as f:
        content = yaml.safe_load(f)
        return content if content else {}


def apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides to configuration."""
    result = config.copy()

    for env_var, (section, key, converter) in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is not None:
            # Copy the section so DEFAULTS is never mutated in place
            result[section] = dict(result.get(section, {}))
            result[section][key] = converter(value)

    return result


def load_config(config_path: str | Path = "config.yaml") -> dict:
    """Load config: env vars > config.yaml > DEFAULTS."""
    if isinstance(config_path, str):
        config_path = Path(config_path)

    # Start with defaults
    config = DEFAULTS.copy()

    # Merge YAML config
    yaml_config = load_yaml_config(config_path)
    config = deep_merge(config, yaml_config)

    # Apply environment overrides
    config = apply_env_overrides(config)

    return config


def get_value(config: dict, *keys: str, default: Any = None) -> Any:
    """Get a nested configuration value by key path."""
    result = config
    for key in keys:
        if isinstance(result, dict) and key in result:
            result = result[key]
        else:
            return default
    return result


def get_hierarchy_config(config: dict) -> dict:
    """Get hierarchy engine configuration with defaults."""
    return {
        "default_depth_cap": get_value(
            config, "hierarchy", "default_depth_cap", default=6
        ),
        "unranked_priority": get_value(
            config, "hierarchy", "unranked_priority", default=999
        ),
    }


def get_database_url(config: dict) -> str:
    """
    Resolve the PostgreSQL URL for the members database.

    ``DATABASE_URL`` wins over the ``database`` section. Under pytest the
    resolved database must be a ``*_test`` one.
    """
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        db_config = config.get("database", {})
        database_url = URL.create(
            "postgresql",
            username=db_config.get("user", "postgres"),
            password=db_config.get("password") or None,
            host=db_config.get("host", "localhost"),
            port=db_config.get("port", 5432),
            database=db_config.get("name", "orgtree"),
        ).render_as_string(hide_password=False)

    _refuse_non_test_db(database_url)
    return database_url


def _refuse_non_test_db(database_url: str) -> None:
    """Raise RuntimeError when a test run resolves a database not named ``*_test``."""
    if "pytest" not in sys.modules:
        return

    db_name = make_url(database_url).database or ""
    if db_name and not db_name.endswith("_test"):
        raise RuntimeError(
            f"SAFETY GUARD: tests may only use a '*_test' database, got '{db_name}'. "
            f"Point DATABASE_URL at '{db_name}_test' instead."
        )


def mask_database_url(url: str) -> str:
    """Hide the password in a database URL for logging."""
    return make_url(url).render_as_string(hide_password=True)
