"""
Configuration Loader (``qm_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``qm_config.schema`` dataclasses.  Runtime callers go through
``qm_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown top-level sections are rejected, so a typo never silently
  falls back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed mapping for configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``ConfigurationError``.
* Malformed YAML  -> ``ConfigurationError`` wrapping ``yaml.YAMLError``.
* Invalid values (bad log level, empty role list, non-positive pool
  size)  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from qm_config.schema import (
    AuthorizationSettings,
    BroadcastSettings,
    DatabaseSettings,
    LoggingSettings,
    QuartermasterConfig,
)
from qm_kernel.exceptions import ConfigurationError

_KNOWN_SECTIONS = frozenset(
    {"config_id", "version", "database", "authorization", "broadcast", "logging"}
)
_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing, unreadable, not valid
            YAML, or does not contain a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}", source=str(path))
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML: {exc}", source=str(path)) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration root must be a mapping", source=str(path)
        )
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed configuration mapping."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    defaults = DatabaseSettings()
    pool_size = int(data.get("pool_size", defaults.pool_size))
    if pool_size <= 0:
        raise ConfigurationError(f"database.pool_size must be positive, got {pool_size}")
    url = data.get("url", defaults.url)
    if not url:
        raise ConfigurationError("database.url must not be empty")
    return DatabaseSettings(
        url=str(url),
        echo_sql=bool(data.get("echo_sql", defaults.echo_sql)),
        pool_size=pool_size,
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", defaults.pool_timeout)),
    )


def parse_authorization(data: dict[str, Any]) -> AuthorizationSettings:
    if "elevated_roles" not in data:
        return AuthorizationSettings()
    roles = data["elevated_roles"]
    if isinstance(roles, str):
        roles = [roles]
    if not roles:
        raise ConfigurationError("authorization.elevated_roles must not be empty")
    return AuthorizationSettings(elevated_roles=frozenset(str(r) for r in roles))


def parse_broadcast(data: dict[str, Any]) -> BroadcastSettings:
    defaults = BroadcastSettings()
    return BroadcastSettings(
        channel=str(data.get("channel", defaults.channel)),
        enabled=bool(data.get("enabled", defaults.enabled)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings().level)).upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError(f"logging.level '{level}' is not a logging level")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any], source: str | None = None) -> QuartermasterConfig:
    """Build a QuartermasterConfig from a parsed YAML mapping."""
    unknown = set(data) - _KNOWN_SECTIONS
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            source=source,
        )
    try:
        return QuartermasterConfig(
            config_id=str(data.get("config_id", "default")),
            version=int(data.get("version", 1)),
            database=parse_database(_section(data, "database")),
            authorization=parse_authorization(_section(data, "authorization")),
            broadcast=parse_broadcast(_section(data, "broadcast")),
            logging=parse_logging(_section(data, "logging")),
            checksum=compute_checksum(data),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(str(exc), source=source) from exc


def load_config(path: Path | str) -> QuartermasterConfig:
    """Load and parse one YAML configuration file."""
    return parse_config(load_yaml_file(Path(path)), source=str(path))
