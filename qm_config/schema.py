"""
QuartermasterConfig schema.

The typed runtime view of the YAML configuration.  The loader parses a
YAML mapping into these frozen dataclasses; nothing else in the codebase
reads YAML or environment variables for settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for the relational store."""

    url: str = "sqlite:///quartermaster.db"
    echo_sql: bool = False
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30


@dataclass(frozen=True)
class AuthorizationSettings:
    """Roles allowed to cancel and unlock purchase orders."""

    elevated_roles: frozenset[str] = frozenset({"admin"})

    def is_elevated(self, role: str | None) -> bool:
        return role is not None and role in self.elevated_roles


@dataclass(frozen=True)
class BroadcastSettings:
    """Best-effort change notification channel."""

    channel: str = "qm-stock-out-execution"
    enabled: bool = True


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuartermasterConfig:
    """Root configuration object returned by ``get_active_config()``."""

    config_id: str = "default"
    version: int = 1
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    authorization: AuthorizationSettings = field(default_factory=AuthorizationSettings)
    broadcast: BroadcastSettings = field(default_factory=BroadcastSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""

    # Flat accessors used throughout the services layer

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def echo_sql(self) -> bool:
        return self.database.echo_sql

    @property
    def elevated_roles(self) -> frozenset[str]:
        return self.authorization.elevated_roles

    @property
    def broadcast_channel(self) -> str:
        return self.broadcast.channel

    @property
    def log_level(self) -> str:
        return self.logging.level
