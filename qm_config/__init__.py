"""
qm_config -- single public entrypoint for quartermaster configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``qm_kernel`` and below ``qm_services``.
    The kernel MUST NEVER import from ``qm_config``; services pass the
    values they need (elevated roles, broadcast channel) down explicitly.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - The active config is parsed once and cached until
      ``reset_active_config()``.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, or invalid
      values.

Audit relevance:
    Every load emits a ``QM_CONFIG_TRACE`` log entry with the config id,
    version, checksum and source path.
"""

from __future__ import annotations

import os
from pathlib import Path

from qm_config.loader import load_config, parse_config
from qm_config.schema import (
    AuthorizationSettings,
    BroadcastSettings,
    DatabaseSettings,
    LoggingSettings,
    QuartermasterConfig,
)
from qm_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_PATH_ENV = "QM_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

_active_config: QuartermasterConfig | None = None


def get_active_config(config_path: Path | str | None = None) -> QuartermasterConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: explicit ``config_path``, then the
    ``QM_CONFIG_PATH`` environment variable, then the packaged default.
    An explicit path always reloads; otherwise the cached config is
    returned when present.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    global _active_config

    if config_path is None and _active_config is not None:
        return _active_config

    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    config = load_config(path)

    _logger.info(
        "QM_CONFIG_TRACE",
        extra={
            "trace_type": "QM_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
        },
    )

    _active_config = config
    return config


def reset_active_config() -> None:
    """Drop the cached config.  For tests."""
    global _active_config
    _active_config = None


__all__ = [
    "AuthorizationSettings",
    "BroadcastSettings",
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "LoggingSettings",
    "QuartermasterConfig",
    "get_active_config",
    "load_config",
    "parse_config",
    "reset_active_config",
]
