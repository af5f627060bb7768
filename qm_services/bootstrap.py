"""
Startup wiring.

``bootstrap()`` takes a QuartermasterConfig and brings the process to a
usable state: logging configured, engine initialized, tables present,
immutability and rollup listeners installed.  Safe to call more than once.
"""

from __future__ import annotations

from qm_config import QuartermasterConfig, get_active_config
from qm_kernel.db.engine import create_tables, init_engine_from_url
from qm_kernel.db.immutability import register_immutability_listeners
from qm_kernel.logging_config import configure_logging, get_logger
from qm_services.notifications import Broadcaster, InMemoryBroadcaster, NullBroadcaster
from qm_services.rollups import register_rollup_listeners

logger = get_logger("services.bootstrap")


def register_listeners() -> None:
    register_immutability_listeners()
    register_rollup_listeners()


def make_broadcaster(config: QuartermasterConfig) -> Broadcaster:
    """
    Default broadcaster for this process.

    InMemoryBroadcaster only reaches subscribers in the same process.  A
    multi-process deployment passes its own Broadcaster (for example one
    backed by Postgres NOTIFY or a message bus) to QuartermasterOperations
    instead of calling this.
    """
    if not config.broadcast.enabled:
        return NullBroadcaster()
    return InMemoryBroadcaster()


def bootstrap(config: QuartermasterConfig | None = None, *, create_schema: bool = True):
    """
    Initialize logging, database and listeners from configuration.

    Returns:
        The initialized SQLAlchemy Engine.
    """
    config = config or get_active_config()
    configure_logging(level=config.log_level)

    engine = init_engine_from_url(
        config.database_url,
        echo=config.echo_sql,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_timeout=config.database.pool_timeout,
    )
    register_listeners()
    if create_schema:
        create_tables()

    logger.info(
        "quartermaster_bootstrapped",
        extra={"config_id": config.config_id, "dialect": engine.dialect.name},
    )
    return engine
