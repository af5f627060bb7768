"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Two kinds of rows in the quartermaster store are permanent:

  AuditLogEntry            | ALWAYS (from creation)      | The trail is append-only
  InventoryTransaction     | After status = completed    | Stock already moved; corrections
                           |                             | are offsetting inventory_in rows

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below inspect the attribute history of the target
and raise ImmutabilityViolationError, which aborts the flush:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

The executor's completion step is a single Core/bulk UPDATE gated on
``status = 'pending'``; it never touches a completed row and does not pass
through these per-object hooks.

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at / updated_by_id may change on a completed transaction.  They
   are write metadata, not stock data.

2. "WAS completed" not "IS completed": the pending -> completed transition
   itself must pass.  Attribute history tells us the value before the flush.

3. Inline model imports avoid the models <-> db import cycle.

===============================================================================
USAGE
===============================================================================

    from qm_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that must violate the rule to prove detection may call
``unregister_immutability_listeners()`` and re-register afterwards.
"""

from sqlalchemy import event, inspect, select
from sqlalchemy.orm.attributes import get_history

from qm_kernel.exceptions import ImmutabilityViolationError
from qm_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _block(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_audit_log_immutability(mapper, connection, target):
    """Audit log entries can never be updated."""
    from qm_kernel.models.audit_log import AuditLogEntry

    if not isinstance(target, AuditLogEntry):
        return

    _block(
        "AuditLogEntry",
        target,
        "UPDATE",
        "Audit log entries are immutable and cannot be modified",
    )


def _check_audit_log_delete(mapper, connection, target):
    """Audit log entries can never be deleted."""
    from qm_kernel.models.audit_log import AuditLogEntry

    if not isinstance(target, AuditLogEntry):
        return

    _block(
        "AuditLogEntry",
        target,
        "DELETE",
        "Audit log entries cannot be deleted",
    )


def _was_completed(target, connection) -> bool:
    from qm_kernel.domain.values import TransactionStatus
    from qm_kernel.models.inventory import InventoryTransaction

    history = get_history(target, "status")
    if history.deleted:
        # Status is changing: look at the value loaded from the database
        return history.deleted[0] == TransactionStatus.COMPLETED.value
    if not history.added and "status" not in inspect(target).unloaded:
        return target.status == TransactionStatus.COMPLETED.value
    # Old value never loaded: read what is stored
    table = InventoryTransaction.__table__
    stored = connection.execute(
        select(table.c.status).where(table.c.id == target.id)
    ).scalar_one_or_none()
    return stored == TransactionStatus.COMPLETED.value


def _check_inventory_transaction_immutability(mapper, connection, target):
    """
    Block any change to a transaction that was already completed.

    pending -> completed is allowed (that is the execution).  Once the row
    was completed before this flush, every non-metadata field is frozen,
    status included.
    """
    from qm_kernel.models.inventory import InventoryTransaction

    if not isinstance(target, InventoryTransaction):
        return

    if not _was_completed(target, connection):
        return

    for attr in inspect(target).attrs:
        if attr.key in _METADATA_FIELDS:
            continue
        if attr.history.has_changes():
            _block(
                "InventoryTransaction",
                target,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a completed inventory transaction",
                field=attr.key,
            )


def _check_inventory_transaction_delete(mapper, connection, target):
    """Completed inventory transactions cannot be deleted."""
    from qm_kernel.models.inventory import InventoryTransaction

    if not isinstance(target, InventoryTransaction):
        return

    if _was_completed(target, connection):
        _block(
            "InventoryTransaction",
            target,
            "DELETE",
            "Completed inventory transactions cannot be deleted",
        )


def _listener_table():
    from qm_kernel.models.audit_log import AuditLogEntry
    from qm_kernel.models.inventory import InventoryTransaction

    return (
        (AuditLogEntry, "before_update", _check_audit_log_immutability),
        (AuditLogEntry, "before_delete", _check_audit_log_delete),
        (InventoryTransaction, "before_update", _check_inventory_transaction_immutability),
        (InventoryTransaction, "before_delete", _check_inventory_transaction_delete),
    )


def register_immutability_listeners() -> None:
    """
    Register all immutability event listeners.

    Call once at startup, after models are importable.  Calling again does
    not register a listener twice.
    """
    for target, event_name, listener in _listener_table():
        if not event.contains(target, event_name, listener):
            event.listen(target, event_name, listener)


def unregister_immutability_listeners() -> None:
    """
    Remove immutability event listeners.

    WARNING: Only for tests that deliberately violate the rules.
    """
    for target, event_name, listener in _listener_table():
        if event.contains(target, event_name, listener):
            event.remove(target, event_name, listener)
