"""
Rollup listeners -- derived columns maintained on every flush.

===============================================================================
WHAT THIS MAINTAINS
===============================================================================

  Source row              | Derived value                          | Rule
  ------------------------+----------------------------------------+---------------------------
  PurchaseOrder           | QMHQ.total_po_committed_eusd           | SUM(total_amount_eusd) of
                          |                                        | active, non-cancelled POs
  FinancialTransaction    | QMHQ.total_money_in_eusd               | SUM(amount_eusd) of active,
                          |                                        | non-voided money_in rows
  POLineItem              | PurchaseOrder.status                   | resolve_po_status() over the
                          |                                        | PO's active line aggregates

The listeners run ``after_insert`` / ``after_update`` on the flush
connection, so the recomputed value lands in the same transaction as the
change that caused it, and rolls back with it.

===============================================================================
DESIGN DECISIONS
===============================================================================

1. One status implementation.  The line-item listener calls the same
   ``qm_engines.po_status.resolve_po_status`` the services call.

2. Locked POs are not recomputed.  A closed or cancelled PO changes status
   only through POLifecycleManager (unlock, cancel).  A correction posted
   to a closed PO's lines therefore waits for the unlock, which recomputes.

3. The listeners write through Core UPDATEs and then copy the new value
   into any instance already loaded in the session (``set_committed_value``),
   so a service reading the ORM object sees the post-rollup figure without
   a refresh and without the copy counting as a pending change.

===============================================================================
USAGE
===============================================================================

    from qm_services.rollups import register_rollup_listeners
    register_rollup_listeners()  # once at startup
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import event, func, select, update
from sqlalchemy.orm import object_session
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.util import identity_key

from qm_engines.po_status import resolve_po_status
from qm_kernel.domain.values import (
    LOCKED_PO_STATUSES,
    FinancialTransactionType,
    POStatus,
)
from qm_kernel.logging_config import get_logger
from qm_kernel.models.financial_transaction import FinancialTransaction
from qm_kernel.models.purchase_order import POLineItem, PurchaseOrder
from qm_kernel.models.qmhq import QMHQ

logger = get_logger("services.rollups")


def _sync_loaded(target, model, pk: UUID, **values) -> None:
    """Copy rolled-up values into an already-loaded instance, if any."""
    session = object_session(target)
    if session is None:
        return
    loaded = session.identity_map.get(identity_key(model, pk))
    if loaded is None:
        return
    for key, value in values.items():
        set_committed_value(loaded, key, value)


# ---------------------------------------------------------------------------
# QMHQ.total_po_committed_eusd
# ---------------------------------------------------------------------------


def recompute_po_commitment(connection, qmhq_id: UUID) -> Decimal:
    total = connection.execute(
        select(func.coalesce(func.sum(PurchaseOrder.total_amount_eusd), 0)).where(
            PurchaseOrder.qmhq_id == qmhq_id,
            PurchaseOrder.is_active.is_(True),
            PurchaseOrder.status != POStatus.CANCELLED.value,
        )
    ).scalar_one()
    total = Decimal(str(total))
    connection.execute(
        update(QMHQ.__table__)
        .where(QMHQ.__table__.c.id == qmhq_id)
        .values(total_po_committed_eusd=total)
    )
    return total


def _on_purchase_order_change(mapper, connection, target):
    if target.qmhq_id is None:
        return
    total = recompute_po_commitment(connection, target.qmhq_id)
    _sync_loaded(target, QMHQ, target.qmhq_id, total_po_committed_eusd=total)
    logger.debug(
        "qmhq_commitment_recalculated",
        extra={"qmhq_id": str(target.qmhq_id), "total_po_committed_eusd": total},
    )


# ---------------------------------------------------------------------------
# QMHQ.total_money_in_eusd
# ---------------------------------------------------------------------------


def recompute_money_in(connection, qmhq_id: UUID) -> Decimal:
    total = connection.execute(
        select(func.coalesce(func.sum(FinancialTransaction.amount_eusd), 0)).where(
            FinancialTransaction.qmhq_id == qmhq_id,
            FinancialTransaction.transaction_type == FinancialTransactionType.MONEY_IN.value,
            FinancialTransaction.is_voided.is_(False),
            FinancialTransaction.is_active.is_(True),
        )
    ).scalar_one()
    total = Decimal(str(total))
    connection.execute(
        update(QMHQ.__table__)
        .where(QMHQ.__table__.c.id == qmhq_id)
        .values(total_money_in_eusd=total)
    )
    return total


def _on_financial_transaction_change(mapper, connection, target):
    if target.qmhq_id is None:
        return
    total = recompute_money_in(connection, target.qmhq_id)
    _sync_loaded(target, QMHQ, target.qmhq_id, total_money_in_eusd=total)
    logger.debug(
        "qmhq_money_in_recalculated",
        extra={"qmhq_id": str(target.qmhq_id), "total_money_in_eusd": total},
    )


# ---------------------------------------------------------------------------
# PurchaseOrder.status
# ---------------------------------------------------------------------------


def recompute_po_status(connection, po_id: UUID) -> POStatus | None:
    """
    Re-derive and store a PO's status from its active line items.

    Returns the new status, or None when the PO is locked or missing.
    """
    current = connection.execute(
        select(PurchaseOrder.__table__.c.status).where(PurchaseOrder.__table__.c.id == po_id)
    ).scalar_one_or_none()
    if current is None or POStatus(current) in LOCKED_PO_STATUSES:
        return None

    row = connection.execute(
        select(
            func.coalesce(func.sum(POLineItem.quantity), 0),
            func.coalesce(func.sum(POLineItem.invoiced_quantity), 0),
            func.coalesce(func.sum(POLineItem.received_quantity), 0),
        ).where(
            POLineItem.po_id == po_id,
            POLineItem.is_active.is_(True),
        )
    ).one()
    new_status = resolve_po_status(int(row[0]), int(row[1]), int(row[2]), False)

    if new_status != POStatus(current):
        connection.execute(
            update(PurchaseOrder.__table__)
            .where(PurchaseOrder.__table__.c.id == po_id)
            .values(status=new_status.value)
        )
        logger.info(
            "po_status_recalculated",
            extra={
                "po_id": str(po_id),
                "from_status": current,
                "to_status": new_status.value,
            },
        )
    return new_status


def _on_po_line_item_change(mapper, connection, target):
    if target.po_id is None:
        return
    new_status = recompute_po_status(connection, target.po_id)
    if new_status is not None:
        _sync_loaded(target, PurchaseOrder, target.po_id, status=new_status.value)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def _listener_table():
    return (
        (PurchaseOrder, "after_insert", _on_purchase_order_change),
        (PurchaseOrder, "after_update", _on_purchase_order_change),
        (FinancialTransaction, "after_insert", _on_financial_transaction_change),
        (FinancialTransaction, "after_update", _on_financial_transaction_change),
        (POLineItem, "after_insert", _on_po_line_item_change),
        (POLineItem, "after_update", _on_po_line_item_change),
    )


def register_rollup_listeners() -> None:
    """Register the rollup listeners.  Idempotent."""
    for target, event_name, listener in _listener_table():
        if not event.contains(target, event_name, listener):
            event.listen(target, event_name, listener)


def unregister_rollup_listeners() -> None:
    """Remove the rollup listeners.  For tests."""
    for target, event_name, listener in _listener_table():
        if event.contains(target, event_name, listener):
            event.remove(target, event_name, listener)
