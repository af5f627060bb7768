"""
Tests for the ORM immutability listeners.

Tests cover:
- audit log entries can be neither updated nor deleted
- completed inventory transactions are frozen; pending ones are not
- the pending -> completed transition itself is allowed
"""

from uuid import uuid4

import pytest

from qm_kernel.domain.values import AuditAction, MovementType, TransactionStatus
from qm_kernel.exceptions import ImmutabilityViolationError
from qm_kernel.models.inventory import InventoryTransaction
from qm_kernel.services.audit_trail import AuditTrail


@pytest.fixture
def audit_entry(session, deterministic_clock, admin_actor):
    entry = AuditTrail(session, deterministic_clock).record(
        "PurchaseOrder", uuid4(), AuditAction.UPDATE, admin_actor, new_values={"notes": "a"}
    )
    session.commit()
    return entry


@pytest.fixture
def pending_out(session, create_item, create_warehouse, test_actor_id):
    tx = InventoryTransaction(
        movement_type=MovementType.INVENTORY_OUT,
        status=TransactionStatus.PENDING,
        item_id=create_item().id,
        warehouse_id=create_warehouse().id,
        quantity=2,
        created_by_id=test_actor_id,
    )
    session.add(tx)
    session.commit()
    return tx


class TestAuditLogImmutability:
    def test_update_blocked(self, session, audit_entry):
        audit_entry.notes = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_blocked(self, session, audit_entry):
        session.delete(audit_entry)
        with pytest.raises(ImmutabilityViolationError, match="cannot be deleted"):
            session.flush()
        session.rollback()


class TestInventoryTransactionImmutability:
    def test_pending_row_is_editable(self, session, pending_out):
        pending_out.quantity = 3
        session.commit()
        session.refresh(pending_out)
        assert pending_out.quantity == 3

    def test_completion_is_allowed(self, session, pending_out):
        pending_out.status = TransactionStatus.COMPLETED
        session.commit()
        session.refresh(pending_out)
        assert pending_out.is_completed

    def test_completed_row_is_frozen(self, session, pending_out):
        pending_out.status = TransactionStatus.COMPLETED
        session.commit()

        pending_out.quantity = 99
        with pytest.raises(ImmutabilityViolationError, match="quantity"):
            session.flush()
        session.rollback()

    def test_completed_status_cannot_revert(self, session, pending_out):
        pending_out.status = TransactionStatus.COMPLETED
        session.commit()

        pending_out.status = TransactionStatus.PENDING
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_completed_row_cannot_be_deleted(self, session, pending_out):
        pending_out.status = TransactionStatus.COMPLETED
        session.commit()

        session.delete(pending_out)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
