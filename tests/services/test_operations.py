"""
Tests for the QuartermasterOperations result boundary.

Tests cover:
- success payloads of the four operations
- typed failures mapped to codes; nothing escapes as an exception
- rollback on failure, including failures after a flush
- post-commit broadcast, and broadcaster failures tolerated
- log context bound for the duration of an operation
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from qm_config import parse_config
from qm_kernel.domain.actor import Actor
from qm_kernel.domain.values import MovementType, POStatus, TransactionStatus
from qm_kernel.exceptions import ImmutabilityViolationError
from qm_kernel.models.inventory import InventoryTransaction
from qm_kernel.services.audit_trail import AuditTrail
from qm_services.notifications import APPROVAL_EXECUTED, InMemoryBroadcaster
from qm_services.operations import UNEXPECTED_ERROR, QuartermasterOperations
from qm_services.po_lifecycle import POLifecycleManager

CHANNEL = "qm-stock-out-execution"


@pytest.fixture
def broadcaster():
    return InMemoryBroadcaster()


@pytest.fixture
def ops(session, deterministic_clock, broadcaster):
    return QuartermasterOperations(
        session, clock=deterministic_clock, broadcaster=broadcaster
    )


def out_statuses(session) -> set[TransactionStatus]:
    session.expire_all()
    rows = session.execute(
        select(InventoryTransaction.status).where(
            InventoryTransaction.movement_type == MovementType.INVENTORY_OUT.value
        )
    ).scalars()
    return {TransactionStatus(status) for status in rows}


class TestCancelPO:
    def test_success_payload(
        self, session, ops, admin_actor, create_qmhq, create_po, create_money_in
    ):
        qmhq = create_qmhq(amount_eusd=Decimal("1000"))
        create_money_in(qmhq, Decimal("800"))
        po = create_po(lines=((100, 100, 40),), total_amount_eusd=Decimal("500"), qmhq=qmhq)

        result = ops.cancel_po(po.id, "duplicate order", admin_actor)

        assert result.success
        assert result.data == {
            "po_number": po.po_number,
            "previous_status": "partially_received",
            "released_amount_eusd": Decimal("500"),
            "qmhq_request_id": qmhq.request_id,
            "new_balance_in_hand": Decimal("800"),
        }
        session.refresh(po)
        assert POStatus(po.status) == POStatus.CANCELLED

    def test_not_authorized(self, ops, staff_actor, create_po):
        result = ops.cancel_po(create_po().id, "no", staff_actor)

        assert not result.success
        assert result.code == "NOT_AUTHORIZED"
        assert result.error == "Only administrators can cancel Purchase Orders"

    def test_unknown_po(self, ops, admin_actor):
        result = ops.cancel_po(uuid4(), "no", admin_actor)
        assert result.code == "PO_NOT_FOUND"

    def test_failure_after_flush_is_rolled_back(
        self, session, ops, admin_actor, create_po, monkeypatch
    ):
        po = create_po()

        def boom(*args, **kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(AuditTrail, "record_status_change", boom)

        result = ops.cancel_po(po.id, "duplicate order", admin_actor)

        assert not result.success
        assert result.code == "UNEXPECTED_ERROR"
        assert result.error == UNEXPECTED_ERROR
        session.refresh(po)
        assert POStatus(po.status) == POStatus.NOT_STARTED

    def test_persistence_error(self, ops, admin_actor, create_po, monkeypatch, captured_logs):
        po = create_po()

        def db_down(*args, **kwargs):
            raise OperationalError(
                "UPDATE purchase_orders SET notes=?", {"notes": "secret"}, ConnectionError("db down")
            )

        monkeypatch.setattr(POLifecycleManager, "cancel", db_down)

        result = ops.cancel_po(po.id, "duplicate order", admin_actor)

        assert result.code == "PERSISTENCE_ERROR"
        assert result.error == "Could not complete cancel_po: ConnectionError"
        assert "purchase_orders" not in result.error
        assert "secret" not in result.error

        [record] = [r for r in captured_logs() if r["message"] == "operation_persistence_failed"]
        assert "UPDATE purchase_orders" in record["error"]

    def test_immutability_violation(self, ops, admin_actor, create_po, monkeypatch):
        po = create_po()

        def blocked(*args, **kwargs):
            raise ImmutabilityViolationError("AuditLogEntry", str(uuid4()), "immutable")

        monkeypatch.setattr(POLifecycleManager, "cancel", blocked)

        result = ops.cancel_po(po.id, "duplicate order", admin_actor)

        assert result.code == "IMMUTABILITY_VIOLATION"


class TestUnlockPO:
    def test_success_payload(self, ops, admin_actor, create_po):
        po = create_po(lines=((10, 10, 10),))

        result = ops.unlock_po(po.id, admin_actor)

        assert result.success
        assert result.data == {"po_number": po.po_number, "new_status": "partially_received"}

    def test_not_closed(self, ops, admin_actor, create_po):
        result = ops.unlock_po(create_po().id, admin_actor)
        assert result.code == "PO_NOT_CLOSED"


class TestUpdatePO:
    def test_success_payload(self, ops, staff_actor, create_po):
        po = create_po(notes="a")

        result = ops.update_po(po.id, {"notes": "b", "sign_person_name": "Min"}, staff_actor)

        assert result.success
        assert result.data["changed_fields"] == ["notes", "sign_person_name"]

    def test_immutable_field(self, session, ops, staff_actor, create_po):
        po = create_po(notes="a")

        result = ops.update_po(po.id, {"notes": "b", "po_number": "PO-X"}, staff_actor)

        assert result.code == "PO_FIELD_IMMUTABLE"
        session.refresh(po)
        assert po.notes == "a"

    def test_iso_delivery_date(self, session, ops, staff_actor, create_po):
        po = create_po()

        result = ops.update_po(po.id, {"expected_delivery_date": "2026-02-01"}, staff_actor)

        assert result.success
        assert result.data["changed_fields"] == ["expected_delivery_date"]
        session.refresh(po)
        assert po.expected_delivery_date == date(2026, 2, 1)

    def test_unparseable_delivery_date(self, session, ops, staff_actor, create_po):
        po = create_po(notes="a")

        result = ops.update_po(
            po.id, {"notes": "b", "expected_delivery_date": "soon"}, staff_actor
        )

        assert result.code == "PO_FIELD_INVALID"
        assert result.error == "Invalid value for expected_delivery_date: expected an ISO date (YYYY-MM-DD)"
        session.refresh(po)
        assert po.notes == "a"


class TestExecuteStockOut:
    def test_success_and_broadcast(
        self,
        ops,
        admin_actor,
        broadcaster,
        create_qmhq,
        create_item,
        create_warehouse,
        stock_in,
        create_stock_out_request,
    ):
        qmhq = create_qmhq()
        item = create_item()
        a, b = create_warehouse(), create_warehouse()
        stock_in(item, a, 5)
        stock_in(item, b, 5)
        request = create_stock_out_request([(item, 6, [(a, 3), (b, 3)])], qmhq=qmhq)

        result = ops.execute_stock_out(request.id, admin_actor)

        assert result.success
        assert result.data == {
            "executed_count": 2,
            "executed_quantity": 6,
            "request_id": str(request.id),
            "request_number": request.request_number,
        }
        messages = broadcaster.messages(CHANNEL)
        assert len(messages) == 2
        assert {m["type"] for m in messages} == {APPROVAL_EXECUTED}
        assert all(m["request_id"] == str(request.id) for m in messages)
        assert all(m["qmhq_id"] == str(qmhq.id) for m in messages)

    def test_shortfall_details_and_rollback(
        self,
        session,
        ops,
        admin_actor,
        broadcaster,
        create_item,
        create_warehouse,
        stock_in,
        create_stock_out_request,
    ):
        item, warehouse = create_item("Tent"), create_warehouse("Depot W")
        stock_in(item, warehouse, 1)
        request = create_stock_out_request([(item, 3, [(warehouse, 3)])])

        result = ops.execute_stock_out(request.id, admin_actor)

        assert result.code == "STOCK_SHORTFALL"
        [shortfall] = result.details["shortfalls"]
        assert shortfall["item_name"] == "Tent"
        assert shortfall["warehouse_name"] == "Depot W"
        assert (shortfall["required"], shortfall["available"]) == (3, 1)
        assert out_statuses(session) == {TransactionStatus.PENDING}
        assert broadcaster.published == []

    def test_second_run_is_nothing_to_execute(
        self, ops, admin_actor, create_item, create_warehouse, stock_in, create_stock_out_request
    ):
        item, warehouse = create_item(), create_warehouse()
        stock_in(item, warehouse, 5)
        request = create_stock_out_request([(item, 5, [(warehouse, 5)])])

        assert ops.execute_stock_out(request.id, admin_actor).success
        result = ops.execute_stock_out(request.id, admin_actor)

        assert result.code == "NOTHING_TO_EXECUTE"

    def test_broadcaster_failure_does_not_fail_operation(
        self,
        session,
        deterministic_clock,
        admin_actor,
        create_item,
        create_warehouse,
        stock_in,
        create_stock_out_request,
        captured_logs,
    ):
        class Broken:
            def publish(self, channel, message):
                raise ConnectionError("channel closed")

        ops = QuartermasterOperations(session, clock=deterministic_clock, broadcaster=Broken())
        item, warehouse = create_item(), create_warehouse()
        stock_in(item, warehouse, 5)
        request = create_stock_out_request([(item, 2, [(warehouse, 2)])])

        result = ops.execute_stock_out(request.id, admin_actor)

        assert result.success
        assert out_statuses(session) == {TransactionStatus.COMPLETED}
        assert any(r["message"] == "broadcast_failed" for r in captured_logs())


class TestBoundary:
    def test_log_context_is_bound(self, ops, admin_actor, create_po, captured_logs):
        po = create_po()

        ops.update_po(po.id, {"notes": "x"}, admin_actor)

        [record] = [r for r in captured_logs() if r["message"] == "operation_succeeded"]
        assert record["operation"] == "update_po"
        assert record["actor_id"] == str(admin_actor.actor_id)
        assert record["po_id"] == str(po.id)

    def test_from_config_uses_configured_roles(self, session, create_po):
        config = parse_config(
            {
                "config_id": "ops-test",
                "version": 1,
                "authorization": {"elevated_roles": ["admin", "quartermaster_lead"]},
                "broadcast": {"channel": "custom-channel"},
            }
        )
        ops = QuartermasterOperations.from_config(session, config)
        lead = Actor(actor_id=uuid4(), role="quartermaster_lead")

        result = ops.cancel_po(create_po().id, "duplicate order", lead)

        assert result.success

    def test_subscribers_receive_execution_messages(
        self,
        session,
        admin_actor,
        broadcaster,
        create_item,
        create_warehouse,
        stock_in,
        create_stock_out_request,
    ):
        received = []
        broadcaster.subscribe(CHANNEL, received.append)
        ops = QuartermasterOperations(session, broadcaster=broadcaster)
        item, warehouse = create_item(), create_warehouse()
        stock_in(item, warehouse, 5)
        request = create_stock_out_request([(item, 2, [(warehouse, 2)])])

        ops.execute_stock_out(request.id, admin_actor)

        assert [m["type"] for m in received] == [APPROVAL_EXECUTED]

    def test_result_wire_shape(self, ops, staff_actor):
        result = ops.update_po(uuid4(), {"notes": "x"}, staff_actor)

        assert result.to_dict() == {"success": False, "error": result.error}
