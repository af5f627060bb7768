"""Tests for QMHQStatusService: flags collected from storage, per route."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from qm_kernel.domain.values import AutoStatus, RouteType, StockOutLineStatus
from qm_kernel.exceptions import QMHQNotFoundError
from qm_kernel.models.stock_out import StockOutLineItem
from qm_services.qmhq_status_service import QMHQStatusService


@pytest.fixture
def status_service(session):
    return QMHQStatusService(session)


class TestItemRoute:
    def test_pending_without_approvals(
        self, status_service, create_qmhq, create_item, create_stock_out_request
    ):
        qmhq = create_qmhq(route_type=RouteType.ITEM)
        create_stock_out_request([(create_item(), 3, [])], qmhq=qmhq)

        assert status_service.auto_status(qmhq.id) == AutoStatus.ITEM_PENDING

    def test_processing_then_done(
        self,
        session,
        status_service,
        create_qmhq,
        create_item,
        create_warehouse,
        create_stock_out_request,
    ):
        qmhq = create_qmhq(route_type=RouteType.ITEM)
        request = create_stock_out_request(
            [(create_item(), 3, [(create_warehouse(), 3)])], qmhq=qmhq
        )
        assert status_service.auto_status(qmhq.id) == AutoStatus.ITEM_PROCESSING

        for line in session.execute(
            select(StockOutLineItem).where(StockOutLineItem.request_id == request.id)
        ).scalars():
            line.status = StockOutLineStatus.EXECUTED
        session.commit()

        assert status_service.auto_status(qmhq.id) == AutoStatus.ITEM_DONE


class TestExpenseRoute:
    def test_fully_received_is_done(self, status_service, create_qmhq, create_money_in):
        qmhq = create_qmhq(route_type=RouteType.EXPENSE, amount_eusd=Decimal("1000"))
        create_money_in(qmhq, Decimal("1000"))

        flags = status_service.flags(qmhq.id)

        assert flags.yet_to_receive_eusd == Decimal("0")
        assert status_service.auto_status(qmhq.id) == AutoStatus.EXPENSE_DONE

    def test_partly_received_is_processing(self, status_service, create_qmhq, create_money_in):
        qmhq = create_qmhq(route_type=RouteType.EXPENSE, amount_eusd=Decimal("1000"))
        create_money_in(qmhq, Decimal("400"))

        assert status_service.auto_status(qmhq.id) == AutoStatus.EXPENSE_PROCESSING

    def test_nothing_received_is_pending(self, status_service, create_qmhq):
        qmhq = create_qmhq(route_type=RouteType.EXPENSE)
        assert status_service.auto_status(qmhq.id) == AutoStatus.EXPENSE_PENDING


class TestPORoute:
    def test_spent_and_received_is_done(
        self, status_service, create_qmhq, create_money_in, create_po
    ):
        qmhq = create_qmhq(route_type=RouteType.PO, amount_eusd=Decimal("1000"))
        create_money_in(qmhq, Decimal("1000"))
        create_po(total_amount_eusd=Decimal("1000"), qmhq=qmhq)

        assert status_service.auto_status(qmhq.id) == AutoStatus.PO_DONE

    def test_open_po_with_money_left_is_processing(
        self, status_service, create_qmhq, create_money_in, create_po
    ):
        qmhq = create_qmhq(route_type=RouteType.PO, amount_eusd=Decimal("1000"))
        create_money_in(qmhq, Decimal("1000"))
        create_po(total_amount_eusd=Decimal("400"), qmhq=qmhq)

        assert status_service.auto_status(qmhq.id) == AutoStatus.PO_PROCESSING

    def test_no_po_is_pending(self, status_service, create_qmhq):
        qmhq = create_qmhq(route_type=RouteType.PO)
        assert status_service.auto_status(qmhq.id) == AutoStatus.PO_PENDING


def test_unknown_qmhq(status_service):
    with pytest.raises(QMHQNotFoundError):
        status_service.flags(uuid4())
