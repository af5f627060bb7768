"""Tests for ApprovalLayerResolver against stored approvals."""

from uuid import uuid4

import pytest

from qm_kernel.domain.values import RouteType
from qm_kernel.exceptions import StockOutRequestNotFoundError
from qm_services.approval_layer_service import ApprovalLayerResolver
from qm_services.execution_engine import ExecutionEngine


@pytest.fixture
def resolver(session):
    return ApprovalLayerResolver(session)


class TestForRequest:
    def test_layer_totals(
        self, resolver, create_item, create_warehouse, create_stock_out_request
    ):
        x, y = create_item(), create_item()
        a, b = create_warehouse(), create_warehouse()
        request = create_stock_out_request(
            [(x, 10, [(a, 4), (b, 2)]), (y, 5, [])]
        )

        breakdown = resolver.for_request(request.id)

        assert breakdown.totals.requested == 15
        assert breakdown.totals.l1_approved == 6
        assert breakdown.totals.l2_assigned == 6
        assert breakdown.totals.rejected == 0
        assert len(breakdown.lines) == 2

    def test_unknown_request(self, resolver):
        with pytest.raises(StockOutRequestNotFoundError):
            resolver.for_request(uuid4())


class TestFulfillmentMetrics:
    def test_before_and_after_execution(
        self,
        session,
        resolver,
        admin_actor,
        create_qmhq,
        create_item,
        create_warehouse,
        stock_in,
        create_stock_out_request,
    ):
        qmhq = create_qmhq(route_type=RouteType.ITEM)
        item, warehouse = create_item(), create_warehouse()
        stock_in(item, warehouse, 20)
        request = create_stock_out_request([(item, 8, [(warehouse, 6)])], qmhq=qmhq)

        before = resolver.fulfillment_metrics(qmhq.id)
        assert (before.requested, before.approved, before.executed) == (8, 6, 0)
        assert not before.is_fulfilled

        ExecutionEngine(session).execute(request.id, admin_actor)
        session.commit()

        after = resolver.fulfillment_metrics(qmhq.id)
        assert after.executed == 6

    def test_no_line_items(self, resolver, create_qmhq):
        assert resolver.fulfillment_metrics(create_qmhq().id) is None
