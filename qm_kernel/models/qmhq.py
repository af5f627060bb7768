"""
Module: qm_kernel.models.qmhq
Responsibility: ORM persistence for QMHQ fulfillment lines.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - route_type is one of RouteType.
    - total_money_in_eusd and total_po_committed_eusd are rollups.  They are
      written only by the rollup listeners in qm_services.rollups, never by a
      service directly.

Audit relevance:
    The QMHQ money figures are what BudgetLedger reports after a PO cancel;
    cancelling a PO is audited on the PO, and the QMHQ rollup follows.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qm_kernel.db.base import TrackedBase
from qm_kernel.domain.values import RouteType


class QMHQ(TrackedBase):
    """
    A fulfillment line of a QMRL request.

    Contract:
        Routed to item issuance, direct expense, or PO procurement.  amount_eusd
        is the target; the two rollup columns track money received and money
        committed to non-cancelled POs.
    """

    __tablename__ = "qmhq"

    __table_args__ = (
        UniqueConstraint("request_id", name="uq_qmhq_request_id"),
        Index("idx_qmhq_route", "route_type"),
    )

    # Human-readable code, e.g. QMHQ-2025-00001
    request_id: Mapped[str] = mapped_column(String(30), nullable=False)

    qmrl_id: Mapped[UUID | None] = mapped_column(nullable=True)

    line_name: Mapped[str] = mapped_column(String(200), nullable=False)

    route_type: Mapped[RouteType] = mapped_column(String(10), nullable=False)

    amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), default="MMK", nullable=False)

    exchange_rate: Mapped[Decimal] = mapped_column(default=Decimal("1"), nullable=False)

    amount_eusd: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    total_money_in_eusd: Mapped[Decimal] = mapped_column(
        default=Decimal("0"), nullable=False
    )

    total_po_committed_eusd: Mapped[Decimal] = mapped_column(
        default=Decimal("0"), nullable=False
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    purchase_orders: Mapped[list["PurchaseOrder"]] = relationship(  # noqa: F821
        back_populates="qmhq",
        order_by="PurchaseOrder.po_number",
    )

    def __repr__(self) -> str:
        return f"<QMHQ {self.request_id} ({self.route_type})>"
