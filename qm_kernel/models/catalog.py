"""
Module: qm_kernel.models.catalog
Responsibility: Reference rows for items and warehouses.  The core only
    needs their identity and display names (for shortfall messages).
Architecture position: Kernel > Models.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from qm_kernel.db.base import TrackedBase


class Item(TrackedBase):
    __tablename__ = "items"

    __table_args__ = (UniqueConstraint("sku", name="uq_item_sku"),)

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Warehouse(TrackedBase):
    __tablename__ = "warehouses"

    __table_args__ = (UniqueConstraint("name", name="uq_warehouse_name"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    location: Mapped[str | None] = mapped_column(String(200), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
