"""
Module: qm_kernel.models.audit_log
Responsibility: ORM persistence for the append-only, field-level audit log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: UPDATE and DELETE are blocked by the ORM listeners in
      db/immutability.py.
    - seq is strictly increasing per (entity_type, entity_id), allocated by
      AuditTrail, and unique (constraint) so concurrent writers cannot
      interleave an entity's history.

Audit relevance:
    This IS the audit trail.  old_values / new_values hold only the fields
    that actually changed.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from qm_kernel.db.base import Base
from qm_kernel.domain.values import AuditAction


class AuditLogEntry(Base):
    """
    One recorded state transition of one entity.

    Contract:
        Never mutated or deleted once flushed.  ``changes_summary`` is the
        human-readable line rendered in history views.
    """

    __tablename__ = "audit_logs"

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "seq", name="uq_audit_entity_seq"),
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_changed_at", "changed_at"),
    )

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(nullable=False)

    seq: Mapped[int] = mapped_column(nullable=False)

    action: Mapped[AuditAction] = mapped_column(String(20), nullable=False)

    # Single-field transitions (e.g. status) also get the flat columns
    field_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    changes_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    changed_by: Mapped[UUID] = mapped_column(nullable=False)

    changed_by_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    changed_at: Mapped[datetime] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AuditLogEntry {self.entity_type}:{self.entity_id} "
            f"#{self.seq} {self.action}>"
        )
