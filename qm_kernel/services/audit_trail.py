"""
AuditTrail -- field-level, append-only record of every state transition.

Responsibility:
    Writes AuditLogEntry rows for lifecycle changes (PO cancel, unlock,
    header edits) and for each inventory transaction completed by the
    executor.  Computes field diffs so an entry holds only what changed.
    Reads an entity's history back as an ordered AuditTrace.

Architecture position:
    Kernel > Services.  Called by every mutating component; depends only
    on the audit_log model, the clock, and the actor value.

Invariants enforced:
    - Append-only (see db/immutability.py).
    - An entry for an edit never lists a field whose value did not change;
      if nothing changed, no entry is written at all.
    - seq increases by one per entity, starting at 1.

Failure modes:
    - IntegrityError on uq_audit_entity_seq when two writers race for the
      same entity's next seq; the surrounding operation rolls back and is
      safe to retry.

Audit relevance:
    The audit trail exists for observability.  Current state (e.g. PO
    status) is always re-derivable without it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from qm_kernel.domain.actor import Actor
from qm_kernel.domain.clock import Clock, SystemClock
from qm_kernel.domain.values import AuditAction
from qm_kernel.logging_config import get_logger
from qm_kernel.models.audit_log import AuditLogEntry
from qm_kernel.services.base import BaseService

logger = get_logger("services.audit_trail")


def to_audit_value(value: Any) -> Any:
    """Normalize a field value into something JSON columns can store."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # Decimal, UUID and anything else
    return str(value)


@dataclass(frozen=True)
class FieldChange:
    old: Any
    new: Any


def diff_fields(
    old: Mapping[str, Any],
    new: Mapping[str, Any],
) -> dict[str, FieldChange]:
    """
    Compare two field maps and keep only the fields whose value changed.

    Only keys present in ``new`` are considered.  Values are compared after
    normalization, so a UUID and its string form count as unchanged, and so
    do an empty string and None.

    Args:
        old: Current values, keyed by field name.
        new: Proposed values, keyed by field name.

    Returns:
        Mapping field -> FieldChange, in the key order of ``new``.
    """
    changes: dict[str, FieldChange] = {}
    for name, proposed in new.items():
        current = old.get(name)
        before = None if current == "" else to_audit_value(current)
        after = None if proposed == "" else to_audit_value(proposed)
        if before != after:
            changes[name] = FieldChange(old=before, new=after)
    return changes


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: AuditAction
    changed_at: datetime
    changed_by: UUID
    old_values: dict[str, Any]
    new_values: dict[str, Any]
    changes_summary: str | None
    notes: str | None


@dataclass(frozen=True)
class AuditTrace:
    """
    Complete audit trace for an entity, in seq order.
    """

    entity_type: str
    entity_id: UUID
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def first_action(self) -> AuditAction | None:
        return self.entries[0].action if self.entries else None

    @property
    def last_action(self) -> AuditAction | None:
        return self.entries[-1].action if self.entries else None


class AuditTrail(BaseService):
    """
    Records and reads field-level audit entries.

    Contract:
        Every ``record*`` method adds and flushes exactly one AuditLogEntry
        in the caller's transaction (``record_field_changes`` may add none).

    Guarantees:
        - ``changed_at`` comes from the injected Clock.
        - old_values / new_values hold JSON-safe values only.

    Non-goals:
        - Does NOT decide whether a change is allowed; callers enforce
          their own preconditions before recording.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _next_seq(self, entity_type: str, entity_id: UUID) -> int:
        current = self.session.execute(
            select(func.max(AuditLogEntry.seq)).where(
                AuditLogEntry.entity_type == entity_type,
                AuditLogEntry.entity_id == entity_id,
            )
        ).scalar()
        return (current or 0) + 1

    def record(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor: Actor,
        *,
        old_values: Mapping[str, Any] | None = None,
        new_values: Mapping[str, Any] | None = None,
        field_name: str | None = None,
        changes_summary: str | None = None,
        notes: str | None = None,
    ) -> AuditLogEntry:
        """
        Append one audit entry.

        When ``field_name`` is given, the flat old_value/new_value columns
        are filled from that field of old_values/new_values.

        Returns:
            The flushed AuditLogEntry.
        """
        old_map = {k: to_audit_value(v) for k, v in (old_values or {}).items()}
        new_map = {k: to_audit_value(v) for k, v in (new_values or {}).items()}

        entry = AuditLogEntry(
            entity_type=entity_type,
            entity_id=entity_id,
            seq=self._next_seq(entity_type, entity_id),
            action=action,
            field_name=field_name,
            old_value=_flat(old_map.get(field_name)) if field_name else None,
            new_value=_flat(new_map.get(field_name)) if field_name else None,
            old_values=old_map or None,
            new_values=new_map or None,
            changes_summary=changes_summary,
            changed_by=actor.actor_id,
            changed_by_name=actor.display_name,
            changed_at=self._clock.now(),
            notes=notes,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_entry_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
                "seq": entry.seq,
                "fields": sorted(new_map),
            },
        )
        return entry

    def record_status_change(
        self,
        entity_type: str,
        entity_id: UUID,
        old_status: str | Enum,
        new_status: str | Enum,
        actor: Actor,
        *,
        action: AuditAction = AuditAction.STATUS_CHANGE,
        changes_summary: str | None = None,
        notes: str | None = None,
        extra_old: Mapping[str, Any] | None = None,
        extra_new: Mapping[str, Any] | None = None,
    ) -> AuditLogEntry:
        """Record a status transition, optionally with companion fields."""
        old_values = {"status": old_status, **(extra_old or {})}
        new_values = {"status": new_status, **(extra_new or {})}
        return self.record(
            entity_type,
            entity_id,
            action,
            actor,
            old_values=old_values,
            new_values=new_values,
            field_name="status",
            changes_summary=changes_summary
            or f"Status changed from {to_audit_value(old_status)} to {to_audit_value(new_status)}",
            notes=notes,
        )

    def record_field_changes(
        self,
        entity_type: str,
        entity_id: UUID,
        old: Mapping[str, Any],
        new: Mapping[str, Any],
        actor: Actor,
        *,
        action: AuditAction = AuditAction.UPDATE,
        notes: str | None = None,
    ) -> AuditLogEntry | None:
        """
        Diff ``old`` against ``new`` and record only the changed fields.

        Returns:
            The entry written, or None when nothing changed.
        """
        changes = diff_fields(old, new)
        if not changes:
            logger.debug(
                "audit_entry_skipped_no_changes",
                extra={"entity_type": entity_type, "entity_id": str(entity_id)},
            )
            return None

        return self.record(
            entity_type,
            entity_id,
            action,
            actor,
            old_values={name: c.old for name, c in changes.items()},
            new_values={name: c.new for name, c in changes.items()},
            field_name=next(iter(changes)) if len(changes) == 1 else None,
            changes_summary="Updated " + ", ".join(changes),
            notes=notes,
        )

    def get_trace(self, entity_type: str, entity_id: UUID) -> AuditTrace:
        """
        Get the complete audit trace for an entity.

        Returns:
            AuditTrace with all entries in seq order.
        """
        rows = self.session.execute(
            select(AuditLogEntry)
            .where(
                AuditLogEntry.entity_type == entity_type,
                AuditLogEntry.entity_id == entity_id,
            )
            .order_by(AuditLogEntry.seq)
        ).scalars().all()

        entries = tuple(
            AuditTraceEntry(
                seq=row.seq,
                action=AuditAction(row.action),
                changed_at=row.changed_at,
                changed_by=row.changed_by,
                old_values=row.old_values or {},
                new_values=row.new_values or {},
                changes_summary=row.changes_summary,
                notes=row.notes,
            )
            for row in rows
        )
        return AuditTrace(entity_type=entity_type, entity_id=entity_id, entries=entries)


def _flat(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
