"""
POLifecycleManager -- cancel, unlock and header edits of purchase orders.

Responsibility:
    The only code paths that write a PO's status directly (cancel, unlock)
    plus the header-field edit.  Everything else re-derives status through
    ``qm_engines.po_status``.

Architecture position:
    Services layer.  Depends on the status rules (qm_engines.po_status),
    the budget ledger (post-rollup QMHQ figures), AuditTrail, and the
    authorization check.

Invariants enforced:
    - cancel / unlock require an elevated role.
    - A closed PO cannot be cancelled or edited; it must be unlocked first.
    - A cancelled PO is terminal: no cancel, unlock, or edit.
    - unlock always leaves the PO in an editable status: if the recomputed
      status is still closed, partially_received is forced.
    - update touches only the mutable header fields; quantities, totals
      and currency are never editable here.
    - Each successful operation writes exactly one audit entry; an edit
      that changes nothing writes none.

Failure modes:
    - AuthorizationError, PurchaseOrderNotFoundError,
      AlreadyCancelledError, CannotCancelClosedError,
      MissingCancellationReasonError, NotClosedError,
      CannotEditClosedError, CannotEditCancelledError, ImmutableFieldError,
      InvalidFieldValueError.
      All raised before any write.

Audit relevance:
    Entries are recorded against entity_type "PurchaseOrder".
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from qm_engines.po_status import resolve_from_totals
from qm_kernel.domain.actor import Actor
from qm_kernel.domain.clock import Clock, SystemClock
from qm_kernel.domain.values import AuditAction, POStatus
from qm_kernel.exceptions import (
    AlreadyCancelledError,
    CannotCancelClosedError,
    CannotEditCancelledError,
    CannotEditClosedError,
    ImmutableFieldError,
    InvalidFieldValueError,
    MissingCancellationReasonError,
    NotClosedError,
    PurchaseOrderNotFoundError,
)
from qm_kernel.logging_config import get_logger
from qm_kernel.models.purchase_order import PurchaseOrder
from qm_kernel.selectors.procurement_selector import ProcurementSelector
from qm_kernel.services.audit_trail import AuditTrail
from qm_kernel.services.base import BaseService
from qm_services.authorization import DEFAULT_ELEVATED_ROLES, require_elevated
from qm_services.budget_ledger import BudgetLedger

logger = get_logger("services.po_lifecycle")

PURCHASE_ORDER = "PurchaseOrder"

EDITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "supplier_id",
        "notes",
        "expected_delivery_date",
        "contact_person_name",
        "sign_person_name",
        "authorized_signer_name",
    }
)

UNLOCK_SUMMARY = "Unlocked for corrections"


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise TypeError(type(value).__name__)


def _parse_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        return UUID(value)
    raise TypeError(type(value).__name__)


# Editable fields whose column is not text, with the parser that turns
# wire values (ISO dates, UUID strings) into what the column stores.
_FIELD_PARSERS: dict[str, tuple[Callable[[Any], Any], str]] = {
    "expected_delivery_date": (_parse_date, "an ISO date (YYYY-MM-DD)"),
    "supplier_id": (_parse_uuid, "a UUID"),
}


def coerce_fields(po_id: UUID, fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize edit values to their column types.

    ``None`` and ``""`` pass through unchanged; both clear the field.

    Raises:
        InvalidFieldValueError: A value cannot be parsed for its field.
    """
    coerced = dict(fields)
    for name, (parse, expected) in _FIELD_PARSERS.items():
        value = coerced.get(name)
        if value is None or value == "":
            continue
        try:
            coerced[name] = parse(value)
        except (TypeError, ValueError):
            raise InvalidFieldValueError(str(po_id), name, value, expected) from None
    return coerced


@dataclass(frozen=True)
class CancelOutcome:
    po_number: str
    previous_status: POStatus
    released_amount_eusd: Decimal
    qmhq_request_id: str
    new_balance_in_hand: Decimal


@dataclass(frozen=True)
class UnlockOutcome:
    po_number: str
    new_status: POStatus


@dataclass(frozen=True)
class UpdateOutcome:
    po_number: str
    changed_fields: tuple[str, ...]


class POLifecycleManager(BaseService):
    """
    Cancel / unlock / update orchestration for purchase orders.

    Contract:
        Every method flushes into the caller's session and never commits.

    Guarantees:
        - Preconditions are checked in a fixed order: authorization,
          existence, status, then input.
        - A status written by cancel/unlock is audited together with the
          change in the same flush.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditTrail | None = None,
        elevated_roles: Iterable[str] = DEFAULT_ELEVATED_ROLES,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit = audit or AuditTrail(session, self._clock)
        self._elevated_roles = frozenset(elevated_roles)
        self._procurement = ProcurementSelector(session)
        self._budget = BudgetLedger(session)

    def _load(self, po_id: UUID) -> PurchaseOrder:
        po = self.session.get(PurchaseOrder, po_id)
        if po is None:
            raise PurchaseOrderNotFoundError(str(po_id))
        return po

    # ------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------

    def cancel(self, po_id: UUID, reason: str, actor: Actor) -> CancelOutcome:
        """
        Cancel a PO and report the budget it released.

        The PO rollup recomputes the owning QMHQ's commitment during the
        flush; the returned balance is read after it.
        """
        require_elevated(actor, "cancel Purchase Orders", self._elevated_roles)

        po = self._load(po_id)
        previous = POStatus(po.status)
        if previous == POStatus.CANCELLED:
            raise AlreadyCancelledError(str(po_id))
        if previous == POStatus.CLOSED:
            raise CannotCancelClosedError(str(po_id))

        reason = (reason or "").strip()
        if not reason:
            raise MissingCancellationReasonError(str(po_id))

        now = self._clock.now()
        po.status = POStatus.CANCELLED
        po.cancellation_reason = reason
        po.cancelled_at = now
        po.cancelled_by = actor.actor_id
        po.updated_by_id = actor.actor_id
        self.session.flush()

        self._audit.record_status_change(
            PURCHASE_ORDER,
            po.id,
            previous,
            POStatus.CANCELLED,
            actor,
            action=AuditAction.CANCEL,
            changes_summary=f"Cancelled: {reason}",
            extra_new={"cancellation_reason": reason, "cancelled_at": now},
        )

        figures = self._budget.figures(po.qmhq_id)
        released = po.total_amount_eusd or Decimal("0")

        logger.info(
            "po_cancelled",
            extra={
                "po_id": str(po.id),
                "po_number": po.po_number,
                "previous_status": previous.value,
                "released_amount_eusd": released,
                "qmhq_id": str(po.qmhq_id),
                "new_balance_in_hand": figures.balance_in_hand,
            },
        )

        return CancelOutcome(
            po_number=po.po_number,
            previous_status=previous,
            released_amount_eusd=released,
            qmhq_request_id=figures.request_id,
            new_balance_in_hand=figures.balance_in_hand,
        )

    # ------------------------------------------------------------------
    # unlock
    # ------------------------------------------------------------------

    def unlock(self, po_id: UUID, actor: Actor) -> UnlockOutcome:
        """
        Reopen a closed PO for corrections.

        Status is recomputed from the current line aggregates.  When the
        lines still match fully, partially_received is forced so the PO
        becomes editable; the line-item rollup re-closes it once a
        correction restores full matching.
        """
        require_elevated(actor, "unlock Purchase Orders", self._elevated_roles)

        po = self._load(po_id)
        previous = POStatus(po.status)
        if previous != POStatus.CLOSED:
            raise NotClosedError(str(po_id), previous.value)

        totals = self._procurement.quantity_totals(po.id)
        recomputed = resolve_from_totals(totals, is_cancelled=False)
        new_status = (
            POStatus.PARTIALLY_RECEIVED if recomputed == POStatus.CLOSED else recomputed
        )

        po.status = new_status
        po.updated_by_id = actor.actor_id
        self.session.flush()

        self._audit.record_status_change(
            PURCHASE_ORDER,
            po.id,
            previous,
            new_status,
            actor,
            changes_summary=UNLOCK_SUMMARY,
            extra_new={
                "total_quantity": totals.total_quantity,
                "invoiced_quantity": totals.invoiced_quantity,
                "received_quantity": totals.received_quantity,
            },
        )

        logger.info(
            "po_unlocked",
            extra={
                "po_id": str(po.id),
                "po_number": po.po_number,
                "recomputed_status": recomputed.value,
                "new_status": new_status.value,
                "forced": recomputed != new_status,
            },
        )
        return UnlockOutcome(po_number=po.po_number, new_status=new_status)

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    def update(
        self,
        po_id: UUID,
        fields: Mapping[str, Any],
        actor: Actor,
    ) -> UpdateOutcome:
        """
        Edit the mutable header fields of an open PO.

        Only fields whose value actually changes are written and audited.
        """
        immutable = sorted(set(fields) - EDITABLE_FIELDS)
        po = self._load(po_id)
        if immutable:
            raise ImmutableFieldError(str(po_id), immutable)

        status = POStatus(po.status)
        if status == POStatus.CLOSED:
            raise CannotEditClosedError(str(po_id))
        if status == POStatus.CANCELLED:
            raise CannotEditCancelledError(str(po_id))

        values = coerce_fields(po_id, fields)
        current = {name: getattr(po, name) for name in values}
        entry = self._audit.record_field_changes(
            PURCHASE_ORDER,
            po.id,
            current,
            values,
            actor,
        )
        if entry is None:
            return UpdateOutcome(po_number=po.po_number, changed_fields=())

        changed = tuple(entry.new_values or {})
        for name in changed:
            value = values[name]
            setattr(po, name, None if value == "" else value)
        po.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "po_updated",
            extra={
                "po_id": str(po.id),
                "po_number": po.po_number,
                "changed_fields": list(changed),
            },
        )
        return UpdateOutcome(po_number=po.po_number, changed_fields=changed)
