"""
QuartermasterOperations -- inbound operation boundary.

Responsibility:
    The four inbound operations (cancel_po, unlock_po, update_po,
    execute_stock_out).  Each one binds log context, runs the service,
    owns the transaction (commit on success, rollback on any failure) and
    converts every outcome into an ``OperationResult``.

Architecture position:
    Services layer, outermost seam.  UI and API callers talk to this class
    only; nothing below it commits.

Invariants enforced:
    - No exception escapes an operation.  Typed errors become
      ``OperationResult.fail`` with the error's code; anything else becomes
      a generic failure and is logged with its traceback.
    - A failed operation leaves no trace in the store (the session is
      rolled back before the result is returned).
    - Broadcasts are published only after a successful commit, and their
      failure never changes the result.

Failure modes (logged, then returned as failures):
    - NothingToExecuteError at INFO (benign).
    - Authorization, precondition, not-found, shortfall and conflict
      errors at WARNING.
    - PersistenceError (wrapping SQLAlchemyError) and immutability
      violations at ERROR.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qm_kernel.domain.actor import Actor
from qm_kernel.domain.clock import Clock, SystemClock
from qm_kernel.domain.results import OperationResult
from qm_kernel.exceptions import (
    ImmutabilityError,
    NothingToExecuteError,
    PersistenceError,
    QuartermasterError,
    StockShortfallError,
)
from qm_kernel.logging_config import LogContext, get_logger
from qm_services.authorization import DEFAULT_ELEVATED_ROLES
from qm_services.execution_engine import ExecutionEngine, ExecutionResult
from qm_services.notifications import (
    APPROVAL_EXECUTED,
    Broadcaster,
    NullBroadcaster,
    publish_best_effort,
)
from qm_services.po_lifecycle import POLifecycleManager

logger = get_logger("services.operations")

DEFAULT_CHANNEL = "qm-stock-out-execution"
UNEXPECTED_ERROR = "An unexpected error occurred"

T = TypeVar("T")


class QuartermasterOperations:
    """
    Result-returning facade over the lifecycle and execution services.

    Contract:
        Constructed around one Session.  Each call is one transaction on
        that session.

    Non-goals:
        - Does NOT authenticate.  The Actor is supplied by the caller.
    """

    def __init__(
        self,
        session: Session,
        *,
        clock: Clock | None = None,
        broadcaster: Broadcaster | None = None,
        elevated_roles: Iterable[str] = DEFAULT_ELEVATED_ROLES,
        broadcast_channel: str = DEFAULT_CHANNEL,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._broadcaster = broadcaster or NullBroadcaster()
        self._elevated_roles = frozenset(elevated_roles)
        self._channel = broadcast_channel

    @classmethod
    def from_config(cls, session: Session, config, **kwargs: Any) -> QuartermasterOperations:
        """Build from a ``qm_config.QuartermasterConfig``."""
        return cls(
            session,
            elevated_roles=config.elevated_roles,
            broadcast_channel=config.broadcast_channel,
            **kwargs,
        )

    def _lifecycle(self) -> POLifecycleManager:
        return POLifecycleManager(
            self.session,
            clock=self._clock,
            elevated_roles=self._elevated_roles,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def cancel_po(self, po_id: UUID, reason: str, actor: Actor) -> OperationResult[dict]:
        def run() -> dict:
            outcome = self._lifecycle().cancel(po_id, reason, actor)
            return {
                "po_number": outcome.po_number,
                "previous_status": outcome.previous_status.value,
                "released_amount_eusd": outcome.released_amount_eusd,
                "qmhq_request_id": outcome.qmhq_request_id,
                "new_balance_in_hand": outcome.new_balance_in_hand,
            }

        return self._run("cancel_po", actor, run, po_id=po_id)

    def unlock_po(self, po_id: UUID, actor: Actor) -> OperationResult[dict]:
        def run() -> dict:
            outcome = self._lifecycle().unlock(po_id, actor)
            return {"po_number": outcome.po_number, "new_status": outcome.new_status.value}

        return self._run("unlock_po", actor, run, po_id=po_id)

    def update_po(
        self,
        po_id: UUID,
        fields: Mapping[str, Any],
        actor: Actor,
    ) -> OperationResult[dict]:
        def run() -> dict:
            outcome = self._lifecycle().update(po_id, fields, actor)
            return {
                "po_number": outcome.po_number,
                "changed_fields": list(outcome.changed_fields),
            }

        return self._run("update_po", actor, run, po_id=po_id)

    def execute_stock_out(self, request_id: UUID, actor: Actor) -> OperationResult[dict]:
        executed: list[ExecutionResult] = []

        def run() -> dict:
            result = ExecutionEngine(self.session, clock=self._clock).execute(request_id, actor)
            executed.append(result)
            return {
                "executed_count": result.executed_count,
                "executed_quantity": result.executed_quantity,
                "request_id": str(result.request_id),
                "request_number": result.request_number,
            }

        outcome = self._run("execute_stock_out", actor, run, request_id=request_id)
        if outcome.success and executed:
            self._announce(executed[0])
        return outcome

    # ------------------------------------------------------------------
    # Boundary
    # ------------------------------------------------------------------

    def _announce(self, result: ExecutionResult) -> None:
        for approval_id in result.approval_ids:
            publish_best_effort(
                self._broadcaster,
                self._channel,
                {
                    "type": APPROVAL_EXECUTED,
                    "approval_id": str(approval_id),
                    "request_id": str(result.request_id),
                    "qmhq_id": str(result.qmhq_id) if result.qmhq_id else None,
                },
            )

    def _run(
        self,
        operation: str,
        actor: Actor,
        fn: Callable[[], T],
        *,
        po_id: UUID | None = None,
        request_id: UUID | None = None,
    ) -> OperationResult[T]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor.actor_id,
            operation=operation,
            po_id=po_id,
            request_id=request_id,
        ):
            try:
                data = fn()
                self.session.commit()
            except NothingToExecuteError as exc:
                self.session.rollback()
                logger.info("operation_nothing_to_execute", extra={"code": exc.code})
                return OperationResult.fail(str(exc), code=exc.code)
            except ImmutabilityError as exc:
                self.session.rollback()
                logger.error("operation_failed", extra={"code": exc.code, "error": str(exc)})
                return OperationResult.fail(str(exc), code=exc.code)
            except QuartermasterError as exc:
                self.session.rollback()
                logger.warning("operation_failed", extra={"code": exc.code, "error": str(exc)})
                return OperationResult.fail(str(exc), code=exc.code, details=_details(exc))
            except SQLAlchemyError as exc:
                self.session.rollback()
                # SQL text and bound parameters stay in the log only
                orig = getattr(exc, "orig", None)
                reason = type(orig if orig is not None else exc).__name__
                wrapped = PersistenceError(operation, reason)
                logger.error(
                    "operation_persistence_failed",
                    extra={"code": wrapped.code, "error": str(exc)},
                )
                return OperationResult.fail(str(wrapped), code=wrapped.code)
            except Exception:
                self.session.rollback()
                logger.exception("operation_failed_unexpectedly")
                return OperationResult.fail(UNEXPECTED_ERROR, code="UNEXPECTED_ERROR")

            logger.info("operation_succeeded")
            return OperationResult.ok(data)


def _details(exc: QuartermasterError) -> dict[str, Any]:
    if isinstance(exc, StockShortfallError):
        return {
            "shortfalls": [
                {
                    "item_id": str(s.item_id),
                    "warehouse_id": str(s.warehouse_id),
                    "item_name": s.item_name,
                    "warehouse_name": s.warehouse_name,
                    "required": s.required,
                    "available": s.available,
                    "message": s.message,
                }
                for s in exc.shortfalls
            ]
        }
    return {}
