"""
Typed Exception Hierarchy for the Quartermaster Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure of a lifecycle or execution operation is rendered to the
actor with its specific reason, and the operation boundary converts it into
a ``{"success": False, "error": ...}`` result. Callers (and tests) must be
able to tell failures apart without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (po_id, shortfall list, ...)

The exception MESSAGE is the user-visible reason. It is the string placed in
the ``error`` field of a failed OperationResult.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from QuartermasterError:

    QuartermasterError (base)
    |
    +-- AuthorizationError
    |
    +-- PreconditionError
    |   +-- AlreadyCancelledError
    |   +-- CannotCancelClosedError
    |   +-- MissingCancellationReasonError
    |   +-- NotClosedError
    |   +-- CannotEditClosedError
    |   +-- CannotEditCancelledError
    |   +-- ImmutableFieldError
    |   +-- InvalidFieldValueError
    |
    +-- EntityNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- QMHQNotFoundError
    |   +-- StockOutRequestNotFoundError
    |
    +-- ExecutionError
    |   +-- NothingToExecuteError
    |   +-- StockShortfallError
    |
    +-- ConcurrencyError
    |   +-- ExecutionConflictError
    |
    +-- PersistenceError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Authorization   | NOT_AUTHORIZED              | Actor lacks the elevated role
----------------|-----------------------------|-----------------------------------------
Precondition    | PO_ALREADY_CANCELLED        | Cancel on a cancelled PO
                | PO_CANNOT_CANCEL_CLOSED     | Cancel on a closed PO (unlock first)
                | CANCELLATION_REASON_REQUIRED| Cancel without a reason
                | PO_NOT_CLOSED               | Unlock on a PO that is not closed
                | PO_CANNOT_EDIT_CLOSED       | Header edit on a closed PO
                | PO_CANNOT_EDIT_CANCELLED    | Header edit on a cancelled PO
                | PO_FIELD_IMMUTABLE          | Edit of quantities/totals/currency
                | PO_FIELD_INVALID            | Editable field with an unparseable value
----------------|-----------------------------|-----------------------------------------
Not found       | PO_NOT_FOUND                | Unknown purchase order id
                | QMHQ_NOT_FOUND              | Unknown QMHQ line id
                | STOCK_OUT_REQUEST_NOT_FOUND | Unknown stock-out request id
----------------|-----------------------------|-----------------------------------------
Execution       | NOTHING_TO_EXECUTE          | No pending transactions (benign)
                | STOCK_SHORTFALL             | One or more (item, warehouse) short
----------------|-----------------------------|-----------------------------------------
Concurrency     | EXECUTION_CONFLICT          | Pending set changed under the executor
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_ERROR           | Store write failed (safe to retry)
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying an audit entry or a
                |                             | completed inventory transaction
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Invalid or unreadable configuration

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY code CLASS ATTRIBUTE (not instance)?
   Codes are static per exception type, so ``StockShortfallError.code`` is
   available without instantiation and in result payloads.

2. WHY IS NothingToExecuteError AN ExecutionError?
   It fails the operation (nothing was done) but is benign. The operation
   boundary logs it at INFO rather than WARNING.

3. WHY ExecutionConflictError?
   Two executors may validate the same pending set. The completion UPDATE is
   gated on ``status = 'pending'``; when it affects fewer rows than were
   selected, the loser raises this and its transaction is rolled back, so
   neither caller ever observes a partial execution.

===============================================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qm_kernel.domain.values import StockShortfall


class QuartermasterError(Exception):
    """
    Base exception for all quartermaster kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "QUARTERMASTER_ERROR"


# Authorization


class AuthorizationError(QuartermasterError):
    """Actor lacks the role required for an operation."""

    code: str = "NOT_AUTHORIZED"

    def __init__(self, actor_id: str, role: str | None, message: str):
        self.actor_id = actor_id
        self.role = role
        super().__init__(message)


# Preconditions


class PreconditionError(QuartermasterError):
    """Base exception for state preconditions. Not retryable as-is."""

    code: str = "PRECONDITION_FAILED"


class AlreadyCancelledError(PreconditionError):
    """PO is already cancelled."""

    code: str = "PO_ALREADY_CANCELLED"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__("PO is already cancelled")


class CannotCancelClosedError(PreconditionError):
    """Closed POs must be unlocked before they can be cancelled."""

    code: str = "PO_CANNOT_CANCEL_CLOSED"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__("Cannot cancel a closed PO. Unlock it first.")


class MissingCancellationReasonError(PreconditionError):
    """Cancellation requires a non-empty reason."""

    code: str = "CANCELLATION_REASON_REQUIRED"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__("A cancellation reason is required")


class NotClosedError(PreconditionError):
    """Only closed POs can be unlocked."""

    code: str = "PO_NOT_CLOSED"

    def __init__(self, po_id: str, status: str):
        self.po_id = po_id
        self.status = status
        super().__init__(
            f"Only closed POs can be unlocked (current status: {status})"
        )


class CannotEditClosedError(PreconditionError):
    """Closed POs are locked for editing."""

    code: str = "PO_CANNOT_EDIT_CLOSED"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__("Cannot edit a closed PO. Unlock it first.")


class CannotEditCancelledError(PreconditionError):
    """Cancelled POs are never editable."""

    code: str = "PO_CANNOT_EDIT_CANCELLED"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__("Cannot edit a cancelled PO")


class ImmutableFieldError(PreconditionError):
    """An edit touched a field outside the mutable PO header."""

    code: str = "PO_FIELD_IMMUTABLE"

    def __init__(self, po_id: str, fields: list[str]):
        self.po_id = po_id
        self.fields = sorted(fields)
        super().__init__(
            f"Fields cannot be edited on a PO: {', '.join(self.fields)}"
        )


class InvalidFieldValueError(PreconditionError):
    """An editable PO field was given a value of the wrong shape."""

    code: str = "PO_FIELD_INVALID"

    def __init__(self, po_id: str, field: str, value: object, expected: str):
        self.po_id = po_id
        self.field = field
        self.value = value
        self.expected = expected
        super().__init__(f"Invalid value for {field}: expected {expected}")


# Not found


class EntityNotFoundError(QuartermasterError):
    """Base exception for missing entities."""

    code: str = "ENTITY_NOT_FOUND"


class PurchaseOrderNotFoundError(EntityNotFoundError):
    """Purchase order with given ID was not found."""

    code: str = "PO_NOT_FOUND"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Purchase order not found: {po_id}")


class QMHQNotFoundError(EntityNotFoundError):
    """QMHQ line with given ID was not found."""

    code: str = "QMHQ_NOT_FOUND"

    def __init__(self, qmhq_id: str):
        self.qmhq_id = qmhq_id
        super().__init__(f"QMHQ line not found: {qmhq_id}")


class StockOutRequestNotFoundError(EntityNotFoundError):
    """Stock-out request with given ID was not found."""

    code: str = "STOCK_OUT_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Stock-out request not found: {request_id}")


# Execution


class ExecutionError(QuartermasterError):
    """Base exception for stock-out execution failures."""

    code: str = "EXECUTION_ERROR"


class NothingToExecuteError(ExecutionError):
    """
    No pending inventory transactions are linked to the request.

    Benign: usually the request was already executed.
    """

    code: str = "NOTHING_TO_EXECUTE"

    def __init__(self, request_id: str, reason: str | None = None):
        self.request_id = request_id
        super().__init__(
            reason
            or "No pending transactions found. All may have already been executed."
        )


class StockShortfallError(ExecutionError):
    """
    One or more (item, warehouse) groups lack stock.

    Carries every shortfall found, never just the first, so the actor can
    resolve them all before retrying.
    """

    code: str = "STOCK_SHORTFALL"

    def __init__(self, request_id: str, shortfalls: list[StockShortfall]):
        self.request_id = request_id
        self.shortfalls = list(shortfalls)
        super().__init__(
            "Insufficient stock:\n"
            + "\n".join(s.message for s in self.shortfalls)
        )


# Concurrency


class ConcurrencyError(QuartermasterError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ExecutionConflictError(ConcurrencyError):
    """Another executor completed part of the pending set first."""

    code: str = "EXECUTION_CONFLICT"

    def __init__(self, request_id: str, expected: int, affected: int):
        self.request_id = request_id
        self.expected = expected
        self.affected = affected
        super().__init__(
            "Stock-out request was executed concurrently by another session; "
            "no transactions were executed by this call"
        )


# Persistence


class PersistenceError(QuartermasterError):
    """Underlying store operation failed. No partial state was written."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Could not complete {operation}: {detail}")


# Immutability


class ImmutabilityError(QuartermasterError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Audit log entries are immutable from creation; inventory transactions
    are immutable once completed.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration


class ConfigurationError(QuartermasterError):
    """Configuration file is missing, unreadable, or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message)
