"""
Results -- Discriminated success/failure envelope for inbound operations.

Responsibility:
    Every inbound operation (cancel/unlock/update PO, execute stock-out)
    returns an OperationResult rather than raising, so a caller can render
    the outcome without exception-based control flow.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - A success result carries ``data`` and no ``error``.
    - A failure result carries a non-empty ``error`` and no ``data``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of one inbound operation.

    Contract:
        Built only through ``ok()`` / ``fail()``. ``to_dict()`` produces the
        wire shape ``{"success": True, "data": ...}`` or
        ``{"success": False, "error": "..."}``.

    Guarantees:
        - ``error`` is the specific, user-visible reason (for a stock
          shortfall, every short item/warehouse pair).
        - ``code`` is the machine-readable error code of the failure.
        - ``details`` carries structured failure data, e.g. the shortfall
          entries, for callers that want more than the message.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T) -> OperationResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> OperationResult[T]:
        if not error:
            raise ValueError("A failed result requires an error message")
        return cls(success=False, error=error, code=code, details=details or {})

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}
