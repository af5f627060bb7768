"""
BaseService -- abstract base for all kernel and domain services.

Responsibility:
    Common constructor and session contract.  A service receives the
    caller's SQLAlchemy ``Session`` and persists with ``session.flush()``;
    it never commits or rolls back.

Architecture position:
    Kernel > Services.  Extended by AuditTrail and by every write-capable
    service in ``qm_services``.

Invariants enforced:
    Transaction boundaries belong to the caller.  The operation facade
    (``qm_services.operations``) commits on success and rolls back on any
    failure, so a lifecycle change and its audit entry land together or
    not at all.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Read-only queries belong in ``qm_kernel.selectors``.
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name
