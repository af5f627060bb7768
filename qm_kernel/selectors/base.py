"""
Module: qm_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain DTOs.  MUST NOT import from services/ or outer packages.

Invariants enforced:
    - Read-only: selectors never add, delete, flush, or commit.
    - Selectors return frozen DTOs or scalars, not ORM instances.
    - Stock figures are always aggregated from the transaction ledger at
      query time.  There is no stored running balance to read.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Accepts a Session from the caller, performs read-only queries, and
        returns DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session
