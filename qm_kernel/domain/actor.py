"""
Actor -- The authenticated caller of a lifecycle operation.

The actor is always passed explicitly into every operation. There is no
ambient session or global role lookup inside the core, so authorization
checks stay testable without a live login.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Actor:
    """
    Identity and role of whoever invokes an operation.

    Contract:
        ``role`` is supplied by the external authentication collaborator and
        is trusted as-is; ``display_name`` is only used for audit readability.
    """

    actor_id: UUID
    role: str
    display_name: str | None = None
