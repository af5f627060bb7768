"""
qm_services.authorization -- Elevated-role check for PO lifecycle actions.

Responsibility:
    Decide whether an actor may cancel or unlock a purchase order.  The
    actor's role comes from the external authentication collaborator; this
    module only compares it against the configured elevated roles.

Architecture position:
    Services layer.  Called by POLifecycleManager before any state is read
    or written.

Invariants:
    - Pure check: no session, no global role lookup.
    - An actor without a role is never elevated.
"""

from __future__ import annotations

from collections.abc import Iterable

from qm_kernel.domain.actor import Actor
from qm_kernel.exceptions import AuthorizationError
from qm_kernel.logging_config import get_logger

logger = get_logger("services.authorization")

DEFAULT_ELEVATED_ROLES: frozenset[str] = frozenset({"admin"})


def check_elevated(
    actor: Actor,
    elevated_roles: Iterable[str] = DEFAULT_ELEVATED_ROLES,
) -> tuple[bool, str]:
    """Check whether the actor holds an elevated role.

    Returns:
        (allowed, reason). reason is empty when allowed.
    """
    roles = frozenset(elevated_roles)
    if not actor.role or not actor.role.strip():
        return (False, "actor has no role")
    if actor.role not in roles:
        return (False, f"role '{actor.role}' is not elevated")
    return (True, "")


def require_elevated(
    actor: Actor,
    action: str,
    elevated_roles: Iterable[str] = DEFAULT_ELEVATED_ROLES,
) -> None:
    """
    Raise AuthorizationError unless the actor holds an elevated role.

    Args:
        actor: The caller.
        action: Human phrase for the message, e.g. "cancel Purchase Orders".
        elevated_roles: Roles allowed to perform the action.
    """
    allowed, reason = check_elevated(actor, elevated_roles)
    if allowed:
        return

    logger.warning(
        "authorization_denied",
        extra={
            "actor_id": str(actor.actor_id),
            "role": actor.role,
            "action": action,
            "reason": reason,
        },
    )
    raise AuthorizationError(
        actor_id=str(actor.actor_id),
        role=actor.role,
        message=f"Only administrators can {action}",
    )
