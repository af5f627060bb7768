"""
qm_services.notifications -- Best-effort change broadcast.

Responsibility:
    Tell other open sessions that stock was executed so they re-fetch.
    Messages are cache-invalidation hints only: consumers must re-read
    authoritative state and must tolerate never receiving them.

Architecture position:
    Services layer.  The operation facade publishes after a successful
    commit; nothing inside a transaction publishes.

Invariants:
    - Publishing never fails the operation.  Broadcaster errors are logged
      and swallowed by ``publish_best_effort``.
    - No retry, no delivery guarantee.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol

from qm_kernel.logging_config import get_logger

logger = get_logger("services.notifications")

APPROVAL_EXECUTED = "APPROVAL_EXECUTED"

Message = dict[str, Any]


class Broadcaster(Protocol):
    """Cross-session fire-and-forget channel."""

    def publish(self, channel: str, message: Message) -> None: ...


class NullBroadcaster:
    """Drops every message.  Used when broadcasting is disabled."""

    def publish(self, channel: str, message: Message) -> None:
        return None


class InMemoryBroadcaster:
    """
    Process-local broadcaster.

    Keeps every published message and calls channel subscribers
    synchronously.  Suitable for a single process and for tests.
    """

    def __init__(self) -> None:
        self.published: list[tuple[str, Message]] = []
        self._subscribers: dict[str, list[Callable[[Message], None]]] = defaultdict(list)

    def subscribe(self, channel: str, callback: Callable[[Message], None]) -> None:
        self._subscribers[channel].append(callback)

    def publish(self, channel: str, message: Message) -> None:
        self.published.append((channel, dict(message)))
        for callback in list(self._subscribers.get(channel, ())):
            callback(dict(message))

    def messages(self, channel: str) -> list[Message]:
        return [m for c, m in self.published if c == channel]


def publish_best_effort(broadcaster: Broadcaster, channel: str, message: Message) -> bool:
    """
    Publish and report whether it worked.  Never raises.
    """
    try:
        broadcaster.publish(channel, message)
    except Exception:
        logger.warning(
            "broadcast_failed",
            extra={"channel": channel, "message_type": message.get("type")},
            exc_info=True,
        )
        return False
    return True
