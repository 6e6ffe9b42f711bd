"""Outbound domain events and their dispatcher.

Services append events to a caller-supplied list only after their
transaction commits. Routers hand that list to ``EventDispatcher.dispatch``
as a background task, so a failing notifier can never undo or fail the core
operation that produced the event.
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from radr.services.notifier import LogNotifier, Notifier

logger = logging.getLogger(__name__)

NAVIGATE_TO = "/radr_messages"


@dataclass(frozen=True)
class MemberInvited:
    group_id: str
    group_name: str
    inviter_name: str
    recipient_id: str


@dataclass(frozen=True)
class MemberArrived:
    group_id: str
    group_name: str
    member_name: str
    recipient_ids: tuple[str, ...]


@dataclass(frozen=True)
class MessagePosted:
    group_id: str
    group_name: str
    sender_name: str
    recipient_ids: tuple[str, ...]


DomainEvent = Union[MemberInvited, MemberArrived, MessagePosted]


def _pushes(event: DomainEvent) -> list[tuple[str, str, str, dict[str, Any]]]:
    """Expand one event into ``(user_id, title, body, data)`` pushes."""
    if isinstance(event, MemberInvited):
        data = {"type": "group_invite", "group_id": event.group_id, "navigate_to": NAVIGATE_TO}
        body = f"{event.inviter_name} invited you to {event.group_name}"
        return [(event.recipient_id, "New Radr Group Invite", body, data)]

    if isinstance(event, MemberArrived):
        data = {"type": "arrival", "group_id": event.group_id, "navigate_to": NAVIGATE_TO}
        body = f"{event.member_name} has arrived!"
        return [(uid, event.group_name, body, data) for uid in event.recipient_ids]

    if isinstance(event, MessagePosted):
        # Only the fact of a message leaks into the push; content stays encrypted
        data = {"type": "message", "group_id": event.group_id, "navigate_to": NAVIGATE_TO}
        body = f"{event.sender_name}: New message"
        return [(uid, event.group_name, body, data) for uid in event.recipient_ids]

    raise TypeError(f"Unknown domain event: {event!r}")


class EventDispatcher:
    """Fans domain events out to the notifier, best effort."""

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier or LogNotifier()

    def dispatch(self, events: Iterable[DomainEvent]) -> int:
        """Send every push for ``events``; returns how many were delivered."""
        delivered = 0
        for event in events:
            for user_id, title, body, data in _pushes(event):
                try:
                    self.notifier.notify(user_id, title, body, data)
                    delivered += 1
                except Exception:
                    logger.warning("Notification to user %s failed for %s", user_id, type(event).__name__, exc_info=True)
        return delivered
