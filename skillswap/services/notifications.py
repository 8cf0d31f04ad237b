"""
Notification Dispatch

Typed relay events (one model per event kind) and a best-effort dispatcher
that pushes them to a user's room on the relay. Every event travels as
{"event": <name>, "data": {...}}.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from skillswap.models.common import utcnow
from skillswap.schemas import ChatMessageView, SessionView, UserRef
from skillswap.services.relay import get_relay

logger = logging.getLogger(__name__)


class _Event(BaseModel):
    """Base for relay events; subclasses pin `event` to a literal tag."""

    event: str

    def to_message(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "data": self.model_dump(mode="json", exclude={"event"}),
        }


# Session lifecycle events

class SessionStarted(_Event):
    event: Literal["sessionStarted"] = "sessionStarted"
    session: SessionView
    started_by: UserRef
    message: str


class SessionEnded(_Event):
    """Peer-facing termination event with the recorded duration"""
    event: Literal["sessionEnded"] = "sessionEnded"
    session: SessionView
    ended_by: UserRef
    duration: int
    message: str


class SessionEndedNotification(_Event):
    """Client-facing termination prompt offering optional feedback"""
    event: Literal["sessionEndedNotification"] = "sessionEndedNotification"
    session_id: UUID
    ended_by: UserRef
    receiver_name: str
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


# Chat events

class ReceiveMessage(_Event):
    event: Literal["receiveMessage"] = "receiveMessage"
    sender: UserRef
    message: ChatMessageView


class UserTyping(_Event):
    event: Literal["userTyping"] = "userTyping"
    sender_id: UUID
    is_typing: bool


# Notifications (event="notification", distinguished by `type`)

class _Notification(_Event):
    event: Literal["notification"] = "notification"
    type: str
    message: str
    sender_id: UUID
    sender_name: str
    timestamp: datetime = Field(default_factory=utcnow)


class MessageNotification(_Notification):
    type: Literal["message"] = "message"


class FriendRequestNotification(_Notification):
    type: Literal["friend_request"] = "friend_request"
    request_id: UUID


class FriendAcceptedNotification(_Notification):
    type: Literal["friend_accepted"] = "friend_accepted"


class FriendRemovedNotification(_Notification):
    type: Literal["friend_removed"] = "friend_removed"


class SessionRequestNotification(_Notification):
    type: Literal["session_request"] = "session_request"
    session_count: int


class SessionFeedbackNotification(_Notification):
    type: Literal["session_feedback"] = "session_feedback"
    session_id: UUID


Notification = Union[
    MessageNotification,
    FriendRequestNotification,
    FriendAcceptedNotification,
    FriendRemovedNotification,
    SessionRequestNotification,
    SessionFeedbackNotification,
]

RelayEvent = Union[
    SessionStarted,
    SessionEnded,
    SessionEndedNotification,
    ReceiveMessage,
    UserTyping,
    Notification,
]


class NotificationDispatcher:
    """
    Pushes typed events to a user's room.

    Delivery is fire-and-forget: a peer that is offline simply misses the
    event, and relay failures are logged, never raised to the caller.
    """

    def __init__(self, relay=None):
        self._relay = relay

    @property
    def relay(self):
        return self._relay if self._relay is not None else get_relay()

    async def notify(self, user_id: Union[UUID, str], event: RelayEvent) -> int:
        """
        Publish `event` to `user_id`.

        Returns:
            Number of connections reached (0 when offline or on failure)
        """
        target = str(user_id)
        try:
            delivered = await self.relay.publish(target, event.to_message())
        except Exception as e:
            logger.warning(f"Dropped {event.event} for user {target}: {e}")
            return 0

        if delivered:
            logger.debug(f"Delivered {event.event} to user {target} ({delivered} connection(s))")
        else:
            logger.debug(f"User {target} offline, {event.event} not delivered")
        return delivered


# Global dispatcher instance
_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """Get or create global NotificationDispatcher instance."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
