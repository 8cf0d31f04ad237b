"""
Unit tests for relay events, the notification dispatcher and domain errors
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from skillswap.schemas import SessionView, UserRef
from skillswap.services.errors import Conflict, Forbidden, LimitExceeded, NotFound
from skillswap.services.notifications import (
    NotificationDispatcher,
    SessionFeedbackNotification,
    SessionStarted,
    UserTyping,
)
from skillswap.services.relay import ConnectionRegistry
from tests.helpers import RecordingConnection


def make_session_view(**overrides):
    low, high = sorted((uuid.uuid4(), uuid.uuid4()), key=str)
    data = dict(
        id=uuid.uuid4(),
        participants=[low, high],
        chat_id=None,
        started_by=low,
        start_time=datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc),
        status="active",
        session_number=1,
        is_first_session=True,
    )
    data.update(overrides)
    return SessionView(**data)


class TestEventShape:
    """Every event travels as {"event": name, "data": payload}"""

    def test_session_started_message(self):
        view = make_session_view()
        event = SessionStarted(
            session=view,
            started_by=UserRef(id=view.started_by, name="Ada"),
            message="Ada started a skill-sharing session",
        )

        message = event.to_message()

        assert message["event"] == "sessionStarted"
        assert "event" not in message["data"]
        assert message["data"]["session"]["id"] == str(view.id)
        assert message["data"]["session"]["status"] == "active"
        assert message["data"]["started_by"]["name"] == "Ada"

    def test_notification_carries_type(self):
        sender = uuid.uuid4()
        session_id = uuid.uuid4()
        message = SessionFeedbackNotification(
            message="Please submit your feedback!",
            sender_id=sender,
            sender_name="Ada",
            session_id=session_id,
        ).to_message()

        assert message["event"] == "notification"
        assert message["data"]["type"] == "session_feedback"
        assert message["data"]["session_id"] == str(session_id)
        assert message["data"]["sender_id"] == str(sender)
        assert "timestamp" in message["data"]


class TestNotificationDispatcher:

    @pytest.mark.asyncio
    async def test_delivers_to_connected_user(self):
        registry = ConnectionRegistry()
        conn = RecordingConnection()
        user_id = uuid.uuid4()
        registry.register(str(user_id), conn)
        dispatcher = NotificationDispatcher(registry)

        delivered = await dispatcher.notify(user_id, UserTyping(sender_id=uuid.uuid4(), is_typing=True))

        assert delivered == 1
        assert conn.events("userTyping")[0]["data"]["is_typing"] is True

    @pytest.mark.asyncio
    async def test_offline_user_gets_nothing(self):
        dispatcher = NotificationDispatcher(ConnectionRegistry())
        assert await dispatcher.notify(uuid.uuid4(), UserTyping(sender_id=uuid.uuid4(), is_typing=False)) == 0

    @pytest.mark.asyncio
    async def test_relay_failure_is_swallowed(self):
        relay = MagicMock()
        relay.publish = AsyncMock(side_effect=ConnectionError("redis down"))
        dispatcher = NotificationDispatcher(relay)

        delivered = await dispatcher.notify(uuid.uuid4(), UserTyping(sender_id=uuid.uuid4(), is_typing=True))

        assert delivered == 0
        relay.publish.assert_awaited_once()


class TestDomainErrors:

    def test_status_codes(self):
        assert NotFound("x").status_code == 404
        assert Forbidden("x").status_code == 403
        assert Conflict("x").status_code == 400
        assert LimitExceeded("x").status_code == 400

    def test_to_dict(self):
        error = LimitExceeded("Maximum session limit (5) reached", details={"session_count": 5})
        assert error.to_dict() == {
            "error": {
                "code": "LIMIT_EXCEEDED",
                "message": "Maximum session limit (5) reached",
                "details": {"session_count": 5},
            }
        }

    def test_conflict_carries_session(self):
        marker = object()
        error = Conflict("Session already active", session=marker)
        assert error.session is marker
        assert str(error) == "Session already active"
