"""
Integration tests for the demo data loader
"""

import pytest

from skillswap.scripts.load_demo import build_user, clear_demo_data, load_demo
from skillswap.services.friendship import FriendshipService
from skillswap.services.notifications import NotificationDispatcher
from skillswap.services.relay import ConnectionRegistry
from skillswap.services.session_engine import SessionEngine

pytestmark = pytest.mark.integration


def test_build_user_skills_disjoint():
    user = build_user(0)

    assert user.student_id == "STU00001"
    assert len(user.skills_offered) == 2
    assert not set(user.skills_offered) & set(user.skills_looking_for)
    assert user.api_token


@pytest.mark.asyncio
async def test_load_demo_creates_friend_chain(reset_db):
    dispatcher = NotificationDispatcher(ConnectionRegistry())
    engine = SessionEngine(dispatcher=dispatcher)
    friendship = FriendshipService(dispatcher=dispatcher)

    users = await load_demo(user_count=3, completed_per_pair=2)

    first, second, third = users
    assert await friendship.are_friends(first.id, second.id)
    assert await friendship.are_friends(second.id, third.id)
    assert not await friendship.are_friends(first.id, third.id)
    assert await engine.get_session_count(first.id, second.id) == 2
    assert await engine.get_active_session(first.id, second.id) is None
    history = await engine.get_history(first.id, second.id)
    assert [s.session_number for s in history] == [2, 1]


@pytest.mark.asyncio
async def test_clear_demo_data(reset_db):
    users = await load_demo(user_count=2, completed_per_pair=1)
    engine = SessionEngine(dispatcher=NotificationDispatcher(ConnectionRegistry()))

    await clear_demo_data()

    assert await engine.get_session_count(users[0].id, users[1].id) == 0
