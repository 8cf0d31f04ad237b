"""
Shared test fixtures

Points the application at a throwaway SQLite database (via aiosqlite) before
any skillswap module is imported, and provides user and friendship factories.
"""
import os
import secrets
import tempfile
from pathlib import Path

_TEST_DB_DIR = tempfile.mkdtemp(prefix="skillswap-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_TEST_DB_DIR) / 'test.db'}"
os.environ["RELAY_BACKEND"] = "memory"
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest

from skillswap.database import AsyncSessionLocal, drop_models, init_models
from skillswap.models.friend_request import FriendRequest
from skillswap.models.user import User
from tests.helpers import FakeClock


@pytest.fixture
async def reset_db():
    """Fresh schema for every test"""
    await drop_models()
    await init_models()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_user(reset_db):
    counter = {"n": 0}

    async def _make_user(
        name: str = None,
        is_active: bool = True,
        offers: list = None,
        wants: list = None,
        reputation: int = 0,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        async with AsyncSessionLocal() as session:
            user = User(
                name=name or f"Student {n}",
                student_id=f"TEST{n:04d}",
                email=f"student{n}@test.edu",
                api_token=secrets.token_hex(16),
                skills_offered=["Python"] if offers is None else offers,
                skills_looking_for=["Guitar"] if wants is None else wants,
                reputation=reputation,
                is_active=is_active,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


@pytest.fixture
def befriend(reset_db):
    async def _befriend(user_a: User, user_b: User, status: str = "accepted") -> FriendRequest:
        async with AsyncSessionLocal() as session:
            request = FriendRequest(sender_id=user_a.id, receiver_id=user_b.id, status=status)
            session.add(request)
            await session.commit()
            await session.refresh(request)
            return request

    return _befriend
