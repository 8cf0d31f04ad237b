"""Shared column helpers: UTC clock and canonical user-pair keys"""
import uuid
from datetime import datetime, timezone
from typing import NamedTuple, Optional, Union

UserId = Union[uuid.UUID, str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_uuid(value: UserId) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class UserPair(NamedTuple):
    """Unordered pair of user ids in canonical (sorted) order."""

    low: uuid.UUID
    high: uuid.UUID

    @property
    def key(self) -> str:
        return f"{self.low}:{self.high}"

    def other(self, user_id: UserId) -> uuid.UUID:
        user_id = to_uuid(user_id)
        if user_id == self.low:
            return self.high
        if user_id == self.high:
            return self.low
        raise ValueError(f"{user_id} is not part of pair {self.key}")

    def __contains__(self, user_id) -> bool:
        try:
            return to_uuid(user_id) in (self.low, self.high)
        except (TypeError, ValueError):
            return False


def canonical_pair(user_a: UserId, user_b: UserId) -> UserPair:
    """
    Build the canonical key for two distinct users.

    Raises:
        ValueError: If both ids are the same user
    """
    a, b = to_uuid(user_a), to_uuid(user_b)
    if a == b:
        raise ValueError("A pair needs two distinct users")
    low, high = sorted((a, b), key=str)
    return UserPair(low, high)
