"""
Unit tests for pair keys and session timing helpers

Tests canonical ordering, membership and floored durations.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from skillswap.models.common import UserPair, as_utc, canonical_pair, to_uuid
from skillswap.services.errors import InvalidRequest
from skillswap.services.session_engine import elapsed_seconds, user_pair


class TestCanonicalPair:
    """Unordered pair of two distinct users"""

    def test_order_independent(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        assert canonical_pair(a, b) == canonical_pair(b, a)
        assert canonical_pair(a, b).key == canonical_pair(b, a).key

    def test_low_sorts_before_high(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        pair = canonical_pair(a, b)
        assert str(pair.low) < str(pair.high)

    def test_accepts_string_ids(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        assert canonical_pair(str(a), b) == canonical_pair(a, str(b))

    def test_same_user_rejected(self):
        a = uuid.uuid4()
        with pytest.raises(ValueError):
            canonical_pair(a, str(a))

    def test_user_pair_maps_to_invalid_request(self):
        a = uuid.uuid4()
        with pytest.raises(InvalidRequest):
            user_pair(a, a)

    def test_key_format(self):
        pair = UserPair(uuid.UUID(int=1), uuid.UUID(int=2))
        assert pair.key == f"{uuid.UUID(int=1)}:{uuid.UUID(int=2)}"


class TestPairMembership:

    def test_other(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        pair = canonical_pair(a, b)
        assert pair.other(a) == b
        assert pair.other(str(b)) == a

    def test_other_rejects_outsider(self):
        pair = canonical_pair(uuid.uuid4(), uuid.uuid4())
        with pytest.raises(ValueError):
            pair.other(uuid.uuid4())

    def test_contains(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        pair = canonical_pair(a, b)
        assert a in pair
        assert str(b) in pair
        assert uuid.uuid4() not in pair
        assert "not-a-uuid" not in pair

    def test_to_uuid_passthrough(self):
        value = uuid.uuid4()
        assert to_uuid(value) is value
        assert to_uuid(str(value)) == value


class TestElapsedSeconds:
    """Durations are whole seconds, floored, never negative"""

    start = datetime(2026, 3, 2, 14, 0, 0, tzinfo=timezone.utc)

    def test_exact(self):
        assert elapsed_seconds(self.start, self.start + timedelta(seconds=600)) == 600

    def test_floors_fractional(self):
        assert elapsed_seconds(self.start, self.start + timedelta(seconds=59, milliseconds=999)) == 59

    def test_clock_skew_clamped_to_zero(self):
        assert elapsed_seconds(self.start, self.start - timedelta(seconds=5)) == 0

    def test_naive_start_treated_as_utc(self):
        naive = self.start.replace(tzinfo=None)
        assert elapsed_seconds(naive, self.start + timedelta(seconds=90)) == 90

    def test_as_utc(self):
        assert as_utc(None) is None
        assert as_utc(self.start) is self.start
        assert as_utc(self.start.replace(tzinfo=None)).tzinfo == timezone.utc
