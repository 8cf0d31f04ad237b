"""Test doubles shared by unit and integration tests"""
from datetime import datetime, timedelta, timezone


class FakeClock:
    """Deterministic clock for session timing"""

    def __init__(self, start: datetime = datetime(2026, 3, 2, 14, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingConnection:
    """Stands in for a WebSocket: records every frame sent to it"""

    def __init__(self):
        self.frames = []

    async def send_json(self, data):
        self.frames.append(data)

    def events(self, name=None):
        return [f for f in self.frames if name is None or f["event"] == name]

    def notifications(self, kind):
        return [f for f in self.events("notification") if f["data"]["type"] == kind]


class BrokenConnection:
    async def send_json(self, data):
        raise RuntimeError("socket closed")


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {user.api_token}"}
