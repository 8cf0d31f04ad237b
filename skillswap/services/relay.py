"""
Real-Time Relay

Room-per-user publish/subscribe used to push server events to connected
clients. ConnectionRegistry delivers to live WebSocket connections held by
this process; RedisRelay fans events out over Redis pub/sub so every API
process can reach every connected user.
"""
import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from skillswap import config

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    In-process mapping of user id -> live connections.

    A connection is any object exposing `async send_json(data)` (Starlette
    WebSocket in production). A user may hold several connections (tabs).
    """

    def __init__(self):
        self._rooms: Dict[str, Set[Any]] = defaultdict(set)
        self._owners: Dict[int, str] = {}

    def register(self, user_id: str, connection: Any) -> None:
        user_id = str(user_id)
        previous = self._owners.get(id(connection))
        if previous is not None and previous != user_id:
            self.unregister(connection)
        self._rooms[user_id].add(connection)
        self._owners[id(connection)] = user_id
        logger.info(f"User {user_id} joined their room ({len(self._rooms[user_id])} connection(s))")

    def unregister(self, connection: Any) -> Optional[str]:
        """Remove a connection; returns the user it belonged to, if any."""
        user_id = self._owners.pop(id(connection), None)
        if user_id is None:
            return None
        room = self._rooms.get(user_id)
        if room is not None:
            room.discard(connection)
            if not room:
                del self._rooms[user_id]
        logger.info(f"User {user_id} left their room")
        return user_id

    def is_connected(self, user_id: str) -> bool:
        return bool(self._rooms.get(str(user_id)))

    def connected_users(self) -> List[str]:
        return list(self._rooms)

    async def publish(self, user_id: str, message: Dict[str, Any]) -> int:
        """Send `message` to every connection of `user_id`; returns deliveries."""
        delivered = 0
        for connection in list(self._rooms.get(str(user_id), ())):
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Send to user {user_id} failed, dropping connection: {e}")
                self.unregister(connection)
        return delivered


class RedisRelay:
    """
    Relay backed by Redis pub/sub.

    publish() writes to channel <prefix><user_id>; a background listener
    pattern-subscribes to <prefix>* and forwards each message to the local
    registry, so connections only ever live in the registry of the process
    that accepted them.
    """

    def __init__(self, redis, registry: Optional[ConnectionRegistry] = None,
                 channel_prefix: str = config.RELAY_CHANNEL_PREFIX):
        self.redis = redis
        self.registry = registry or ConnectionRegistry()
        self.channel_prefix = channel_prefix
        self._listener: Optional[asyncio.Task] = None

    def register(self, user_id: str, connection: Any) -> None:
        self.registry.register(user_id, connection)

    def unregister(self, connection: Any) -> Optional[str]:
        return self.registry.unregister(connection)

    def is_connected(self, user_id: str) -> bool:
        return self.registry.is_connected(user_id)

    def channel_for(self, user_id: str) -> str:
        return f"{self.channel_prefix}{user_id}"

    async def publish(self, user_id: str, message: Dict[str, Any]) -> int:
        """Publish to the user's channel; returns the number of subscribed processes."""
        return await self.redis.publish(self.channel_for(user_id), json.dumps(message))

    async def handle_message(self, raw: Dict[str, Any]) -> int:
        """Forward one pub/sub message into the local registry."""
        if raw.get("type") not in ("message", "pmessage"):
            return 0
        channel = raw.get("channel")
        if isinstance(channel, bytes):
            channel = channel.decode("utf-8")
        if not channel or not channel.startswith(self.channel_prefix):
            return 0
        user_id = channel[len(self.channel_prefix):]
        try:
            payload = json.loads(raw["data"])
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed relay payload on {channel}: {e}")
            return 0
        return await self.registry.publish(user_id, payload)

    async def listen(self) -> None:
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(f"{self.channel_prefix}*")
        logger.info(f"Relay listener subscribed to {self.channel_prefix}*")
        try:
            async for raw in pubsub.listen():
                await self.handle_message(raw)
        finally:
            await pubsub.punsubscribe()
            await pubsub.aclose()

    def start(self) -> None:
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self.listen())

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
            logger.info("Relay listener stopped")


# Global relay instance
_relay = None


def get_relay():
    """Get or create the process-wide relay (in-memory registry by default)."""
    global _relay
    if _relay is None:
        _relay = ConnectionRegistry()
    return _relay


def set_relay(relay) -> None:
    """Swap the process-wide relay (used at startup for the Redis backend)."""
    global _relay
    _relay = relay
