"""
Chat Service

One thread per user pair; messages are persisted and pushed to the receiver
through the relay together with a "message" notification.
"""
import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.database import AsyncSessionLocal
from skillswap.models.chat import Chat, ChatMessage
from skillswap.models.common import UserId, canonical_pair, to_uuid, utcnow
from skillswap.models.user import User
from skillswap.schemas import ChatMessageView, UserRef
from skillswap.services.errors import Forbidden, InvalidRequest, NotFound
from skillswap.services.notifications import (
    MessageNotification,
    ReceiveMessage,
    UserTyping,
    get_dispatcher,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000


async def get_or_create_chat(session: AsyncSession, user_a: UserId, user_b: UserId) -> Chat:
    """Return the pair's chat thread, creating it on first use."""
    pair = canonical_pair(user_a, user_b)
    result = await session.execute(select(Chat).where(Chat.pair_key == pair.key))
    chat = result.scalar_one_or_none()
    if chat is None:
        chat = Chat(pair_key=pair.key, user_low=pair.low, user_high=pair.high, messages=[])
        session.add(chat)
        await session.flush()
    return chat


class ChatService:
    """Chat thread access and message delivery"""

    def __init__(self, session_factory=AsyncSessionLocal, dispatcher=None):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or get_dispatcher()

    async def get_chat(self, user: User, friend_id: UserId) -> Chat:
        friend_id = to_uuid(friend_id)
        if friend_id == user.id:
            raise InvalidRequest("Cannot open a chat with yourself")
        async with self.session_factory() as session:
            if await session.get(User, friend_id) is None:
                raise NotFound("User not found")
            chat = await get_or_create_chat(session, user.id, friend_id)
            await session.commit()
            return chat

    async def list_conversations(self, user: User) -> List[Chat]:
        """Chats the user takes part in, most recent activity first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Chat)
                .where((Chat.user_low == user.id) | (Chat.user_high == user.id))
                .where(Chat.is_active.is_(True))
                .order_by(Chat.last_message_at.desc().nulls_last())
            )
            return list(result.scalars().all())

    async def send_message(self, sender: User, receiver_id: UserId, content: str) -> ChatMessage:
        """
        Persist a message and push it to the receiver.

        Raises:
            InvalidRequest: Empty or oversized content, or messaging yourself
            NotFound: Receiver does not exist
        """
        receiver_id = to_uuid(receiver_id)
        content = (content or "").strip()
        if not content:
            raise InvalidRequest("Message content is required")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise InvalidRequest(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")
        if receiver_id == sender.id:
            raise InvalidRequest("Cannot send a message to yourself")

        async with self.session_factory() as session:
            if await session.get(User, receiver_id) is None:
                raise NotFound("User not found")
            chat = await get_or_create_chat(session, sender.id, receiver_id)
            message = ChatMessage(chat_id=chat.id, sender_id=sender.id, content=content)
            session.add(message)
            chat.last_message_at = utcnow()
            chat.is_active = True
            await session.commit()
            await session.refresh(message)

        logger.info(f"Message {message.id} from {sender.id} to {receiver_id}")
        sender_ref = UserRef(id=sender.id, name=sender.name)
        await self.dispatcher.notify(receiver_id, ReceiveMessage(
            sender=sender_ref,
            message=ChatMessageView.model_validate(message),
        ))
        await self.dispatcher.notify(receiver_id, MessageNotification(
            message=f"New message from {sender.name}",
            sender_id=sender.id,
            sender_name=sender.name,
        ))
        return message

    async def mark_read(self, chat_id: UserId, user: User) -> int:
        """
        Mark the other participant's messages as read.

        Returns:
            Number of messages updated
        """
        async with self.session_factory() as session:
            chat = await session.get(Chat, to_uuid(chat_id))
            if chat is None:
                raise NotFound("Chat not found")
            if user.id not in (chat.user_low, chat.user_high):
                raise Forbidden("Access denied")
            result = await session.execute(
                update(ChatMessage)
                .where(ChatMessage.chat_id == chat.id)
                .where(ChatMessage.sender_id != user.id)
                .where(ChatMessage.is_read.is_(False))
                .values(is_read=True)
            )
            await session.commit()
            return result.rowcount or 0

    async def deactivate_chat(self, chat_id: UserId, user: User) -> None:
        """
        Hide a chat from both participants' conversation lists. Messages are
        kept; the next message sent in the thread makes it visible again.

        Raises:
            NotFound: Unknown chat
            Forbidden: `user` is not a participant
        """
        async with self.session_factory() as session:
            chat = await session.get(Chat, to_uuid(chat_id))
            if chat is None:
                raise NotFound("Chat not found")
            if user.id not in (chat.user_low, chat.user_high):
                raise Forbidden("Access denied")
            chat.is_active = False
            await session.commit()

        logger.info(f"Chat {chat.id} deactivated by {user.id}")

    async def relay_typing(self, sender: User, receiver_id: UserId, is_typing: bool) -> int:
        """
        Forward a typing indicator to the receiver.

        Raises:
            ValueError: receiver_id is missing or not a user id
        """
        receiver_id = to_uuid(receiver_id)
        return await self.dispatcher.notify(
            receiver_id, UserTyping(sender_id=sender.id, is_typing=bool(is_typing))
        )


# Global service instance
_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get or create global ChatService instance."""
    global _service
    if _service is None:
        _service = ChatService()
    return _service
