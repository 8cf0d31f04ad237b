"""
Friendship Service

Friend-request lifecycle (pending -> accepted/declined, accepted -> removed)
and the accepted-friendship check that gates every session operation.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.database import AsyncSessionLocal
from skillswap.models.common import UserId, to_uuid, utcnow
from skillswap.models.friend_request import FriendRequest
from skillswap.models.user import User
from skillswap.services.errors import Forbidden, InvalidRequest, NotFound
from skillswap.services.notifications import (
    FriendAcceptedNotification,
    FriendRemovedNotification,
    FriendRequestNotification,
    get_dispatcher,
)

logger = logging.getLogger(__name__)


def _between(user_a: UUID, user_b: UUID):
    return or_(
        and_(FriendRequest.sender_id == user_a, FriendRequest.receiver_id == user_b),
        and_(FriendRequest.sender_id == user_b, FriendRequest.receiver_id == user_a),
    )


async def find_request_between(db: AsyncSession, user_a: UserId, user_b: UserId) -> Optional[FriendRequest]:
    """Return the friend request row linking two users in either direction."""
    result = await db.execute(select(FriendRequest).where(_between(to_uuid(user_a), to_uuid(user_b))))
    return result.scalars().first()


async def exists_accepted_friendship(db: AsyncSession, user_a: UserId, user_b: UserId) -> bool:
    """True if an accepted request exists between the users in either direction."""
    result = await db.execute(
        select(FriendRequest.id)
        .where(_between(to_uuid(user_a), to_uuid(user_b)))
        .where(FriendRequest.status == "accepted")
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


class FriendshipService:
    """Friend request CRUD with relay notifications"""

    def __init__(self, session_factory=AsyncSessionLocal, dispatcher=None):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or get_dispatcher()

    async def are_friends(self, user_a: UserId, user_b: UserId) -> bool:
        async with self.session_factory() as session:
            return await exists_accepted_friendship(session, user_a, user_b)

    async def send_request(self, sender: User, receiver_id: UserId, message: str = "") -> FriendRequest:
        """
        Send (or re-open) a friend request.

        Raises:
            InvalidRequest: Self-request, already friends, or already pending
            NotFound: Receiver does not exist
        """
        receiver_id = to_uuid(receiver_id)
        if receiver_id == sender.id:
            raise InvalidRequest("Cannot send friend request to yourself")

        async with self.session_factory() as session:
            receiver = await session.get(User, receiver_id)
            if receiver is None or not receiver.is_active:
                raise NotFound("User not found")

            request = await find_request_between(session, sender.id, receiver_id)
            if request is not None:
                if request.status == "accepted":
                    raise InvalidRequest("Already friends with this user")
                if request.status == "pending":
                    raise InvalidRequest("Friend request already sent")
                # declined/removed rows are re-opened in the new direction
                request.sender_id = sender.id
                request.receiver_id = receiver_id
                request.status = "pending"
                request.message = message or ""
                request.created_at = utcnow()
                request.responded_at = None
            else:
                request = FriendRequest(
                    sender_id=sender.id,
                    receiver_id=receiver_id,
                    status="pending",
                    message=message or "",
                )
                session.add(request)

            await session.commit()
            await session.refresh(request)

        logger.info(f"Friend request {request.id}: {sender.id} -> {receiver_id}")
        await self.dispatcher.notify(receiver_id, FriendRequestNotification(
            message=f"{sender.name} sent you a friend request",
            sender_id=sender.id,
            sender_name=sender.name,
            request_id=request.id,
        ))
        return request

    async def respond(self, request_id: UserId, user: User, action: str) -> FriendRequest:
        """
        Accept or decline a pending request addressed to `user`.

        Raises:
            InvalidRequest: Unknown action or request already processed
            NotFound: Request does not exist
            Forbidden: `user` is not the receiver
        """
        if action not in ("accept", "decline"):
            raise InvalidRequest('Invalid action. Use "accept" or "decline"')

        async with self.session_factory() as session:
            request = await session.get(FriendRequest, to_uuid(request_id))
            if request is None:
                raise NotFound("Friend request not found")
            if request.receiver_id != user.id:
                raise Forbidden("Access denied")
            if request.status != "pending":
                raise InvalidRequest("Friend request already processed")

            request.status = "accepted" if action == "accept" else "declined"
            request.responded_at = utcnow()
            await session.commit()

        logger.info(f"Friend request {request.id} {request.status} by {user.id}")
        if request.status == "accepted":
            await self.dispatcher.notify(request.sender_id, FriendAcceptedNotification(
                message=f"{user.name} accepted your friend request",
                sender_id=user.id,
                sender_name=user.name,
            ))
        return request

    async def list_friends(self, user: User) -> List[User]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(FriendRequest).where(
                    or_(FriendRequest.sender_id == user.id, FriendRequest.receiver_id == user.id),
                    FriendRequest.status == "accepted",
                )
            )
            friend_ids = [
                r.receiver_id if r.sender_id == user.id else r.sender_id
                for r in result.scalars().all()
            ]
            if not friend_ids:
                return []
            users = await session.execute(
                select(User).where(User.id.in_(friend_ids), User.is_active.is_(True)).order_by(User.name)
            )
            return list(users.scalars().all())

    async def list_pending(self, user: User) -> List[FriendRequest]:
        """Pending requests addressed to `user`, newest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(FriendRequest)
                .where(FriendRequest.receiver_id == user.id, FriendRequest.status == "pending")
                .order_by(FriendRequest.created_at.desc())
            )
            return list(result.scalars().all())

    async def suggestions(self, user: User, limit: int = 10) -> List[User]:
        """
        Users whose offered skills cover what `user` is looking for, or who
        look for what `user` offers. Anyone already linked to `user` by a
        pending or accepted request is left out. Best reputation first.
        """
        wanted = {s.lower() for s in user.skills_looking_for or []}
        offered = {s.lower() for s in user.skills_offered or []}
        if not wanted and not offered:
            return []

        async with self.session_factory() as session:
            linked = await session.execute(
                select(FriendRequest.sender_id, FriendRequest.receiver_id).where(
                    or_(FriendRequest.sender_id == user.id, FriendRequest.receiver_id == user.id),
                    FriendRequest.status.in_(("pending", "accepted")),
                )
            )
            excluded = {user.id}
            for sender_id, receiver_id in linked.all():
                excluded.update((sender_id, receiver_id))

            candidates = await session.execute(
                select(User)
                .where(User.is_active.is_(True), User.id.not_in(excluded))
                .order_by(User.reputation.desc(), User.average_rating.desc(), User.name)
            )
            matches = []
            for candidate in candidates.scalars().all():
                their_offered = {s.lower() for s in candidate.skills_offered or []}
                their_wanted = {s.lower() for s in candidate.skills_looking_for or []}
                if wanted & their_offered or offered & their_wanted:
                    matches.append(candidate)
                    if len(matches) == limit:
                        break
            return matches

    async def remove_friend(self, user: User, friend_id: UserId) -> None:
        """
        Mark an accepted friendship as removed.

        Raises:
            NotFound: No accepted friendship between the users
        """
        friend_id = to_uuid(friend_id)
        async with self.session_factory() as session:
            result = await session.execute(
                select(FriendRequest)
                .where(_between(user.id, friend_id))
                .where(FriendRequest.status == "accepted")
            )
            request = result.scalars().first()
            if request is None:
                raise NotFound("Friendship not found")
            request.status = "removed"
            request.responded_at = utcnow()
            await session.commit()

        logger.info(f"Friendship {user.id} <-> {friend_id} removed")
        await self.dispatcher.notify(friend_id, FriendRemovedNotification(
            message=f"{user.name} removed you from their friends",
            sender_id=user.id,
            sender_name=user.name,
        ))


# Global service instance
_service: Optional[FriendshipService] = None


def get_friendship_service() -> FriendshipService:
    """Get or create global FriendshipService instance."""
    global _service
    if _service is None:
        _service = FriendshipService()
    return _service
