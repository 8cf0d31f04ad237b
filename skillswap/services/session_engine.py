"""
Session Lifecycle Engine

Owns timed skill-sharing sessions between two friends:
- start: friendship gate, single active session per pair, pair cap
- end: duration stamping, active -> completed, peer notifications
- feedback linkage: at most one feedback reference per participant
- new-session requests (notification only) and completed-session history

Every operation runs in its own database session and commits once. Relay
pushes happen after the commit and never affect the operation's outcome.
"""
import logging
import math
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap import config
from skillswap.database import AsyncSessionLocal
from skillswap.models.common import UserId, UserPair, as_utc, canonical_pair, to_uuid, utcnow
from skillswap.models.feedback import Feedback
from skillswap.models.session import SessionFeedback, SkillSession
from skillswap.models.user import User
from skillswap.schemas import SessionView, UserRef
from skillswap.services.chat_service import get_or_create_chat
from skillswap.services.errors import Conflict, Forbidden, InvalidRequest, LimitExceeded, NotFound
from skillswap.services.friendship import exists_accepted_friendship
from skillswap.services.notifications import (
    SessionEnded,
    SessionEndedNotification,
    SessionFeedbackNotification,
    SessionRequestNotification,
    SessionStarted,
    get_dispatcher,
)

logger = logging.getLogger(__name__)


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds between two instants, floored and never negative."""
    return max(0, math.floor((as_utc(end) - as_utc(start)).total_seconds()))


def user_pair(user_a: UserId, user_b: UserId) -> UserPair:
    try:
        return canonical_pair(user_a, user_b)
    except ValueError as e:
        raise InvalidRequest(str(e))


class SessionEngine:
    """Coordinates the session/feedback protocol for friend pairs"""

    def __init__(
        self,
        session_factory=AsyncSessionLocal,
        dispatcher=None,
        clock: Callable[[], datetime] = utcnow,
        max_sessions: int = config.MAX_SESSIONS_PER_PAIR,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or get_dispatcher()
        self.clock = clock
        self.max_sessions = max_sessions

    # Queries

    async def _count_completed(self, db: AsyncSession, pair: UserPair) -> int:
        result = await db.execute(
            select(func.count(SkillSession.id))
            .where(SkillSession.pair_key == pair.key)
            .where(SkillSession.status == "completed")
        )
        return int(result.scalar_one())

    async def _find_active(self, db: AsyncSession, pair: UserPair) -> Optional[SkillSession]:
        result = await db.execute(
            select(SkillSession)
            .where(SkillSession.pair_key == pair.key)
            .where(SkillSession.status == "active")
        )
        return result.scalars().first()

    async def _load_for_update(self, db: AsyncSession, session_id: UserId) -> SkillSession:
        result = await db.execute(
            select(SkillSession)
            .where(SkillSession.id == to_uuid(session_id))
            .with_for_update()
        )
        session_obj = result.scalars().first()
        if session_obj is None:
            raise NotFound("Session not found")
        return session_obj

    async def _get_user(self, db: AsyncSession, user_id: UserId) -> User:
        user = await db.get(User, to_uuid(user_id))
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_session_count(self, user_a: UserId, user_b: UserId) -> int:
        """Number of completed sessions between two users."""
        async with self.session_factory() as db:
            return await self._count_completed(db, user_pair(user_a, user_b))

    async def can_start_session(self, user_a: UserId, user_b: UserId) -> bool:
        return await self.get_session_count(user_a, user_b) < self.max_sessions

    async def get_active_session(self, user_a: UserId, user_b: UserId) -> Optional[SkillSession]:
        async with self.session_factory() as db:
            return await self._find_active(db, user_pair(user_a, user_b))

    async def get_session(self, session_id: UserId) -> SkillSession:
        async with self.session_factory() as db:
            session_obj = await db.get(SkillSession, to_uuid(session_id))
            if session_obj is None:
                raise NotFound("Session not found")
            return session_obj

    async def get_history(self, user_a: UserId, user_b: UserId) -> List[SkillSession]:
        """Completed sessions for the pair, newest first."""
        pair = user_pair(user_a, user_b)
        async with self.session_factory() as db:
            result = await db.execute(
                select(SkillSession)
                .where(SkillSession.pair_key == pair.key)
                .where(SkillSession.status == "completed")
                .order_by(SkillSession.start_time.desc(), SkillSession.session_number.desc())
            )
            return list(result.scalars().all())

    # Transitions

    async def start_session(
        self,
        requester_id: UserId,
        peer_id: UserId,
        chat_id: Optional[UserId] = None,
    ) -> SkillSession:
        """
        Start a session between requester and peer.

        Preconditions are checked in order and the first failure wins.

        Raises:
            Forbidden: The users are not friends
            Conflict: The pair already has an active session (carried on the error)
            LimitExceeded: The pair reached the completed-session cap
        """
        requester_id, peer_id = to_uuid(requester_id), to_uuid(peer_id)

        async with self.session_factory() as db:
            if requester_id == peer_id or not await exists_accepted_friendship(db, requester_id, peer_id):
                raise Forbidden("Not friends with this user")
            pair = canonical_pair(requester_id, peer_id)

            existing = await self._find_active(db, pair)
            if existing is not None:
                raise self._active_conflict(existing)

            completed = await self._count_completed(db, pair)
            if completed >= self.max_sessions:
                raise LimitExceeded(
                    f"Maximum session limit ({self.max_sessions}) reached with this user",
                    details={"session_count": completed, "max_sessions": self.max_sessions},
                )

            requester = await self._get_user(db, requester_id)
            requester_ref = UserRef(id=requester.id, name=requester.name)

            session_number = completed + 1
            try:
                # the pair chat and the session row commit together
                if chat_id is None:
                    chat_id = (await get_or_create_chat(db, requester_id, peer_id)).id
                session_obj = SkillSession(
                    pair_key=pair.key,
                    user_low=pair.low,
                    user_high=pair.high,
                    chat_id=to_uuid(chat_id),
                    started_by=requester_id,
                    start_time=self.clock(),
                    status="active",
                    session_number=session_number,
                    is_first_session=session_number == 1,
                    feedback_given=[],
                )
                db.add(session_obj)
                await db.commit()
            except IntegrityError:
                # lost a race against a concurrent start for the same pair,
                # either on the active-session index or on the pair chat
                await db.rollback()
                existing = await self._find_active(db, pair)
                logger.info(f"Concurrent start rejected for pair {pair.key}")
                raise self._active_conflict(existing)

        logger.info(
            f"Session {session_obj.id} started by {requester_id} "
            f"(pair {pair.key}, #{session_number})"
        )
        await self.dispatcher.notify(peer_id, SessionStarted(
            session=SessionView.model_validate(session_obj),
            started_by=requester_ref,
            message=f"{requester_ref.name} started a skill-sharing session",
        ))
        return session_obj

    def _active_conflict(self, existing: Optional[SkillSession]) -> Conflict:
        details = None
        if existing is not None:
            details = {"session": SessionView.model_validate(existing).model_dump(mode="json")}
        return Conflict("Session already active", details=details, session=existing)

    async def end_session(self, session_id: UserId, requester_id: UserId) -> Tuple[SkillSession, int]:
        """
        End an active session; either participant may end it.

        Returns:
            (session, duration_seconds)

        Raises:
            NotFound: Unknown session
            Forbidden: Requester is not a participant
            Conflict: Session is not active
        """
        requester_id = to_uuid(requester_id)

        async with self.session_factory() as db:
            session_obj = await self._load_for_update(db, session_id)
            if requester_id not in session_obj.pair:
                raise Forbidden("Access denied")
            if session_obj.status != "active":
                raise Conflict("Session already ended")

            end_time = self.clock()
            session_obj.end_time = end_time
            session_obj.duration_seconds = elapsed_seconds(session_obj.start_time, end_time)
            session_obj.status = "completed"
            session_obj.ended_by = requester_id
            await db.commit()

            peer_id = session_obj.pair.other(requester_id)
            ender = await self._get_user(db, requester_id)
            peer = await db.get(User, peer_id)

        duration = session_obj.duration_seconds
        logger.info(f"Session {session_obj.id} ended by {requester_id} after {duration}s")

        ended_by = UserRef(id=ender.id, name=ender.name)
        await self.dispatcher.notify(peer_id, SessionEnded(
            session=SessionView.model_validate(session_obj),
            ended_by=ended_by,
            duration=duration,
            message=f"{ender.name} ended the session",
        ))
        await self.dispatcher.notify(peer_id, SessionEndedNotification(
            session_id=session_obj.id,
            ended_by=ended_by,
            receiver_name=peer.name if peer is not None else "",
            message=f"{ender.name} has ended the session. You can provide feedback.",
        ))
        await self.dispatcher.notify(peer_id, SessionFeedbackNotification(
            message=f"{ender.name} ended the session. Please submit your feedback!",
            sender_id=ender.id,
            sender_name=ender.name,
            session_id=session_obj.id,
        ))
        return session_obj, duration

    async def record_feedback(
        self,
        session_id: UserId,
        requester_id: UserId,
        feedback_id: Optional[UserId],
    ) -> SkillSession:
        """
        Link a participant's feedback to the session.

        Status is left untouched; completion does not depend on feedback.

        Raises:
            NotFound: Unknown session or feedback
            Forbidden: Requester is not a participant
            Conflict: Requester already recorded feedback for this session
        """
        requester_id = to_uuid(requester_id)

        async with self.session_factory() as db:
            session_obj = await self._load_for_update(db, session_id)
            if requester_id not in session_obj.pair:
                raise Forbidden("Access denied")
            if session_obj.has_feedback_from(requester_id):
                raise Conflict("Feedback already submitted for this session")
            if feedback_id is not None:
                feedback_id = to_uuid(feedback_id)
                if await db.get(Feedback, feedback_id) is None:
                    raise NotFound("Feedback not found")

            session_obj.feedback_given.append(SessionFeedback(
                user_id=requester_id,
                feedback_id=feedback_id,
                given_at=self.clock(),
            ))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise Conflict("Feedback already submitted for this session")

        logger.info(f"Feedback {feedback_id} linked to session {session_obj.id} by {requester_id}")
        return session_obj

    async def request_new_session(self, requester_id: UserId, peer_id: UserId) -> None:
        """
        Ask the peer for a follow-up session. Nothing is stored; the peer
        accepts by calling start_session and declines locally.

        Raises:
            Conflict: No completed session yet (the first one starts directly)
            LimitExceeded: The pair reached the completed-session cap
            NotFound: Peer does not exist
        """
        requester_id, peer_id = to_uuid(requester_id), to_uuid(peer_id)
        pair = user_pair(requester_id, peer_id)

        async with self.session_factory() as db:
            completed = await self._count_completed(db, pair)
            if completed == 0:
                raise Conflict("First session does not require a request. Start it directly.")
            if completed >= self.max_sessions:
                raise LimitExceeded(
                    f"Maximum session limit ({self.max_sessions}) reached with this user",
                    details={"session_count": completed, "max_sessions": self.max_sessions},
                )
            await self._get_user(db, peer_id)
            requester = await self._get_user(db, requester_id)

        logger.info(f"Session request from {requester_id} to {peer_id} (pair has {completed})")
        await self.dispatcher.notify(peer_id, SessionRequestNotification(
            message=f"{requester.name} wants to start a new skill-sharing session",
            sender_id=requester.id,
            sender_name=requester.name,
            session_count=completed,
        ))


# Global engine instance
_engine: Optional[SessionEngine] = None


def get_session_engine() -> SessionEngine:
    """Get or create global SessionEngine instance."""
    global _engine
    if _engine is None:
        _engine = SessionEngine()
    return _engine
