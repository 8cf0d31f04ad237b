"""SkillSession model - Timed skill-sharing window between two friends"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, Index,
    CheckConstraint, UniqueConstraint, Uuid, text,
)
from sqlalchemy.orm import relationship
import uuid

from skillswap.database import Base
from skillswap.models.common import UserPair, utcnow

SESSION_STATUSES = ("active", "completed", "cancelled")


class SkillSession(Base):
    """
    One skill-sharing session between exactly two users.

    Participants are stored in canonical order (user_low, user_high) and the
    pair_key column carries the same pair as a string. A partial unique index
    allows a single 'active' row per pair_key.
    """

    __tablename__ = "skill_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pair_key = Column(String(80), nullable=False)
    user_low = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_high = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    chat_id = Column(Uuid, nullable=True)
    started_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")
    ended_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    session_number = Column(Integer, nullable=False, default=1)
    is_first_session = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    feedback_given = relationship(
        "SessionFeedback",
        back_populates="session",
        order_by="SessionFeedback.given_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("user_low <> user_high", name="ck_skill_sessions_distinct_participants"),
        CheckConstraint(
            "status IN ('active', 'completed', 'cancelled')",
            name="ck_skill_sessions_status",
        ),
        CheckConstraint("duration_seconds >= 0", name="ck_skill_sessions_duration"),
        Index(
            "uq_skill_sessions_one_active_per_pair",
            "pair_key",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_skill_sessions_pair_status", "pair_key", "status"),
        Index("idx_skill_sessions_chat", "chat_id"),
    )

    @property
    def pair(self) -> UserPair:
        return UserPair(self.user_low, self.user_high)

    @property
    def participants(self):
        return [self.user_low, self.user_high]

    @property
    def feedback_pending(self):
        """Participants that have not linked feedback yet."""
        given = {entry.user_id for entry in self.feedback_given}
        return [user for user in self.participants if user not in given]

    def has_feedback_from(self, user_id) -> bool:
        return any(entry.user_id == user_id for entry in self.feedback_given)

    def __repr__(self):
        return (
            f"<SkillSession(id={self.id}, pair={self.pair_key}, "
            f"number={self.session_number}, status={self.status})>"
        )


class SessionFeedback(Base):
    """Link recording that a participant submitted feedback for a session"""

    __tablename__ = "session_feedback"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("skill_sessions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    feedback_id = Column(Uuid, ForeignKey("feedback.id", ondelete="SET NULL"), nullable=True)
    given_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    session = relationship("SkillSession", back_populates="feedback_given")

    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_session_feedback_session_user"),
    )

    def __repr__(self):
        return f"<SessionFeedback(session={self.session_id}, user={self.user_id}, feedback={self.feedback_id})>"
