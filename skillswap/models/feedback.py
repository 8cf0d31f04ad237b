"""Feedback model - Peer rating after a skill-sharing session"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, CheckConstraint, Index, Uuid
import uuid

from skillswap.database import Base
from skillswap.models.common import utcnow

SESSION_TYPES = ("skill-share", "tutoring", "collaboration", "other")


class Feedback(Base):
    """Rating (1-5) and comment from a reviewer about a reviewee"""

    __tablename__ = "feedback"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reviewer_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reviewee_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(
        Integer,
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedback_rating_range"),
        nullable=False,
    )
    comment = Column(String(500), nullable=False, default="")
    skill_category = Column(String(100), nullable=False)
    session_type = Column(String(20), nullable=False, default="skill-share")
    is_anonymous = Column(Boolean, nullable=False, default=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("reviewer_id <> reviewee_id", name="ck_feedback_not_self"),
        Index("idx_feedback_reviewee", "reviewee_id", "created_at"),
        Index("idx_feedback_reviewee_skill", "reviewee_id", "skill_category"),
    )

    def __repr__(self):
        return f"<Feedback(id={self.id}, reviewer={self.reviewer_id}, reviewee={self.reviewee_id}, rating={self.rating})>"
