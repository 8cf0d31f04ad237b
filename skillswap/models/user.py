"""User model - Student profile, skills and rating statistics"""
from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, JSON, Index, Uuid
import uuid

from skillswap.database import Base
from skillswap.models.common import utcnow


class User(Base):
    """Student profile with offered/wanted skills and feedback aggregates"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    student_id = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    api_token = Column(String(128), unique=True, nullable=False)
    skills_offered = Column(JSON, nullable=False, default=list)
    skills_looking_for = Column(JSON, nullable=False, default=list)
    bio = Column(String(500), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    average_rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)
    reputation = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_users_api_token", "api_token"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, name={self.name}, student_id={self.student_id})>"
