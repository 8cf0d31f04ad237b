"""Pydantic views shared by API responses and relay payloads"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserRef(BaseModel):
    """Minimal user reference carried in events"""
    id: UUID
    name: str


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    student_id: str
    skills_offered: List[str] = Field(default_factory=list)
    skills_looking_for: List[str] = Field(default_factory=list)
    average_rating: float = 0.0
    total_ratings: int = 0
    reputation: int = 0


class UserProfile(UserSummary):
    """Full public profile"""
    bio: Optional[str] = None
    created_at: Optional[datetime] = None


class FeedbackLinkView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    feedback_id: Optional[UUID] = None
    given_at: datetime


class SessionView(BaseModel):
    """Serialized skill session"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    participants: List[UUID]
    chat_id: Optional[UUID] = None
    started_by: Optional[UUID] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: int = 0
    status: str
    ended_by: Optional[UUID] = None
    session_number: int
    is_first_session: bool
    feedback_given: List[FeedbackLinkView] = Field(default_factory=list)
    feedback_pending: List[UUID] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class FeedbackView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reviewer_id: UUID
    reviewee_id: UUID
    rating: int
    comment: str
    skill_category: str
    session_type: str
    is_anonymous: bool
    created_at: datetime
    updated_at: datetime


class ChatMessageView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chat_id: UUID
    sender_id: UUID
    content: str
    message_type: str
    is_read: bool
    timestamp: datetime


class ChatView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    participants: List[UUID]
    messages: List[ChatMessageView] = Field(default_factory=list)
    last_message_at: Optional[datetime] = None


class FriendRequestView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    status: str
    message: Optional[str] = None
    created_at: datetime
    responded_at: Optional[datetime] = None
