"""SQLAlchemy ORM Models for Skill Swap Database Schema"""
from skillswap.models.user import User
from skillswap.models.friend_request import FriendRequest
from skillswap.models.chat import Chat, ChatMessage
from skillswap.models.feedback import Feedback
from skillswap.models.session import SkillSession, SessionFeedback

__all__ = [
    "User",
    "FriendRequest",
    "Chat",
    "ChatMessage",
    "Feedback",
    "SkillSession",
    "SessionFeedback",
]
