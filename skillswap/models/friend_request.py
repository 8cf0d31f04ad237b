"""FriendRequest model - Directed friend request with lifecycle status"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint, Uuid
import uuid

from skillswap.database import Base
from skillswap.models.common import utcnow

FRIEND_REQUEST_STATUSES = ("pending", "accepted", "declined", "removed")


class FriendRequest(Base):
    """Friend request from sender to receiver; 'accepted' means friends"""

    __tablename__ = "friend_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    message = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("sender_id", "receiver_id", name="uq_friend_requests_sender_receiver"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'removed')",
            name="ck_friend_requests_status",
        ),
        Index("idx_friend_requests_receiver_status", "receiver_id", "status"),
        Index("idx_friend_requests_sender_status", "sender_id", "status"),
    )

    def __repr__(self):
        return f"<FriendRequest(id={self.id}, sender={self.sender_id}, receiver={self.receiver_id}, status={self.status})>"
