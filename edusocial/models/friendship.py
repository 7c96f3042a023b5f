from sqlalchemy import Column, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
import uuid

from edusocial.database import Base
from edusocial.schemas.friends import FriendshipStatus
from edusocial.utils.time_utils import utcnow


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a user pair."""
    low, high = sorted((str(user_a), str(user_b)))
    return f"{low}:{high}"


class Friendship(Base):
    """
    The single relationship record between two users.

    ``requester_id`` is whoever initiated the current state (the sender of a
    pending request, or the blocker). ``blocked_by`` is set only while the
    status is BLOCKED. ``pair_key`` is unique, so a pair can never hold two
    records at once regardless of direction.
    """
    __tablename__ = "friendships"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    requester_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    recipient_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    pair_key = Column(String, unique=True, index=True, nullable=False)
    status = Column(Enum(FriendshipStatus), default=FriendshipStatus.PENDING, nullable=False, index=True)
    blocked_by = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    requester = relationship("User", foreign_keys=[requester_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    @classmethod
    def between(cls, requester_id: str, recipient_id: str, status: FriendshipStatus, blocked_by: str = None):
        return cls(
            requester_id=requester_id,
            recipient_id=recipient_id,
            pair_key=pair_key(requester_id, recipient_id),
            status=status,
            blocked_by=blocked_by,
        )

    def other_party(self, user_id: str) -> str:
        if self.requester_id == user_id:
            return self.recipient_id
        return self.requester_id
