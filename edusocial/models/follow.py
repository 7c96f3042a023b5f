from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, UniqueConstraint
import uuid

from edusocial.database import Base
from edusocial.schemas.follows import FollowTarget
from edusocial.utils.time_utils import utcnow

class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = (UniqueConstraint("follower_id", "following_kind", "following_id", name="uq_follow"),)

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    follower_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    following_id = Column(String, index=True, nullable=False)
    following_kind = Column(Enum(FollowTarget), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
