from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Integer, Text, UniqueConstraint
import uuid

from edusocial.database import Base
from edusocial.schemas.groups import MembershipStatus, ResourceRole
from edusocial.schemas.rooms import RoomStatus
from edusocial.utils.time_utils import utcnow

class Room(Base):
    __tablename__ = "rooms"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    course_code = Column(String, nullable=True)
    session = Column(String, nullable=True)
    join_code = Column(String(6), unique=True, index=True, nullable=False)
    creator_id = Column(String, ForeignKey("users.id"), nullable=False)
    status = Column(Enum(RoomStatus), default=RoomStatus.ACTIVE, nullable=False)
    members_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


class RoomMembership(Base):
    __tablename__ = "room_memberships"
    __table_args__ = (UniqueConstraint("room_id", "user_id", name="uq_room_membership"),)

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String, ForeignKey("rooms.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    role = Column(Enum(ResourceRole), default=ResourceRole.MEMBER, nullable=False)
    status = Column(Enum(MembershipStatus), default=MembershipStatus.JOINED, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
