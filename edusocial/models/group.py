from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Boolean, Integer, Text, UniqueConstraint
import uuid

from edusocial.database import Base
from edusocial.schemas.groups import GroupPrivacy, GroupType, MembershipStatus, ResourceRole
from edusocial.utils.time_utils import utcnow

class Group(Base):
    __tablename__ = "groups"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    privacy = Column(Enum(GroupPrivacy), default=GroupPrivacy.PUBLIC, nullable=False)
    group_type = Column(Enum(GroupType), default=GroupType.GENERAL, nullable=False)
    creator_id = Column(String, ForeignKey("users.id"), nullable=False)
    allow_member_posting = Column(Boolean, default=True, nullable=False)
    members_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


class GroupMembership(Base):
    __tablename__ = "group_memberships"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_membership"),)

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    role = Column(Enum(ResourceRole), default=ResourceRole.MEMBER, nullable=False)
    status = Column(Enum(MembershipStatus), default=MembershipStatus.JOINED, nullable=False, index=True)
    invited_by = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
