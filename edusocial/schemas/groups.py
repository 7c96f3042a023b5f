from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class GroupPrivacy(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    CLOSED = "CLOSED"


class GroupType(str, Enum):
    OFFICIAL_UNIVERSITY = "OFFICIAL_UNIVERSITY"
    OFFICIAL_SESSION = "OFFICIAL_SESSION"
    OFFICIAL_DEPT = "OFFICIAL_DEPT"
    OFFICIAL_DEPT_SESSION = "OFFICIAL_DEPT_SESSION"
    JOBS_CAREERS = "JOBS_CAREERS"
    GENERAL = "GENERAL"


class MembershipStatus(str, Enum):
    JOINED = "JOINED"
    PENDING = "PENDING"
    INVITED = "INVITED"
    REJECTED = "REJECTED"
    BANNED = "BANNED"
    LEFT = "LEFT"


class ResourceRole(str, Enum):
    """Roles shared by groups and rooms, highest first."""
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    MEMBER = "MEMBER"


ROLE_RANK = {
    ResourceRole.OWNER: 3,
    ResourceRole.ADMIN: 2,
    ResourceRole.MODERATOR: 1,
    ResourceRole.MEMBER: 0,
}


def outranks(actor_role: ResourceRole, target_role: ResourceRole) -> bool:
    return ROLE_RANK[actor_role] > ROLE_RANK[target_role]


class JoinRequestAction(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    slug: str = Field(min_length=3, max_length=60, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = None
    privacy: GroupPrivacy = GroupPrivacy.PUBLIC
    group_type: GroupType = GroupType.GENERAL
    allow_member_posting: bool = True


class GroupResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    privacy: GroupPrivacy
    group_type: GroupType
    creator_id: str
    allow_member_posting: bool
    members_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class MembershipResponse(BaseModel):
    id: str
    user_id: str
    role: ResourceRole
    status: MembershipStatus
    created_at: datetime

    class Config:
        from_attributes = True


class JoinResult(BaseModel):
    status: MembershipStatus
    message: str


class RoleUpdate(BaseModel):
    role: ResourceRole


class JoinRequestDecision(BaseModel):
    action: JoinRequestAction


class MessageResponse(BaseModel):
    message: str
