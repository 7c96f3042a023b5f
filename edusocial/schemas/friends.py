from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum as PyEnum
from .users import UserSummary


class FriendshipStatus(str, PyEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    BLOCKED = "BLOCKED"


class RelationshipLabel(str, PyEnum):
    SELF = "SELF"
    FRIENDS = "FRIENDS"
    REQUEST_SENT = "REQUEST_SENT"
    REQUEST_RECEIVED = "REQUEST_RECEIVED"
    BLOCKED = "BLOCKED"
    NONE = "NONE"


class FriendshipListType(str, PyEnum):
    INCOMING = "INCOMING"
    SENT = "SENT"
    FRIENDS = "FRIENDS"
    BLOCKED = "BLOCKED"


class FriendRequestCreate(BaseModel):
    recipient_id: str


class FriendRequestResult(BaseModel):
    status: FriendshipStatus
    friendship_id: Optional[str] = None
    message: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True


class RelationshipStatusResponse(BaseModel):
    label: RelationshipLabel
    friendship_id: Optional[str] = None


class FriendshipResponse(BaseModel):
    id: str
    requester_id: str
    recipient_id: str
    status: FriendshipStatus
    blocked_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FriendshipListItem(BaseModel):
    """One row of a friendship list, with the other party already resolved."""
    id: str
    status: FriendshipStatus
    user: UserSummary
    since: Optional[datetime] = None


class ConnectionsCountResponse(BaseModel):
    user_id: str
    connections_count: int
