from typing import Optional
from pydantic import BaseModel
from datetime import datetime
from enum import Enum as PyEnum

class NotificationType(str, PyEnum):
    FRIEND_REQUEST = "FRIEND_REQUEST"
    FRIEND_ACCEPT = "FRIEND_ACCEPT"
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    GROUP_APPROVE = "GROUP_APPROVE"
    SYSTEM = "SYSTEM"

class RelatedKind(str, PyEnum):
    USER = "USER"
    POST = "POST"
    COMMENT = "COMMENT"
    GROUP = "GROUP"
    ROOM = "ROOM"

class NotificationResponse(BaseModel):
    id: str
    recipient_id: str
    actor_id: str
    type: NotificationType
    related_id: Optional[str] = None
    related_kind: Optional[RelatedKind] = None
    message: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True

class UnreadCountResponse(BaseModel):
    unread_count: int
