from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class RoomStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class RoomCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    course_code: Optional[str] = None
    session: Optional[str] = None


class RoomJoin(BaseModel):
    code: str = Field(min_length=6, max_length=6)


class RoomResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    course_code: Optional[str] = None
    session: Optional[str] = None
    join_code: str
    creator_id: str
    status: RoomStatus
    members_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class RoomJoinResult(BaseModel):
    message: str
    room_id: str
