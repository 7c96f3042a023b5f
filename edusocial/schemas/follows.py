from pydantic import BaseModel
from datetime import datetime
from enum import Enum


class FollowTarget(str, Enum):
    INSTITUTION = "INSTITUTION"
    DEPARTMENT = "DEPARTMENT"


class FollowCreate(BaseModel):
    following_kind: FollowTarget
    following_id: str


class FollowResponse(BaseModel):
    id: str
    follower_id: str
    following_id: str
    following_kind: FollowTarget
    created_at: datetime

    class Config:
        from_attributes = True


class InstitutionResponse(BaseModel):
    id: str
    name: str
    code: str
    followers_count: int

    class Config:
        from_attributes = True


class DepartmentResponse(BaseModel):
    id: str
    institution_id: str
    name: str
    code: str
    followers_count: int

    class Config:
        from_attributes = True
