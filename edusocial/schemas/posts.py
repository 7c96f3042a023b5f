from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class PostTarget(str, Enum):
    USER = "USER"
    GROUP = "GROUP"
    ROOM = "ROOM"
    INSTITUTION = "INSTITUTION"
    DEPARTMENT = "DEPARTMENT"
    PAGE = "PAGE"


class PostVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    INTERNAL = "INTERNAL"
    CONNECTIONS = "CONNECTIONS"
    ONLY_ME = "ONLY_ME"


class PostType(str, Enum):
    GENERAL = "GENERAL"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    RESOURCE = "RESOURCE"
    POLL = "POLL"
    QUESTION = "QUESTION"


class ReactionTarget(str, Enum):
    POST = "POST"
    COMMENT = "COMMENT"


class PostCreate(BaseModel):
    content: Optional[str] = Field(default=None, max_length=10000)
    target_kind: PostTarget = PostTarget.USER
    # Defaults to the author's own wall for USER posts
    target_id: Optional[str] = None
    visibility: PostVisibility = PostVisibility.PUBLIC
    post_type: PostType = PostType.GENERAL
    shared_post_id: Optional[str] = None
    tags: List[str] = []


class PostResponse(BaseModel):
    id: str
    author_id: str
    target_id: str
    target_kind: PostTarget
    visibility: PostVisibility
    post_type: PostType
    content: Optional[str] = None
    shared_post_id: Optional[str] = None
    tags: List[str] = []
    likes_count: int
    comments_count: int
    shares_count: int
    is_archived: bool
    is_pinned: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    is_liked_by_me: bool = False

    class Config:
        from_attributes = True


class LikeToggleResponse(BaseModel):
    is_liked: bool
    likes_count: int
