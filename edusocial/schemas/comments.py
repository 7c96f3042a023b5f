from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    parent_id: Optional[str] = None


class CommentResponse(BaseModel):
    id: str
    post_id: str
    author_id: str
    parent_id: Optional[str] = None
    content: str
    created_at: datetime

    class Config:
        from_attributes = True
