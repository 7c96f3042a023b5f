from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text
import uuid

from edusocial.database import Base
from edusocial.utils.time_utils import utcnow

class Comment(Base):
    __tablename__ = "comments"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), index=True, nullable=False)
    author_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    parent_id = Column(String, ForeignKey("comments.id"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
