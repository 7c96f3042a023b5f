from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Boolean, Integer, Text, JSON, Index
from sqlalchemy.orm import relationship
import uuid

from edusocial.database import Base
from edusocial.schemas.posts import PostTarget, PostVisibility, PostType, ReactionTarget
from edusocial.utils.time_utils import utcnow

class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_target_created", "target_id", "target_kind", "created_at"),
        Index("ix_posts_author_created", "author_id", "created_at"),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    author_id = Column(String, ForeignKey("users.id"), nullable=False)
    # Polymorphic wall: target_kind says which table target_id points into
    target_id = Column(String, nullable=False)
    target_kind = Column(Enum(PostTarget), default=PostTarget.USER, nullable=False)
    visibility = Column(Enum(PostVisibility), default=PostVisibility.PUBLIC, nullable=False, index=True)
    post_type = Column(Enum(PostType), default=PostType.GENERAL, nullable=False)
    content = Column(Text, nullable=True)
    shared_post_id = Column(String, ForeignKey("posts.id"), nullable=True, index=True)
    tags = Column(JSON, default=list)
    likes_count = Column(Integer, default=0, nullable=False)
    comments_count = Column(Integer, default=0, nullable=False)
    shares_count = Column(Integer, default=0, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    author = relationship("User", foreign_keys=[author_id])
    shared_post = relationship("Post", remote_side=[id])


class Reaction(Base):
    __tablename__ = "reactions"
    __table_args__ = (
        Index("ux_reactions_user_target", "user_id", "target_kind", "target_id", unique=True),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    target_id = Column(String, nullable=False, index=True)
    target_kind = Column(Enum(ReactionTarget), default=ReactionTarget.POST, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
