import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import BadRequestError, NotAuthorizedError, NotFoundError
from edusocial.models import Comment, Post
from edusocial.schemas.comments import CommentCreate
from edusocial.schemas.notifications import NotificationType, RelatedKind
from edusocial.services.notification_service import dispatch_notification
from edusocial.services.visibility_service import ensure_post_visible

logger = logging.getLogger(__name__)


async def _visible_post(db: AsyncSession, viewer_id: str, post_id: str) -> Post:
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found.")
    await ensure_post_visible(db, viewer_id, post)
    return post


async def add_comment(db: AsyncSession, user_id: str, post_id: str, data: CommentCreate) -> Comment:
    """
    Comment on a post the user can see, optionally as a reply.

    Raises:
        NotFoundError: If the post (or the reply's parent) does not exist or is hidden
        BadRequestError: If the parent comment belongs to another post
    """
    post = await _visible_post(db, user_id, post_id)

    if data.parent_id:
        parent = await db.get(Comment, data.parent_id)
        if parent is None or parent.is_deleted:
            raise NotFoundError("Parent comment not found.")
        if parent.post_id != post_id:
            raise BadRequestError("Parent comment does not belong to this post.")

    comment = Comment(
        post_id=post_id,
        author_id=user_id,
        parent_id=data.parent_id,
        content=data.content.strip(),
    )
    db.add(comment)
    await db.execute(
        update(Post).where(Post.id == post_id).values(comments_count=Post.comments_count + 1)
    )
    await db.commit()
    await db.refresh(comment)

    dispatch_notification(
        recipient_id=post.author_id,
        actor_id=user_id,
        type=NotificationType.COMMENT,
        message="commented on your post.",
        related_id=post_id,
        related_kind=RelatedKind.POST,
    )
    return comment


async def list_comments(
    db: AsyncSession, viewer_id: str, post_id: str, parent_id: Optional[str], page: int, limit: int
) -> List[Comment]:
    """Top-level comments of a post, or the replies to ``parent_id``, oldest first."""
    await _visible_post(db, viewer_id, post_id)

    if parent_id:
        thread = Comment.parent_id == parent_id
    else:
        thread = Comment.parent_id.is_(None)

    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id, Comment.is_deleted == False, thread)
        .order_by(Comment.created_at.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return result.scalars().all()


async def _reply_subtree(db: AsyncSession, comment_id: str) -> List[str]:
    """Ids of the live replies under ``comment_id``, at any depth."""
    found, frontier = [], [comment_id]
    while frontier:
        result = await db.execute(
            select(Comment.id).where(Comment.parent_id.in_(frontier), Comment.is_deleted == False)
        )
        frontier = result.scalars().all()
        found.extend(frontier)
    return found


async def delete_comment(db: AsyncSession, user_id: str, comment_id: str) -> dict:
    """
    Soft-delete a comment together with its replies.

    Raises:
        NotFoundError: If the comment does not exist or is already deleted
        NotAuthorizedError: If the user wrote neither the comment nor the post
    """
    comment = await db.get(Comment, comment_id)
    if comment is None or comment.is_deleted:
        raise NotFoundError("Comment not found.")

    post = await db.get(Post, comment.post_id)
    post_author_id = post.author_id if post else None
    if user_id not in (comment.author_id, post_author_id):
        raise NotAuthorizedError("You can only delete your own comments or comments on your posts.")

    removed = [comment.id] + await _reply_subtree(db, comment.id)
    await db.execute(update(Comment).where(Comment.id.in_(removed)).values(is_deleted=True))
    await db.execute(
        update(Post).where(Post.id == comment.post_id).values(comments_count=Post.comments_count - len(removed))
    )
    await db.commit()
    return {"success": True}
