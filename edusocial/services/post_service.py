import asyncio
import logging
from typing import Awaitable, Callable, List, Sequence, Set

from sqlalchemy import and_, delete, or_, select, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edusocial.database import AsyncSessionLocal
from edusocial.exceptions import BadRequestError, NotAuthorizedError, NotFoundError
from edusocial.models import Comment, Department, Group, Institution, Post, Reaction, Room, User
from edusocial.schemas.follows import FollowTarget
from edusocial.schemas.friends import RelationshipLabel
from edusocial.schemas.groups import GroupPrivacy, MembershipStatus, ResourceRole
from edusocial.schemas.notifications import NotificationType, RelatedKind
from edusocial.schemas.posts import PostCreate, PostTarget, PostVisibility, ReactionTarget
from edusocial.services.friends_service import are_friends, get_friend_ids, get_relationship_label
from edusocial.services.membership_service import (
    followed_target_ids,
    get_group_membership,
    is_following,
    is_group_member,
    is_room_member,
    joined_group_ids,
    joined_room_ids,
)
from edusocial.services.notification_service import dispatch_notification
from edusocial.services.visibility_service import ensure_post_visible

# Configure logging for this module
logger = logging.getLogger(__name__)

_OPEN_VISIBILITIES = [PostVisibility.PUBLIC, PostVisibility.INTERNAL]


async def _fetch_post(db: AsyncSession, post_id: str) -> Post:
    result = await db.execute(select(Post).where(Post.id == post_id))
    post = result.scalar_one_or_none()
    if not post:
        raise NotFoundError("Post not found.")
    return post


async def _liked_post_ids(db: AsyncSession, viewer_id: str, post_ids: Sequence[str]) -> Set[str]:
    result = await db.execute(
        select(Reaction.target_id).where(
            Reaction.user_id == viewer_id,
            Reaction.target_kind == ReactionTarget.POST,
            Reaction.target_id.in_(post_ids),
        )
    )
    return set(result.scalars().all())


async def annotate_liked(db: AsyncSession, viewer_id: str, posts: List[Post]) -> List[Post]:
    """Set ``is_liked_by_me`` on each post with one batched reaction lookup."""
    if not posts:
        return posts
    liked = await _liked_post_ids(db, viewer_id, [post.id for post in posts])
    for post in posts:
        post.is_liked_by_me = post.id in liked
    return posts


async def _validate_target(db: AsyncSession, author_id: str, target_kind: PostTarget, target_id: str) -> None:
    if target_kind == PostTarget.USER:
        if target_id == author_id:
            return
        if await db.get(User, target_id) is None:
            raise NotFoundError("User not found.")
        if not await are_friends(db, author_id, target_id):
            raise NotAuthorizedError("You can only post on your own wall or a friend's wall.")

    elif target_kind == PostTarget.GROUP:
        group = await db.get(Group, target_id)
        if group is None:
            raise NotFoundError("Group not found.")
        membership = await get_group_membership(db, target_id, author_id)
        if membership is None:
            raise NotAuthorizedError("You must be a member of this group to post.")
        if membership.status == MembershipStatus.BANNED:
            raise NotAuthorizedError("You are banned from this group.")
        if membership.status == MembershipStatus.PENDING:
            raise NotAuthorizedError("Your membership request is still pending.")
        if membership.status != MembershipStatus.JOINED:
            raise NotAuthorizedError("You must be a member of this group to post.")
        if not group.allow_member_posting and membership.role == ResourceRole.MEMBER:
            raise NotAuthorizedError("Only group admins and moderators can post here.")

    elif target_kind == PostTarget.ROOM:
        if await db.get(Room, target_id) is None:
            raise NotFoundError("Room not found.")
        if not await is_room_member(db, target_id, author_id):
            raise NotAuthorizedError("You must be a member of this room to post.")

    elif target_kind == PostTarget.INSTITUTION:
        if await db.get(Institution, target_id) is None:
            raise NotFoundError("Institution not found.")

    elif target_kind == PostTarget.DEPARTMENT:
        if await db.get(Department, target_id) is None:
            raise NotFoundError("Department not found.")

    else:
        raise BadRequestError("Posting to pages is not supported.")


async def create_post(db: AsyncSession, author_id: str, data: PostCreate) -> Post:
    """
    Create a post on a user wall, group, room, institution or department.

    Args:
        db: AsyncSession for database operations
        author_id: ID of the posting user
        data: Post payload; ``target_id`` defaults to the author's own wall

    Returns:
        Post: The stored post

    Raises:
        BadRequestError: If the post has no content and shares nothing
        NotFoundError: If the target or the shared post does not exist
        NotAuthorizedError: If the author may not post on the target
    """
    content = (data.content or "").strip()
    if not content and not data.shared_post_id:
        raise BadRequestError("Post content is required.")

    target_id = data.target_id
    if data.target_kind == PostTarget.USER and not target_id:
        target_id = author_id
    if not target_id:
        raise BadRequestError("target_id is required for this target kind.")

    await _validate_target(db, author_id, data.target_kind, target_id)

    if data.shared_post_id:
        shared = await _fetch_post(db, data.shared_post_id)
        await ensure_post_visible(db, author_id, shared)

    post = Post(
        author_id=author_id,
        target_id=target_id,
        target_kind=data.target_kind,
        visibility=data.visibility,
        post_type=data.post_type,
        content=content or None,
        shared_post_id=data.shared_post_id,
        tags=data.tags,
    )
    db.add(post)
    if data.shared_post_id:
        await db.execute(
            update(Post)
            .where(Post.id == data.shared_post_id)
            .values(shares_count=Post.shares_count + 1)
        )
    await db.commit()
    await db.refresh(post)

    logger.info(f"User {author_id} posted {post.id} on {data.target_kind.value} {target_id}")
    return post


async def get_post(db: AsyncSession, viewer_id: str, post_id: str) -> Post:
    post = await _fetch_post(db, post_id)
    await ensure_post_visible(db, viewer_id, post)
    await annotate_liked(db, viewer_id, [post])
    return post


async def _collect_ids(
    session_factory: async_sessionmaker,
    lookup: Callable[[AsyncSession, str], Awaitable[List[str]]],
    user_id: str,
) -> List[str]:
    async with session_factory() as session:
        return await lookup(session, user_id)


async def build_feed(
    db: AsyncSession,
    viewer_id: str,
    page: int,
    page_size: int,
    session_factory: async_sessionmaker = AsyncSessionLocal,
) -> List[Post]:
    """
    Compose the home feed for ``viewer_id``.

    The feed holds friends' posts on user walls, posts on followed
    institutions and departments, posts in joined groups and rooms, and the
    viewer's own posts, newest first. The four id sets are gathered
    concurrently, one short-lived session each, then a single query pages
    through the union.

    Args:
        db: Session used for the feed query and the like annotation
        viewer_id: ID of the user whose feed is built
        page: 1-based page number
        page_size: Posts per page
        session_factory: Factory for the per-lookup sessions

    Returns:
        List[Post]: The page, each post carrying ``is_liked_by_me``
    """
    friend_ids, followed_ids, group_ids, room_ids = await asyncio.gather(
        _collect_ids(session_factory, get_friend_ids, viewer_id),
        _collect_ids(session_factory, followed_target_ids, viewer_id),
        _collect_ids(session_factory, joined_group_ids, viewer_id),
        _collect_ids(session_factory, joined_room_ids, viewer_id),
    )

    not_private = Post.visibility != PostVisibility.ONLY_ME
    sources = [Post.author_id == viewer_id]
    if friend_ids:
        sources.append(and_(
            Post.author_id.in_(friend_ids),
            Post.target_kind == PostTarget.USER,
            Post.visibility.in_([PostVisibility.PUBLIC, PostVisibility.CONNECTIONS]),
        ))
    if followed_ids:
        sources.append(and_(
            Post.target_kind.in_([PostTarget.INSTITUTION, PostTarget.DEPARTMENT]),
            Post.target_id.in_(followed_ids),
            not_private,
        ))
    if group_ids:
        sources.append(and_(
            Post.target_kind == PostTarget.GROUP,
            Post.target_id.in_(group_ids),
            not_private,
        ))
    if room_ids:
        sources.append(and_(
            Post.target_kind == PostTarget.ROOM,
            Post.target_id.in_(room_ids),
            not_private,
        ))

    result = await db.execute(
        select(Post)
        .where(Post.is_archived == False, or_(*sources))
        .order_by(Post.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    posts = list(result.scalars().all())
    return await annotate_liked(db, viewer_id, posts)


async def get_target_feed(
    db: AsyncSession, viewer_id: str, target_kind: PostTarget, target_id: str, page: int, limit: int
) -> List[Post]:
    """
    Posts on a group, room, institution or department, pinned first.

    Rooms and non-public groups require membership. CONNECTIONS posts are
    included only for members (groups) or followers (institutions,
    departments).
    """
    if target_kind == PostTarget.ROOM:
        if await db.get(Room, target_id) is None:
            raise NotFoundError("Room not found.")
        if not await is_room_member(db, target_id, viewer_id):
            raise NotAuthorizedError("You must be a member of this room.")
        sees_connections = True
    elif target_kind == PostTarget.GROUP:
        group = await db.get(Group, target_id)
        if group is None:
            raise NotFoundError("Group not found.")
        sees_connections = await is_group_member(db, target_id, viewer_id)
        if group.privacy != GroupPrivacy.PUBLIC and not sees_connections:
            raise NotAuthorizedError("You must be a member of this group.")
    elif target_kind == PostTarget.INSTITUTION:
        if await db.get(Institution, target_id) is None:
            raise NotFoundError("Institution not found.")
        sees_connections = await is_following(db, viewer_id, FollowTarget.INSTITUTION, target_id)
    elif target_kind == PostTarget.DEPARTMENT:
        if await db.get(Department, target_id) is None:
            raise NotFoundError("Department not found.")
        sees_connections = await is_following(db, viewer_id, FollowTarget.DEPARTMENT, target_id)
    else:
        raise BadRequestError("Use the user timeline for user walls.")

    allowed = list(_OPEN_VISIBILITIES)
    if sees_connections:
        allowed.append(PostVisibility.CONNECTIONS)

    result = await db.execute(
        select(Post)
        .where(
            Post.target_kind == target_kind,
            Post.target_id == target_id,
            Post.is_archived == False,
            or_(Post.author_id == viewer_id, Post.visibility.in_(allowed)),
        )
        .order_by(Post.is_pinned.desc(), Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = list(result.scalars().all())
    return await annotate_liked(db, viewer_id, posts)


async def get_user_timeline(db: AsyncSession, viewer_id: str, user_id: str, page: int, limit: int) -> List[Post]:
    """
    Posts a user wrote on their own wall, as the viewer is allowed to see them.

    Raises:
        NotFoundError: If the user blocked the viewer
    """
    if viewer_id == user_id:
        visibility_filter = true()
    else:
        status = await get_relationship_label(db, viewer_id, user_id)
        allowed = list(_OPEN_VISIBILITIES)
        if status.label == RelationshipLabel.FRIENDS:
            allowed.append(PostVisibility.CONNECTIONS)
        visibility_filter = Post.visibility.in_(allowed)

    result = await db.execute(
        select(Post)
        .where(
            Post.author_id == user_id,
            Post.target_kind == PostTarget.USER,
            Post.target_id == user_id,
            Post.is_archived == False,
            visibility_filter,
        )
        .order_by(Post.is_pinned.desc(), Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = list(result.scalars().all())
    return await annotate_liked(db, viewer_id, posts)


async def toggle_like(db: AsyncSession, user_id: str, post_id: str) -> dict:
    """
    Like the post, or remove the like if it is already there.

    Returns:
        dict: ``is_liked`` after the toggle and the updated ``likes_count``
    """
    post = await _fetch_post(db, post_id)
    await ensure_post_visible(db, user_id, post)

    result = await db.execute(
        select(Reaction).where(
            Reaction.user_id == user_id,
            Reaction.target_kind == ReactionTarget.POST,
            Reaction.target_id == post_id,
        )
    )
    reaction = result.scalar_one_or_none()

    if reaction:
        await db.delete(reaction)
        await db.execute(update(Post).where(Post.id == post_id).values(likes_count=Post.likes_count - 1))
        await db.commit()
        is_liked = False
    else:
        db.add(Reaction(user_id=user_id, target_id=post_id, target_kind=ReactionTarget.POST))
        await db.execute(update(Post).where(Post.id == post_id).values(likes_count=Post.likes_count + 1))
        try:
            await db.commit()
        except IntegrityError:
            # A concurrent request already stored this like
            await db.rollback()
        else:
            dispatch_notification(
                recipient_id=post.author_id,
                actor_id=user_id,
                type=NotificationType.LIKE,
                message="liked your post.",
                related_id=post_id,
                related_kind=RelatedKind.POST,
            )
        is_liked = True

    await db.refresh(post)
    return {"is_liked": is_liked, "likes_count": post.likes_count}


async def delete_post(db: AsyncSession, user_id: str, post_id: str) -> dict:
    """
    Delete a post with its comments and reactions. Only the author may do this.

    Raises:
        NotFoundError: If the post does not exist
        NotAuthorizedError: If the caller is not the author
    """
    post = await _fetch_post(db, post_id)
    if post.author_id != user_id:
        raise NotAuthorizedError("You can only delete your own posts.")

    comment_ids = select(Comment.id).where(Comment.post_id == post_id)
    await db.execute(
        delete(Reaction).where(
            or_(
                and_(Reaction.target_kind == ReactionTarget.POST, Reaction.target_id == post_id),
                and_(Reaction.target_kind == ReactionTarget.COMMENT, Reaction.target_id.in_(comment_ids)),
            )
        )
    )
    await db.execute(update(Comment).where(Comment.post_id == post_id).values(parent_id=None))
    await db.execute(delete(Comment).where(Comment.post_id == post_id))
    await db.execute(update(Post).where(Post.shared_post_id == post_id).values(shared_post_id=None))
    if post.shared_post_id:
        await db.execute(
            update(Post)
            .where(Post.id == post.shared_post_id)
            .values(shares_count=Post.shares_count - 1)
        )
    await db.delete(post)
    await db.commit()

    logger.info(f"Post {post_id} deleted by {user_id}")
    return {"success": True}
