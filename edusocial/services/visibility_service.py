import logging
from typing import Awaitable, Callable, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import ForbiddenError, NotFoundError
from edusocial.models import Post
from edusocial.schemas.follows import FollowTarget
from edusocial.schemas.friends import RelationshipLabel
from edusocial.schemas.posts import PostTarget, PostVisibility
from edusocial.services.friends_service import get_relationship_label
from edusocial.services.membership_service import is_following, is_group_member, is_room_member

logger = logging.getLogger(__name__)

VisibilityRule = Callable[[AsyncSession, str, Post], Awaitable[bool]]


async def _room_rule(db: AsyncSession, viewer_id: str, post: Post) -> bool:
    # Room posts are members-only whatever their visibility says
    return await is_room_member(db, post.target_id, viewer_id)


async def _user_wall_rule(db: AsyncSession, viewer_id: str, post: Post) -> bool:
    if post.visibility != PostVisibility.CONNECTIONS:
        return True
    try:
        status = await get_relationship_label(db, viewer_id, post.author_id)
    except NotFoundError:
        return False
    return status.label == RelationshipLabel.FRIENDS


async def _group_rule(db: AsyncSession, viewer_id: str, post: Post) -> bool:
    if post.visibility != PostVisibility.CONNECTIONS:
        return True
    return await is_group_member(db, post.target_id, viewer_id)


async def _institution_rule(db: AsyncSession, viewer_id: str, post: Post) -> bool:
    if post.visibility != PostVisibility.CONNECTIONS:
        return True
    return await is_following(db, viewer_id, FollowTarget.INSTITUTION, post.target_id)


async def _department_rule(db: AsyncSession, viewer_id: str, post: Post) -> bool:
    if post.visibility != PostVisibility.CONNECTIONS:
        return True
    return await is_following(db, viewer_id, FollowTarget.DEPARTMENT, post.target_id)


_TARGET_RULES: Dict[PostTarget, VisibilityRule] = {
    PostTarget.ROOM: _room_rule,
    PostTarget.USER: _user_wall_rule,
    PostTarget.GROUP: _group_rule,
    PostTarget.INSTITUTION: _institution_rule,
    PostTarget.DEPARTMENT: _department_rule,
}


async def can_view_post(db: AsyncSession, viewer_id: str, post: Post) -> bool:
    """
    Decide whether ``viewer_id`` may see ``post``.

    The author always sees their own posts and nobody else sees ONLY_ME
    posts. Past that, the rule registered for the post's target kind decides;
    kinds without a rule (PAGE) are open. Only the lookup the matching rule
    needs is issued.
    """
    if post.author_id == viewer_id:
        return True
    if post.visibility == PostVisibility.ONLY_ME:
        return False

    rule = _TARGET_RULES.get(post.target_kind)
    if rule is None:
        return True
    return await rule(db, viewer_id, post)


async def ensure_post_visible(db: AsyncSession, viewer_id: str, post: Post) -> None:
    """
    Raise unless ``viewer_id`` may see ``post``.

    Raises:
        ForbiddenError: For someone else's ONLY_ME post
        NotFoundError: For any other denied post, so its existence is not revealed
    """
    if await can_view_post(db, viewer_id, post):
        return
    logger.debug(f"Post {post.id} hidden from viewer {viewer_id}")
    if post.visibility == PostVisibility.ONLY_ME:
        raise ForbiddenError("This content is private.")
    raise NotFoundError("Post not found.")
