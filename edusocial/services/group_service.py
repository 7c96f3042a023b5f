import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import BadRequestError, ConflictError, NotAuthorizedError, NotFoundError
from edusocial.models import Group, GroupMembership
from edusocial.schemas.groups import (
    GroupCreate,
    GroupPrivacy,
    JoinRequestAction,
    MembershipStatus,
    ResourceRole,
)
from edusocial.schemas.notifications import NotificationType, RelatedKind
from edusocial.services.membership_service import (
    adjust_group_members,
    ensure_can_manage,
    ensure_role,
    get_group_membership,
    is_group_member,
)
from edusocial.services.notification_service import dispatch_notification

# Configure logging for this module
logger = logging.getLogger(__name__)


async def _get_group(db: AsyncSession, group_id: str) -> Group:
    group = await db.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found.")
    return group


async def create_group(db: AsyncSession, creator_id: str, data: GroupCreate) -> Group:
    """
    Create a group with the creator as its JOINED owner.

    Raises:
        ConflictError: If the slug is taken
    """
    existing = await db.execute(select(Group.id).where(Group.slug == data.slug))
    if existing.first() is not None:
        raise ConflictError("Group slug already taken.")

    group = Group(
        name=data.name,
        slug=data.slug,
        description=data.description,
        privacy=data.privacy,
        group_type=data.group_type,
        allow_member_posting=data.allow_member_posting,
        creator_id=creator_id,
        members_count=1,
    )
    db.add(group)
    try:
        await db.flush()
        db.add(GroupMembership(
            group_id=group.id,
            user_id=creator_id,
            role=ResourceRole.OWNER,
            status=MembershipStatus.JOINED,
        ))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Group slug already taken.")
    await db.refresh(group)

    logger.info(f"Group {group.slug} created by {creator_id}")
    return group


async def join_group(db: AsyncSession, user_id: str, group_id: str) -> dict:
    """
    Join a public group directly, or file a join request for any other group.

    Raises:
        NotFoundError: If the group does not exist
        NotAuthorizedError: If the user is banned from the group
        ConflictError: If the user is already a member or already asked
    """
    group = await _get_group(db, group_id)
    membership = await get_group_membership(db, group_id, user_id)

    if membership is not None:
        if membership.status == MembershipStatus.BANNED:
            raise NotAuthorizedError("You are banned from this group.")
        if membership.status == MembershipStatus.JOINED:
            raise ConflictError("You are already a member of this group.")
        if membership.status == MembershipStatus.PENDING:
            raise ConflictError("Your join request is already pending.")
    else:
        membership = GroupMembership(group_id=group_id, user_id=user_id)
        db.add(membership)

    membership.role = ResourceRole.MEMBER
    if group.privacy == GroupPrivacy.PUBLIC:
        membership.status = MembershipStatus.JOINED
        message = "Joined group successfully."
    else:
        membership.status = MembershipStatus.PENDING
        message = "Join request sent."

    try:
        if membership.status == MembershipStatus.JOINED:
            await adjust_group_members(db, group_id, 1)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Your membership in this group already exists.")
    return {"status": membership.status, "message": message}


async def manage_join_request(
    db: AsyncSession, actor_id: str, group_id: str, user_id: str, action: JoinRequestAction
) -> dict:
    await _get_group(db, group_id)
    actor = await get_group_membership(db, group_id, actor_id)
    ensure_role(actor, ResourceRole.MODERATOR, "Only moderators and above can manage join requests.")

    membership = await get_group_membership(db, group_id, user_id)
    if membership is None or membership.status != MembershipStatus.PENDING:
        raise NotFoundError("Join request not found.")

    if action == JoinRequestAction.ACCEPT:
        membership.status = MembershipStatus.JOINED
        await adjust_group_members(db, group_id, 1)
        await db.commit()
        dispatch_notification(
            recipient_id=user_id,
            actor_id=actor_id,
            type=NotificationType.GROUP_APPROVE,
            message="approved your request to join the group.",
            related_id=group_id,
            related_kind=RelatedKind.GROUP,
        )
        return {"message": "Join request accepted."}

    await db.delete(membership)
    await db.commit()
    return {"message": "Join request rejected."}


async def update_member_role(
    db: AsyncSession, actor_id: str, group_id: str, user_id: str, new_role: ResourceRole
) -> GroupMembership:
    """
    Change a member's role.

    The actor needs ADMIN or above and must outrank both the member and the
    role being granted; OWNER is never granted this way.
    """
    await _get_group(db, group_id)
    actor = await get_group_membership(db, group_id, actor_id)
    ensure_role(actor, ResourceRole.ADMIN, "Only admins and above can change roles.")

    target = await get_group_membership(db, group_id, user_id)
    if target is None or target.status != MembershipStatus.JOINED:
        raise NotFoundError("Member not found.")
    ensure_can_manage(actor, target, new_role)

    target.role = new_role
    await db.commit()
    await db.refresh(target)

    dispatch_notification(
        recipient_id=user_id,
        actor_id=actor_id,
        type=NotificationType.SYSTEM,
        message=f"changed your role to {new_role.value} in the group.",
        related_id=group_id,
        related_kind=RelatedKind.GROUP,
    )
    return target


async def remove_member(db: AsyncSession, actor_id: str, group_id: str, user_id: str, ban: bool = False) -> dict:
    """
    Remove a member, or ban them. A ban keeps the membership row as BANNED
    so the user cannot rejoin.
    """
    await _get_group(db, group_id)
    actor = await get_group_membership(db, group_id, actor_id)
    ensure_role(actor, ResourceRole.MODERATOR, "Only moderators and above can remove members.")

    target = await get_group_membership(db, group_id, user_id)
    if target is None or target.status in (MembershipStatus.BANNED, MembershipStatus.LEFT):
        raise NotFoundError("Member not found.")
    ensure_can_manage(actor, target)

    if target.status == MembershipStatus.JOINED:
        await adjust_group_members(db, group_id, -1)

    if ban:
        target.status = MembershipStatus.BANNED
        target.role = ResourceRole.MEMBER
        message = "Member banned."
    else:
        await db.delete(target)
        message = "Member removed."
    await db.commit()
    return {"message": message}


async def leave_group(db: AsyncSession, user_id: str, group_id: str) -> dict:
    await _get_group(db, group_id)
    membership = await get_group_membership(db, group_id, user_id)
    if membership is None or membership.status != MembershipStatus.JOINED:
        raise NotFoundError("You are not a member of this group.")
    if membership.role == ResourceRole.OWNER:
        raise BadRequestError("The owner cannot leave the group.")

    membership.status = MembershipStatus.LEFT
    membership.role = ResourceRole.MEMBER
    await adjust_group_members(db, group_id, -1)
    await db.commit()
    return {"message": "You left the group."}


async def list_members(db: AsyncSession, viewer_id: str, group_id: str, page: int, limit: int) -> List[GroupMembership]:
    group = await _get_group(db, group_id)
    if group.privacy != GroupPrivacy.PUBLIC and not await is_group_member(db, group_id, viewer_id):
        raise NotAuthorizedError("You must be a member of this group.")

    result = await db.execute(
        select(GroupMembership)
        .where(GroupMembership.group_id == group_id, GroupMembership.status == MembershipStatus.JOINED)
        .order_by(GroupMembership.created_at.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return result.scalars().all()
