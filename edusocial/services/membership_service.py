from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import NotAuthorizedError
from edusocial.models import Follow, Group, GroupMembership, Room, RoomMembership
from edusocial.schemas.follows import FollowTarget
from edusocial.schemas.groups import ROLE_RANK, MembershipStatus, ResourceRole, outranks


async def get_group_membership(db: AsyncSession, group_id: str, user_id: str) -> Optional[GroupMembership]:
    result = await db.execute(
        select(GroupMembership).where(
            GroupMembership.group_id == group_id,
            GroupMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_room_membership(db: AsyncSession, room_id: str, user_id: str) -> Optional[RoomMembership]:
    result = await db.execute(
        select(RoomMembership).where(
            RoomMembership.room_id == room_id,
            RoomMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def is_group_member(db: AsyncSession, group_id: str, user_id: str) -> bool:
    membership = await get_group_membership(db, group_id, user_id)
    return membership is not None and membership.status == MembershipStatus.JOINED


async def is_room_member(db: AsyncSession, room_id: str, user_id: str) -> bool:
    membership = await get_room_membership(db, room_id, user_id)
    return membership is not None and membership.status == MembershipStatus.JOINED


async def is_following(db: AsyncSession, user_id: str, kind: FollowTarget, target_id: str) -> bool:
    result = await db.execute(
        select(Follow.id).where(
            Follow.follower_id == user_id,
            Follow.following_kind == kind,
            Follow.following_id == target_id,
        )
    )
    return result.first() is not None


async def joined_group_ids(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(
        select(GroupMembership.group_id).where(
            GroupMembership.user_id == user_id,
            GroupMembership.status == MembershipStatus.JOINED,
        )
    )
    return list(result.scalars().all())


async def joined_room_ids(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(
        select(RoomMembership.room_id).where(
            RoomMembership.user_id == user_id,
            RoomMembership.status == MembershipStatus.JOINED,
        )
    )
    return list(result.scalars().all())


async def followed_target_ids(db: AsyncSession, user_id: str) -> List[str]:
    """Ids of every institution and department the user follows."""
    result = await db.execute(select(Follow.following_id).where(Follow.follower_id == user_id))
    return list(result.scalars().all())


async def adjust_group_members(db: AsyncSession, group_id: str, delta: int) -> None:
    await db.execute(
        update(Group).where(Group.id == group_id).values(members_count=Group.members_count + delta)
    )


async def adjust_room_members(db: AsyncSession, room_id: str, delta: int) -> None:
    await db.execute(
        update(Room).where(Room.id == room_id).values(members_count=Room.members_count + delta)
    )


def ensure_role(membership, minimum: ResourceRole, message: str) -> None:
    """Raise unless ``membership`` is JOINED with at least the ``minimum`` role."""
    if (
        membership is None
        or membership.status != MembershipStatus.JOINED
        or ROLE_RANK[membership.role] < ROLE_RANK[minimum]
    ):
        raise NotAuthorizedError(message)


def ensure_can_manage(actor, target, new_role: ResourceRole = None) -> None:
    """
    Enforce the OWNER > ADMIN > MODERATOR > MEMBER hierarchy for an action
    ``actor`` takes on ``target``; with ``new_role`` it is a role change.
    """
    if not outranks(actor.role, target.role):
        raise NotAuthorizedError("You cannot manage a member with an equal or higher role.")
    if new_role is None:
        return
    if new_role == ResourceRole.OWNER:
        raise NotAuthorizedError("Ownership cannot be granted.")
    if not outranks(actor.role, new_role):
        raise NotAuthorizedError("You cannot grant a role equal to or above your own.")
