import logging
import secrets
import string
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import BadRequestError, ConflictError, NotAuthorizedError, NotFoundError
from edusocial.models import Room, RoomMembership, User
from edusocial.schemas.groups import MembershipStatus, ResourceRole
from edusocial.schemas.notifications import NotificationType, RelatedKind
from edusocial.schemas.rooms import RoomCreate, RoomStatus
from edusocial.schemas.users import UserType
from edusocial.services.membership_service import (
    adjust_room_members,
    ensure_can_manage,
    ensure_role,
    get_room_membership,
)
from edusocial.services.notification_service import dispatch_notification

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 10


def generate_join_code() -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


async def _unused_join_code(db: AsyncSession) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_join_code()
        result = await db.execute(select(Room.id).where(Room.join_code == code))
        if result.first() is None:
            return code
    raise ConflictError("Could not allocate a room code, please retry.")


async def _get_room(db: AsyncSession, room_id: str) -> Room:
    room = await db.get(Room, room_id)
    if room is None:
        raise NotFoundError("Room not found.")
    return room


async def create_room(db: AsyncSession, user_id: str, data: RoomCreate) -> Room:
    """
    Create a classroom with a fresh 6-character join code. Teachers only.

    Raises:
        NotFoundError: If the user has no profile
        NotAuthorizedError: If the user is not a teacher
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    if user.user_type != UserType.TEACHER:
        raise NotAuthorizedError("Only teachers can create rooms.")

    room = Room(
        name=data.name,
        description=data.description,
        course_code=data.course_code,
        session=data.session,
        join_code=await _unused_join_code(db),
        creator_id=user_id,
        members_count=1,
    )
    db.add(room)
    try:
        await db.flush()
        db.add(RoomMembership(
            room_id=room.id,
            user_id=user_id,
            role=ResourceRole.OWNER,
            status=MembershipStatus.JOINED,
        ))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Room code collision, please retry.")
    await db.refresh(room)

    logger.info(f"Room {room.id} created by {user_id} with code {room.join_code}")
    return room


async def join_room_by_code(db: AsyncSession, user_id: str, code: str) -> dict:
    result = await db.execute(
        select(Room).where(Room.join_code == code.strip().upper(), Room.status == RoomStatus.ACTIVE)
    )
    room = result.scalar_one_or_none()
    if room is None:
        raise NotFoundError("Invalid room code.")

    membership = await get_room_membership(db, room.id, user_id)
    if membership is not None:
        if membership.status == MembershipStatus.BANNED:
            raise NotAuthorizedError("You are banned from this room.")
        if membership.status == MembershipStatus.JOINED:
            raise ConflictError("You are already in this room.")
    else:
        membership = RoomMembership(room_id=room.id, user_id=user_id)
        db.add(membership)

    membership.role = ResourceRole.MEMBER
    membership.status = MembershipStatus.JOINED
    try:
        await adjust_room_members(db, room.id, 1)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You are already in this room.")
    return {"message": "Joined room successfully.", "room_id": room.id}


async def list_my_rooms(db: AsyncSession, user_id: str) -> List[Room]:
    result = await db.execute(
        select(Room)
        .join(RoomMembership, RoomMembership.room_id == Room.id)
        .where(RoomMembership.user_id == user_id, RoomMembership.status == MembershipStatus.JOINED)
        .order_by(Room.created_at.desc())
    )
    return result.scalars().all()


async def leave_room(db: AsyncSession, user_id: str, room_id: str) -> dict:
    await _get_room(db, room_id)
    membership = await get_room_membership(db, room_id, user_id)
    if membership is None or membership.status != MembershipStatus.JOINED:
        raise NotFoundError("You are not a member of this room.")
    if membership.role == ResourceRole.OWNER:
        raise BadRequestError("The owner cannot leave the room.")

    membership.status = MembershipStatus.LEFT
    membership.role = ResourceRole.MEMBER
    await adjust_room_members(db, room_id, -1)
    await db.commit()
    return {"message": "You left the room."}


async def update_room_member_role(
    db: AsyncSession, actor_id: str, room_id: str, user_id: str, new_role: ResourceRole
) -> RoomMembership:
    await _get_room(db, room_id)
    actor = await get_room_membership(db, room_id, actor_id)
    ensure_role(actor, ResourceRole.ADMIN, "Only admins and above can change roles.")

    target = await get_room_membership(db, room_id, user_id)
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
        message=f"changed your role to {new_role.value} in the room.",
        related_id=room_id,
        related_kind=RelatedKind.ROOM,
    )
    return target


async def remove_room_member(db: AsyncSession, actor_id: str, room_id: str, user_id: str, ban: bool = False) -> dict:
    await _get_room(db, room_id)
    actor = await get_room_membership(db, room_id, actor_id)
    ensure_role(actor, ResourceRole.MODERATOR, "Only moderators and above can remove members.")

    target = await get_room_membership(db, room_id, user_id)
    if target is None or target.status != MembershipStatus.JOINED:
        raise NotFoundError("Member not found.")
    ensure_can_manage(actor, target)

    await adjust_room_members(db, room_id, -1)
    if ban:
        target.status = MembershipStatus.BANNED
        target.role = ResourceRole.MEMBER
        message = "Member banned."
    else:
        await db.delete(target)
        message = "Member removed."
    await db.commit()
    return {"message": message}
