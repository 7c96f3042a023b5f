import logging
from typing import List, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import ConflictError, NotFoundError
from edusocial.models import Department, Follow, Institution
from edusocial.schemas.follows import FollowTarget

logger = logging.getLogger(__name__)

_FOLLOWABLE = {
    FollowTarget.INSTITUTION: Institution,
    FollowTarget.DEPARTMENT: Department,
}


async def _adjust_followers(db: AsyncSession, kind: FollowTarget, target_id: str, delta: int) -> None:
    model = _FOLLOWABLE[kind]
    await db.execute(
        update(model).where(model.id == target_id).values(followers_count=model.followers_count + delta)
    )


async def follow(db: AsyncSession, user_id: str, kind: FollowTarget, target_id: str) -> Follow:
    """
    Follow an institution or department.

    Raises:
        NotFoundError: If the target does not exist
        ConflictError: If the user already follows it
    """
    if await db.get(_FOLLOWABLE[kind], target_id) is None:
        raise NotFoundError(f"{kind.value.title()} not found.")

    existing = await db.execute(
        select(Follow.id).where(
            Follow.follower_id == user_id,
            Follow.following_kind == kind,
            Follow.following_id == target_id,
        )
    )
    if existing.first() is not None:
        raise ConflictError("You are already following this.")

    entry = Follow(follower_id=user_id, following_kind=kind, following_id=target_id)
    db.add(entry)
    try:
        await _adjust_followers(db, kind, target_id, 1)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You are already following this.")
    await db.refresh(entry)
    return entry


async def auto_follow(db: AsyncSession, user_id: str, targets: List[Tuple[FollowTarget, str]]) -> int:
    """
    Follow each (kind, id) in ``targets`` the user does not follow yet.

    Used when a user's institution or department is set. A failure is logged
    and rolled back; it never fails the profile change that triggered it.

    Returns:
        int: Number of follows created
    """
    created = 0
    try:
        for kind, target_id in targets:
            existing = await db.execute(
                select(Follow.id).where(
                    Follow.follower_id == user_id,
                    Follow.following_kind == kind,
                    Follow.following_id == target_id,
                )
            )
            if existing.first() is not None:
                continue
            db.add(Follow(follower_id=user_id, following_kind=kind, following_id=target_id))
            await _adjust_followers(db, kind, target_id, 1)
            created += 1
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Auto-follow failed for user {user_id}: {e}")
        return 0
    return created


async def unfollow(db: AsyncSession, user_id: str, kind: FollowTarget, target_id: str) -> dict:
    result = await db.execute(
        delete(Follow).where(
            Follow.follower_id == user_id,
            Follow.following_kind == kind,
            Follow.following_id == target_id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("You are not following this.")
    await _adjust_followers(db, kind, target_id, -1)
    await db.commit()
    return {"success": True}


async def list_follows(db: AsyncSession, user_id: str) -> List[Follow]:
    result = await db.execute(
        select(Follow).where(Follow.follower_id == user_id).order_by(Follow.created_at.desc())
    )
    return result.scalars().all()


async def list_institutions(db: AsyncSession) -> List[Institution]:
    result = await db.execute(select(Institution).order_by(Institution.name))
    return result.scalars().all()


async def list_departments(db: AsyncSession, institution_id: str) -> List[Department]:
    if await db.get(Institution, institution_id) is None:
        raise NotFoundError("Institution not found.")
    result = await db.execute(
        select(Department).where(Department.institution_id == institution_id).order_by(Department.name)
    )
    return result.scalars().all()
