import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import BadRequestError, ConflictError, NotAuthorizedError, NotFoundError
from edusocial.models import Department, Institution, User
from edusocial.schemas.follows import FollowTarget
from edusocial.schemas.users import (
    AcademicProfileUpdate,
    AccountUpdate,
    PrivacyUpdate,
    ProfileResponse,
    UserCreate,
    UserResponse,
    UserType,
)
from edusocial.services.follow_service import auto_follow
from edusocial.services.friends_service import get_relationship_label

# Configure logging for this module
logger = logging.getLogger(__name__)

# Granted by operators, never through self-registration
RESTRICTED_USER_TYPES = (UserType.ADMIN, UserType.OWNER)


async def get_user_by_id(db: AsyncSession, user_id: str) -> User:
    """
    Retrieve a user by their ID.

    Raises:
        NotFoundError: If the user does not exist
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


async def get_user_by_name(db: AsyncSession, user_name: str) -> User:
    result = await db.execute(select(User).where(func.lower(User.user_name) == user_name.lower()))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found.")
    return user


async def find_institution_by_email(db: AsyncSession, email: Optional[str]) -> Optional[Institution]:
    """The institution whose domain list contains the e-mail's domain, if any."""
    if not email or "@" not in email:
        return None
    domain = email.rsplit("@", 1)[1].strip().lower()

    result = await db.execute(select(Institution).where(Institution.valid_domains != ""))
    for institution in result.scalars().all():
        if domain in institution.domains:
            return institution
    return None


async def _check_academic_link(db: AsyncSession, institution_id: Optional[str], department_id: Optional[str]) -> None:
    if institution_id and await db.get(Institution, institution_id) is None:
        raise BadRequestError("Unknown institution.")
    if department_id:
        department = await db.get(Department, department_id)
        if department is None:
            raise BadRequestError("Unknown department.")
        if institution_id and department.institution_id != institution_id:
            raise BadRequestError("Department does not belong to the selected institution.")


def _academic_targets(institution_id: Optional[str], department_id: Optional[str]) -> List[Tuple[FollowTarget, str]]:
    targets = []
    if institution_id:
        targets.append((FollowTarget.INSTITUTION, institution_id))
    if department_id:
        targets.append((FollowTarget.DEPARTMENT, department_id))
    return targets


async def create_user(db: AsyncSession, user_id: str, data: UserCreate) -> User:
    """
    Register the authenticated identity as a user profile.

    An e-mail whose domain belongs to an institution links the user to that
    institution and marks the account as a verified student e-mail. The user
    then follows the linked institution and department.

    Args:
        db: AsyncSession for database operations
        user_id: The authenticated uid, used as the user's primary key
        data: Profile fields

    Returns:
        User: The created user

    Raises:
        NotAuthorizedError: If the requested user type is ADMIN or OWNER
        ConflictError: If the profile, user name or e-mail already exists
        BadRequestError: If the institution or department is unknown or mismatched
    """
    if data.user_type in RESTRICTED_USER_TYPES:
        raise NotAuthorizedError("Restricted user type.")

    if await db.get(User, user_id) is not None:
        raise ConflictError("User profile already exists.")

    email = data.email.strip().lower() if data.email else None
    taken_conditions = [func.lower(User.user_name) == data.user_name.lower()]
    if email:
        taken_conditions.append(User.email == email)
    taken = await db.execute(select(User.id).where(or_(*taken_conditions)))
    if taken.first() is not None:
        raise ConflictError("User name or e-mail already in use.")

    matched = await find_institution_by_email(db, email)
    institution_id = matched.id if matched else data.institution_id
    await _check_academic_link(db, institution_id, data.department_id)

    user = User(
        id=user_id,
        user_name=data.user_name,
        full_name=data.full_name,
        email=email,
        user_type=data.user_type,
        institution_id=institution_id,
        department_id=data.department_id,
        is_student_email=matched is not None,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User name or e-mail already in use.")

    await auto_follow(db, user_id, _academic_targets(institution_id, data.department_id))
    await db.refresh(user)

    logger.info(f"Registered user {user.user_name} ({user_id}), institution {institution_id}")
    return user


async def update_academic_profile(db: AsyncSession, user_id: str, data: AcademicProfileUpdate) -> User:
    """
    Change the user's institution and/or department and follow the new ones.

    Raises:
        BadRequestError: If nothing is given, or the ids are unknown or mismatched
        NotAuthorizedError: If the account is linked through a verified student e-mail
    """
    if not data.institution_id and not data.department_id:
        raise BadRequestError("At least one field is required to update.")

    user = await get_user_by_id(db, user_id)
    if user.is_student_email:
        raise NotAuthorizedError("Verified accounts cannot change Institution or Department.")

    institution_id = data.institution_id or user.institution_id
    department_id = data.department_id
    if department_id is None and data.institution_id and user.department_id:
        # Keep the current department only if it belongs to the new institution
        current = await db.get(Department, user.department_id)
        department_id = user.department_id if current and current.institution_id == institution_id else None
    elif department_id is None:
        department_id = user.department_id
    await _check_academic_link(db, institution_id, department_id)

    user.institution_id = institution_id
    user.department_id = department_id
    await db.commit()

    await auto_follow(db, user_id, _academic_targets(data.institution_id, data.department_id))
    await db.refresh(user)
    return user


async def update_account(db: AsyncSession, user_id: str, data: AccountUpdate) -> User:
    """
    Update general account details. The user name is fixed once registered.

    Raises:
        BadRequestError: If a user name change is attempted or nothing is given
    """
    if data.user_name is not None:
        raise BadRequestError("Username cannot be changed.")
    fields = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"user_name"})
    if not fields:
        raise BadRequestError("At least one field is required to update.")

    user = await get_user_by_id(db, user_id)
    for name, value in fields.items():
        setattr(user, name, value)
    await db.commit()
    await db.refresh(user)
    return user


async def get_profile(db: AsyncSession, viewer_id: str, user_name: str) -> ProfileResponse:
    """Public profile of ``user_name`` with the viewer's relationship to them."""
    user = await get_user_by_name(db, user_name)
    status = await get_relationship_label(db, viewer_id, user.id)
    return ProfileResponse(
        **UserResponse.model_validate(user).model_dump(),
        relationship=status.label.value,
        friendship_id=status.friendship_id,
    )


async def update_privacy(db: AsyncSession, user_id: str, data: PrivacyUpdate) -> User:
    user = await get_user_by_id(db, user_id)
    user.friend_request_policy = data.friend_request_policy
    await db.commit()
    await db.refresh(user)
    return user


async def is_student_email(db: AsyncSession, email: str) -> bool:
    """Whether the e-mail's domain belongs to any institution's domain list."""
    return await find_institution_by_email(db, email) is not None
