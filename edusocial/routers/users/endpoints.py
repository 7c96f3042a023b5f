import logging
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.config import settings
from edusocial.schemas.posts import PostResponse
from edusocial.schemas.users import (
    AcademicProfileUpdate,
    AccountUpdate,
    EmailCheckResponse,
    PrivacyUpdate,
    ProfileResponse,
    SuggestionsPage,
    UserCreate,
    UserResponse,
)
from edusocial.services.friends_service import get_friend_suggestions
from edusocial.services.post_service import get_user_timeline
from edusocial.services.user_service import (
    create_user,
    get_profile,
    get_user_by_id,
    get_user_by_name,
    is_student_email,
    update_academic_profile,
    update_account,
    update_privacy,
)

# Configure logging for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/me", response_model=UserResponse, status_code=201)
async def register_user_api(
    request: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Register the authenticated identity as a user profile.

    Args:
        request: Profile fields for the new user
        db: Database session
        current_user: Currently authenticated user

    Returns:
        UserResponse: The created profile
    """
    return await create_user(db, current_user["uid"], request)

@router.get("/me", response_model=UserResponse)
async def get_me_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await get_user_by_id(db, current_user["uid"])

@router.patch("/me", response_model=UserResponse)
async def update_account_api(
    request: AccountUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Update general account details.

    Raises:
        BadRequestError: If the request tries to change the user name
    """
    return await update_account(db, current_user["uid"], request)

@router.patch("/me/academic", response_model=UserResponse)
async def update_academic_profile_api(
    request: AcademicProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Change institution and/or department; the user follows the new ones.
    Accounts verified through a student e-mail cannot change either (403).
    """
    return await update_academic_profile(db, current_user["uid"], request)

@router.patch("/me/privacy", response_model=UserResponse)
async def update_privacy_api(
    request: PrivacyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await update_privacy(db, current_user["uid"], request)

@router.get("/suggestions", response_model=SuggestionsPage)
async def get_suggestions_api(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    People the current user may know: same institution, same department or
    friends of friends, ranked by mutual friends.
    """
    return await get_friend_suggestions(db, current_user["uid"], page, limit)

@router.get("/check-email", response_model=EmailCheckResponse)
async def check_email_api(
    email: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return EmailCheckResponse(email=email, is_student_email=await is_student_email(db, email))

@router.get("/{user_name}", response_model=ProfileResponse)
async def get_profile_api(
    user_name: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Get a user's profile together with the caller's relationship to them.

    Raises:
        NotFoundError: If the user does not exist or has blocked the caller
    """
    return await get_profile(db, current_user["uid"], user_name)

@router.get("/{user_name}/posts", response_model=List[PostResponse])
async def get_user_posts_api(
    user_name: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    user = await get_user_by_name(db, user_name)
    return await get_user_timeline(db, current_user["uid"], user.id, page, limit)
