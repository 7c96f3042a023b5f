import logging
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.config import settings
from edusocial.schemas.friends import SuccessResponse
from edusocial.schemas.posts import LikeToggleResponse, PostCreate, PostResponse, PostTarget
from edusocial.services.post_service import (
    build_feed,
    create_post,
    delete_post,
    get_post,
    get_target_feed,
    toggle_like,
)

# Configure logging for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])

@router.post("", response_model=PostResponse, status_code=201)
async def create_post_api(
    request: PostCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Create a post on your wall, a friend's wall, a group, a room, an
    institution or a department.
    """
    return await create_post(db, current_user["uid"], request)

@router.get("/feed", response_model=List[PostResponse])
async def get_feed_api(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Home feed for the current user, newest first.

    Args:
        page: 1-based page number
        limit: Posts per page
        db: Database session
        current_user: Currently authenticated user

    Returns:
        List[PostResponse]: Posts annotated with is_liked_by_me
    """
    return await build_feed(db, current_user["uid"], page, limit)

@router.get("/target/{kind}/{target_id}", response_model=List[PostResponse])
async def get_target_feed_api(
    kind: PostTarget,
    target_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await get_target_feed(db, current_user["uid"], kind, target_id, page, limit)

@router.get("/{post_id}", response_model=PostResponse)
async def get_post_api(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await get_post(db, current_user["uid"], post_id)

@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post_api(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await delete_post(db, current_user["uid"], post_id)

@router.post("/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like_api(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await toggle_like(db, current_user["uid"], post_id)
