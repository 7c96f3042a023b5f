import logging
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.config import settings
from edusocial.schemas.friends import SuccessResponse
from edusocial.schemas.notifications import NotificationResponse, UnreadCountResponse
from edusocial.services.notification_service import (
    get_unread_count,
    get_user_notifications,
    mark_all_read,
    mark_notification_read,
)

# Configure logging for notification-related operations
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/notifications", tags=["notifications"])

@router.get("", response_model=List[NotificationResponse])
async def get_notifications_api(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Retrieve a page of notifications for the current user, newest first.

    Args:
        page: 1-based page number
        limit: Notifications per page
        db: Database session dependency
        current_user: Current authenticated user information

    Returns:
        List[NotificationResponse]: Notifications that are not hidden
    """
    return await get_user_notifications(db, current_user["uid"], page, limit)

@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return UnreadCountResponse(unread_count=await get_unread_count(db, current_user["uid"]))

@router.patch("/read-all", response_model=SuccessResponse)
async def mark_all_read_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await mark_all_read(db, current_user["uid"])

@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read_api(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await mark_notification_read(db, current_user["uid"], notification_id)
