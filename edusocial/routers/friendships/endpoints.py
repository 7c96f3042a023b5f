import logging
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.config import settings
from edusocial.schemas.friends import (
    ConnectionsCountResponse,
    FriendRequestCreate,
    FriendRequestResult,
    FriendshipListItem,
    FriendshipListType,
    RelationshipStatusResponse,
    SuccessResponse,
)
from edusocial.services.friends_service import (
    accept_friend_request,
    block_user,
    cancel_or_reject_request,
    get_relationship_label,
    list_friendships,
    recompute_connections_count,
    send_friend_request,
    unblock_user,
    unfriend,
)

# Configure logging for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/friendships", tags=["friendships"])

@router.post("/requests", response_model=FriendRequestResult)
async def send_friend_request_api(
    request: FriendRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Send a friend request to another user.

    If that user already sent the caller a request, it is accepted instead
    and the response status is ACCEPTED.

    Args:
        request: FriendRequestCreate with the recipient's ID
        db: Database session
        current_user: Currently authenticated user

    Returns:
        FriendRequestResult: Resulting status and record ID
    """
    return await send_friend_request(db, current_user["uid"], request.recipient_id)

@router.post("/requests/{friendship_id}/accept", response_model=FriendRequestResult)
async def accept_friend_request_api(
    friendship_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await accept_friend_request(db, current_user["uid"], friendship_id)

@router.delete("/requests/{friendship_id}", response_model=SuccessResponse)
async def cancel_or_reject_request_api(
    friendship_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Cancel a request you sent, or reject one you received."""
    return await cancel_or_reject_request(db, current_user["uid"], friendship_id)

@router.delete("/friends/{user_id}", response_model=SuccessResponse)
async def unfriend_api(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await unfriend(db, current_user["uid"], user_id)

@router.post("/block/{user_id}", response_model=SuccessResponse)
async def block_user_api(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Block a user, replacing any friendship or pending request between you.
    """
    return await block_user(db, current_user["uid"], user_id)

@router.delete("/block/{user_id}", response_model=SuccessResponse)
async def unblock_user_api(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await unblock_user(db, current_user["uid"], user_id)

@router.get("/status/{user_id}", response_model=RelationshipStatusResponse)
async def get_relationship_status_api(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await get_relationship_label(db, current_user["uid"], user_id)

@router.get("", response_model=List[FriendshipListItem])
async def list_friendships_api(
    type: FriendshipListType = FriendshipListType.FRIENDS,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    List incoming requests, sent requests, friends or blocked users.

    Args:
        type: Which list to return
        page: 1-based page number
        limit: Items per page
        db: Database session
        current_user: Currently authenticated user

    Returns:
        List[FriendshipListItem]: Records with the other user resolved
    """
    return await list_friendships(db, current_user["uid"], type, page, limit)

@router.post("/recount", response_model=ConnectionsCountResponse)
async def recount_connections_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Rebuild the caller's cached connections count from their friendships."""
    count = await recompute_connections_count(db, current_user["uid"])
    return ConnectionsCountResponse(user_id=current_user["uid"], connections_count=count)
