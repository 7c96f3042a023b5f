import logging
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.config import settings
from edusocial.schemas.groups import (
    GroupCreate,
    GroupResponse,
    JoinRequestDecision,
    JoinResult,
    MembershipResponse,
    MessageResponse,
    RoleUpdate,
)
from edusocial.services.group_service import (
    create_group,
    join_group,
    leave_group,
    list_members,
    manage_join_request,
    remove_member,
    update_member_role,
)

# Configure logging for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])

@router.post("", response_model=GroupResponse, status_code=201)
async def create_group_api(
    request: GroupCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await create_group(db, current_user["uid"], request)

@router.post("/{group_id}/join", response_model=JoinResult)
async def join_group_api(
    group_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Join a public group, or request to join a private or closed one.
    """
    return await join_group(db, current_user["uid"], group_id)

@router.delete("/{group_id}/leave", response_model=MessageResponse)
async def leave_group_api(
    group_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await leave_group(db, current_user["uid"], group_id)

@router.post("/{group_id}/requests/{user_id}", response_model=MessageResponse)
async def manage_join_request_api(
    group_id: str,
    user_id: str,
    request: JoinRequestDecision,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Accept or reject a pending join request. Moderators and above only.
    """
    return await manage_join_request(db, current_user["uid"], group_id, user_id, request.action)

@router.patch("/{group_id}/members/{user_id}/role", response_model=MembershipResponse)
async def update_member_role_api(
    group_id: str,
    user_id: str,
    request: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await update_member_role(db, current_user["uid"], group_id, user_id, request.role)

@router.delete("/{group_id}/members/{user_id}", response_model=MessageResponse)
async def remove_member_api(
    group_id: str,
    user_id: str,
    ban: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await remove_member(db, current_user["uid"], group_id, user_id, ban=ban)

@router.get("/{group_id}/members", response_model=List[MembershipResponse])
async def list_members_api(
    group_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await list_members(db, current_user["uid"], group_id, page, limit)
