import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.schemas.groups import MembershipResponse, MessageResponse, RoleUpdate
from edusocial.schemas.rooms import RoomCreate, RoomJoin, RoomJoinResult, RoomResponse
from edusocial.services.room_service import (
    create_room,
    join_room_by_code,
    leave_room,
    list_my_rooms,
    remove_room_member,
    update_room_member_role,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])

@router.post("", response_model=RoomResponse, status_code=201)
async def create_room_api(
    request: RoomCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Create a classroom. Only teachers may create rooms; the response carries
    the 6-character code students join with.
    """
    return await create_room(db, current_user["uid"], request)

@router.post("/join", response_model=RoomJoinResult)
async def join_room_api(
    request: RoomJoin,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await join_room_by_code(db, current_user["uid"], request.code)

@router.get("/mine", response_model=List[RoomResponse])
async def list_my_rooms_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await list_my_rooms(db, current_user["uid"])

@router.delete("/{room_id}/leave", response_model=MessageResponse)
async def leave_room_api(
    room_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await leave_room(db, current_user["uid"], room_id)

@router.patch("/{room_id}/members/{user_id}/role", response_model=MembershipResponse)
async def update_room_member_role_api(
    room_id: str,
    user_id: str,
    request: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await update_room_member_role(db, current_user["uid"], room_id, user_id, request.role)

@router.delete("/{room_id}/members/{user_id}", response_model=MessageResponse)
async def remove_room_member_api(
    room_id: str,
    user_id: str,
    ban: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await remove_room_member(db, current_user["uid"], room_id, user_id, ban=ban)
