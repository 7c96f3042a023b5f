import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.schemas.follows import (
    DepartmentResponse,
    FollowCreate,
    FollowResponse,
    FollowTarget,
    InstitutionResponse,
)
from edusocial.schemas.friends import SuccessResponse
from edusocial.services.follow_service import (
    follow,
    list_departments,
    list_follows,
    list_institutions,
    unfollow,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/follows", tags=["follows"])
institutions_router = APIRouter(prefix="/institutions", tags=["institutions"])

@router.post("", response_model=FollowResponse, status_code=201)
async def follow_api(
    request: FollowCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await follow(db, current_user["uid"], request.following_kind, request.following_id)

@router.delete("/{kind}/{target_id}", response_model=SuccessResponse)
async def unfollow_api(
    kind: FollowTarget,
    target_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await unfollow(db, current_user["uid"], kind, target_id)

@router.get("", response_model=List[FollowResponse])
async def list_follows_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await list_follows(db, current_user["uid"])

@institutions_router.get("", response_model=List[InstitutionResponse])
async def list_institutions_api(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await list_institutions(db)

@institutions_router.get("/{institution_id}/departments", response_model=List[DepartmentResponse])
async def list_departments_api(
    institution_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await list_departments(db, institution_id)
