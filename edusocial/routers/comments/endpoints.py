import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from edusocial.init_db import get_db
from edusocial.common import get_current_user
from edusocial.config import settings
from edusocial.schemas.comments import CommentCreate, CommentResponse
from edusocial.schemas.friends import SuccessResponse
from edusocial.services.comment_service import add_comment, delete_comment, list_comments

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["comments"])

@router.post("/{post_id}", response_model=CommentResponse, status_code=201)
async def add_comment_api(
    post_id: str,
    request: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await add_comment(db, current_user["uid"], post_id, request)

@router.get("/{post_id}", response_model=List[CommentResponse])
async def list_comments_api(
    post_id: str,
    parent_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    List a post's top-level comments, or the replies to ``parent_id``.
    """
    return await list_comments(db, current_user["uid"], post_id, parent_id, page, limit)

@router.delete("/{comment_id}", response_model=SuccessResponse)
async def delete_comment_api(
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return await delete_comment(db, current_user["uid"], comment_id)
