"""
Hbook Backend — User Route Handlers
====================================

Endpoints:
    GET    /api/users/username/{username}   profile (case-insensitive)
    GET    /api/users/{user_id}/posts       the user's posts, newest first
    GET    /api/users/{user_id}/followers   follower count + viewer flag
    POST   /api/users/{user_id}/followers   follow   (204)
    DELETE /api/users/{user_id}/followers   unfollow (204)
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.database import TransactionRunner, get_db_session, get_transaction_runner
from hbook.schemas.common import ErrorResponse
from hbook.schemas.post import PostsPage
from hbook.schemas.user import FollowerInfo, UserData
from hbook.services.auth_service import ViewerContext, get_current_viewer
from hbook.services.post_service import post_service
from hbook.services.relation_service import relation_service
from hbook.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

_ERRORS = {
    401: {"description": "No valid session", "model": ErrorResponse},
    404: {"description": "User not found", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


@router.get(
    "/username/{username}",
    response_model=UserData,
    responses=_ERRORS,
    summary="Profile by username",
)
async def get_user_by_username(
    username: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> UserData:
    return await user_service.get_by_username(db, viewer, username)


@router.get(
    "/{user_id}/posts",
    response_model=PostsPage,
    responses=_ERRORS,
    summary="Posts of a user",
)
async def user_posts(
    user_id: str,
    cursor: str | None = Query(default=None, description="nextCursor from the previous page."),
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> PostsPage:
    return await post_service.user_posts(db, viewer, user_id, cursor)


@router.get(
    "/{user_id}/followers",
    response_model=FollowerInfo,
    responses=_ERRORS,
    summary="Follower count and the viewer's follow flag",
)
async def get_followers(
    user_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> FollowerInfo:
    return await relation_service.follower_info(db, viewer, user_id)


@router.post(
    "/{user_id}/followers",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_ERRORS,
    summary="Follow a user",
    description="Idempotent. Notifies the followed user the first time.",
)
async def follow_user(
    user_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> None:
    await relation_service.follow(runner, viewer, user_id)


@router.delete(
    "/{user_id}/followers",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_ERRORS,
    summary="Unfollow a user",
)
async def unfollow_user(
    user_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> None:
    await relation_service.unfollow(runner, viewer, user_id)
