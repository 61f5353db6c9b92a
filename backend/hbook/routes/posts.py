"""
Hbook Backend — Post Route Handlers
====================================

What:  Feeds, comments and the like / bookmark toggles of a post.
How:   Resolve the viewer (401 otherwise), delegate to a service, return the
       camelCase schema. Mutations answer 204 No Content.
Who:   The for-you and bookmarks pages, post cards, the comment thread.

Endpoints:
    GET    /api/posts/for-you
    GET    /api/posts/bookmarked
    GET    /api/posts/{post_id}/comments
    GET    /api/posts/{post_id}/likes      POST / DELETE same path
    GET    /api/posts/{post_id}/bookmark   POST / DELETE same path
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.database import TransactionRunner, get_db_session, get_transaction_runner
from hbook.schemas.common import ErrorResponse
from hbook.schemas.post import BookmarkInfo, CommentsPage, LikeInfo, PostsPage
from hbook.services.auth_service import ViewerContext, get_current_viewer
from hbook.services.comment_service import comment_service
from hbook.services.post_service import post_service
from hbook.services.relation_service import relation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

CURSOR_DESCRIPTION = "nextCursor from the previous page. Omit for the first page."

_READ_ERRORS = {
    401: {"description": "No valid session", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}
_POST_ERRORS = {
    **_READ_ERRORS,
    404: {"description": "Post not found", "model": ErrorResponse},
}


# ── Feeds ─────────────────────────────────────────────────────────────────
@router.get(
    "/for-you",
    response_model=PostsPage,
    responses=_READ_ERRORS,
    summary="For-you feed",
    description="All posts, newest first, ten per page.",
)
async def for_you(
    cursor: str | None = Query(default=None, description=CURSOR_DESCRIPTION),
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> PostsPage:
    return await post_service.for_you(db, viewer, cursor)


@router.get(
    "/bookmarked",
    response_model=PostsPage,
    responses=_READ_ERRORS,
    summary="Bookmarked posts",
    description="The viewer's bookmarks, most recently saved first. The cursor is a bookmark id.",
)
async def bookmarked(
    cursor: str | None = Query(default=None, description=CURSOR_DESCRIPTION),
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> PostsPage:
    return await post_service.bookmarked(db, viewer, cursor)


# ── Comments ──────────────────────────────────────────────────────────────
@router.get(
    "/{post_id}/comments",
    response_model=CommentsPage,
    responses=_READ_ERRORS,
    summary="Comments of a post",
    description=(
        "Oldest first, five per page. The continuation cursor is returned as "
        "`previousCursor`."
    ),
)
async def list_comments(
    post_id: str,
    cursor: str | None = Query(default=None, description="previousCursor from the previous page."),
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> CommentsPage:
    return await comment_service.list_comments(db, viewer, post_id, cursor)


# ── Likes ─────────────────────────────────────────────────────────────────
@router.get(
    "/{post_id}/likes",
    response_model=LikeInfo,
    responses=_POST_ERRORS,
    summary="Like count and the viewer's like flag",
)
async def get_likes(
    post_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> LikeInfo:
    return await relation_service.like_info(db, viewer, post_id)


@router.post(
    "/{post_id}/likes",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_POST_ERRORS,
    summary="Like a post",
    description="Idempotent. Notifies the author the first time, unless the viewer is the author.",
)
async def like_post(
    post_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> None:
    await relation_service.like(runner, viewer, post_id)


@router.delete(
    "/{post_id}/likes",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_POST_ERRORS,
    summary="Remove the viewer's like",
)
async def unlike_post(
    post_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> None:
    await relation_service.unlike(runner, viewer, post_id)


# ── Bookmarks ─────────────────────────────────────────────────────────────
@router.get(
    "/{post_id}/bookmark",
    response_model=BookmarkInfo,
    responses=_READ_ERRORS,
    summary="Whether the viewer bookmarked the post",
)
async def get_bookmark(
    post_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> BookmarkInfo:
    return await relation_service.bookmark_info(db, viewer, post_id)


@router.post(
    "/{post_id}/bookmark",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_POST_ERRORS,
    summary="Bookmark a post",
)
async def bookmark_post(
    post_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> None:
    await relation_service.bookmark(runner, viewer, post_id)


@router.delete(
    "/{post_id}/bookmark",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_READ_ERRORS,
    summary="Remove a bookmark",
)
async def unbookmark_post(
    post_id: str,
    viewer: ViewerContext = Depends(get_current_viewer),
    runner: TransactionRunner = Depends(get_transaction_runner),
) -> None:
    await relation_service.unbookmark(runner, viewer, post_id)
