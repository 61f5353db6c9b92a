"""
Hbook Backend — Search Route
=============================

What:  GET /api/search?q=...&cursor=...
How:   Full-text search over post content and author names; results page
       like the for-you feed (newest first, ten per page).

An empty or whitespace-only `q` is not an error: it returns
{"posts": [], "nextCursor": null}.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.database import get_db_session
from hbook.schemas.common import ErrorResponse
from hbook.schemas.post import PostsPage
from hbook.services.auth_service import ViewerContext, get_current_viewer
from hbook.services.post_service import post_service

router = APIRouter(prefix="/api", tags=["Search"])


@router.get(
    "/search",
    response_model=PostsPage,
    responses={
        401: {"description": "No valid session", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Search posts",
)
async def search_posts(
    q: str = Query(default="", max_length=200, description="Search terms; all must match."),
    cursor: str | None = Query(default=None, description="nextCursor from the previous page."),
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> PostsPage:
    return await post_service.search(db, viewer, q, cursor)
