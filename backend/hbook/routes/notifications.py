"""
Hbook Backend — Notification Route Handlers
============================================

Endpoints:
    GET   /api/notifications               inbox, newest first
    GET   /api/notifications/unread-count  {"unreadCount": n}
    PATCH /api/notifications/mark-as-read  204

The unread counter is polled by the navigation bar, so it is served with
Cache-Control: no-store.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.database import get_db_session
from hbook.schemas.common import ErrorResponse
from hbook.schemas.notification import NotificationCountInfo, NotificationsPage
from hbook.services.auth_service import ViewerContext, get_current_viewer
from hbook.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

_ERRORS = {
    401: {"description": "No valid session", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=NotificationsPage,
    responses=_ERRORS,
    summary="Notification inbox",
)
async def list_notifications(
    cursor: str | None = Query(default=None, description="nextCursor from the previous page."),
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationsPage:
    return await notification_service.list_notifications(db, viewer, cursor)


@router.get(
    "/unread-count",
    response_model=NotificationCountInfo,
    responses=_ERRORS,
    summary="Number of unread notifications",
)
async def unread_count(
    response: Response,
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationCountInfo:
    response.headers["Cache-Control"] = "no-store"
    return await notification_service.unread_count(db, viewer)


@router.patch(
    "/mark-as-read",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_ERRORS,
    summary="Mark every notification as read",
)
async def mark_as_read(
    viewer: ViewerContext = Depends(get_current_viewer),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await notification_service.mark_all_read(db, viewer)
