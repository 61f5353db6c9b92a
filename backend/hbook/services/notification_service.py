"""
Hbook Backend — Notifications
==============================

What:  The viewer's notification inbox, its unread counter and mark-as-read.
How:   The inbox is one paged statement joining the issuer (always present)
       and the post (LIKE / COMMENT only, hence the outer join).
Who:   routes/notifications.py
"""

import logging
from typing import Optional

from sqlalchemy import false, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.exceptions import DatabaseError, HbookError
from hbook.models import Notification, Post, User
from hbook.schemas.notification import (
    NotificationCountInfo,
    NotificationData,
    NotificationIssuer,
    NotificationPost,
    NotificationsPage,
)
from hbook.services.auth_service import ViewerContext
from hbook.services.projector import require_viewer
from hbook.services.read_models import notification_pager

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Stateless service for the notification inbox.

    Notifications are written by RelationService inside the like / follow
    transactions; this service only reads them and flips `read`.
    """

    async def list_notifications(
        self,
        db: AsyncSession,
        viewer: Optional[ViewerContext],
        cursor: Optional[str] = None,
    ) -> NotificationsPage:
        """Newest first, ten per page."""
        viewer = require_viewer(viewer)
        statement = (
            select(Notification, User, Post.content.label("post_content"))
            .join(User, Notification.issuer_id == User.id)
            .outerjoin(Post, Notification.post_id == Post.id)
            .where(Notification.recipient_id == viewer.id)
        )
        try:
            page = await notification_pager.fetch_page(db, statement, cursor)
            return NotificationsPage(
                notifications=[self._to_data(row) for row in page.items],
                next_cursor=page.next_cursor,
            )
        except HbookError:
            raise
        except Exception as e:
            logger.error("Database error loading notifications: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load notifications. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def unread_count(
        self, db: AsyncSession, viewer: Optional[ViewerContext]
    ) -> NotificationCountInfo:
        viewer = require_viewer(viewer)
        try:
            count = await db.scalar(
                select(func.count())
                .select_from(Notification)
                .where(Notification.recipient_id == viewer.id, Notification.read == false())
            )
        except Exception as e:
            logger.error("Database error counting notifications: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})
        return NotificationCountInfo(unread_count=count or 0)

    async def mark_all_read(self, db: AsyncSession, viewer: Optional[ViewerContext]) -> int:
        """
        Mark every unread notification of the viewer as read.

        Returns:
            Number of notifications changed. The request session commits.
        """
        viewer = require_viewer(viewer)
        try:
            result = await db.execute(
                update(Notification)
                .where(Notification.recipient_id == viewer.id, Notification.read == false())
                .values(read=True)
            )
        except Exception as e:
            logger.error("Database error marking notifications read: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})
        logger.info("Marked %d notifications read for %s", result.rowcount, viewer.id)
        return result.rowcount

    @staticmethod
    def _to_data(row) -> NotificationData:
        notification, issuer = row.Notification, row.User
        post_content = row.post_content
        return NotificationData(
            id=notification.id,
            type=notification.type,
            read=notification.read,
            created_at=notification.created_at,
            issuer_id=notification.issuer_id,
            post_id=notification.post_id,
            issuer=NotificationIssuer(
                username=issuer.username,
                display_name=issuer.display_name,
                avatar_url=issuer.avatar_url,
            ),
            post=NotificationPost(content=post_content) if post_content is not None else None,
        )


notification_service = NotificationService()
