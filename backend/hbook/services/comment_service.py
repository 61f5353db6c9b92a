"""
Hbook Backend — Comment Thread
===============================

What:  Pages through a post's comments, oldest first, five at a time.
Who:   GET /api/posts/{post_id}/comments

The page's continuation cursor leaves this service as `previous_cursor`
(the key the comment thread client reads); it is the id of the first
comment that did not fit, exactly like every other list's next_cursor.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.exceptions import DatabaseError, HbookError
from hbook.models import Comment, User
from hbook.schemas.post import CommentData, CommentsPage
from hbook.services.auth_service import ViewerContext
from hbook.services.projector import require_viewer
from hbook.services.read_models import comment_pager, to_user_data, user_projector

logger = logging.getLogger(__name__)


class CommentService:

    async def list_comments(
        self,
        db: AsyncSession,
        viewer: Optional[ViewerContext],
        post_id: str,
        cursor: Optional[str] = None,
    ) -> CommentsPage:
        viewer = require_viewer(viewer)
        statement = (
            select(Comment, User, *user_projector.columns(viewer.id))
            .join(User, Comment.user_id == User.id)
            .where(Comment.post_id == post_id)
        )
        try:
            page = await comment_pager.fetch_page(db, statement, cursor)
            comments = [
                CommentData(
                    id=row.Comment.id,
                    content=row.Comment.content,
                    post_id=row.Comment.post_id,
                    created_at=row.Comment.created_at,
                    user=to_user_data(row.User, row),
                )
                for row in page.items
            ]
            return CommentsPage(comments=comments, previous_cursor=page.next_cursor)
        except HbookError:
            raise
        except Exception as e:
            logger.error("Database error loading comments of %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load comments. Please try again.",
                context={"post_id": post_id},
            )


comment_service = CommentService()
