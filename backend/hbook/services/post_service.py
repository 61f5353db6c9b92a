"""
Hbook Backend — Post Feeds
===========================

What:  The four post lists: for-you feed, bookmarks, a user's posts, search.
How:   Every list is post_statement() (posts + author + projection columns)
       narrowed by a WHERE clause and handed to a cursor pager:

           ┌──────────────┐   ┌──────────────────┐   ┌──────────────┐
           │ require      │──▶│ post_statement + │──▶│ pager.fetch  │──▶ PostsPage
           │ viewer (401) │   │ feed filter      │   │ (size + 1)   │
           └──────────────┘   └──────────────────┘   └──────────────┘

Who:   Called by routes/posts.py, routes/users.py and routes/search.py.

Cursor per list:
    for-you, user posts, search: post id   (ordered by post created_at DESC)
    bookmarked:                  bookmark id (ordered by bookmark created_at DESC)
"""

import logging
from typing import Optional

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.exceptions import DatabaseError, HbookError
from hbook.models import Bookmark, Post
from hbook.schemas.post import PostsPage
from hbook.services.auth_service import ViewerContext
from hbook.services.pager import CursorPager
from hbook.services.projector import require_viewer
from hbook.services.read_models import bookmark_pager, feed_pager, post_statement, to_post_data
from hbook.services.search_query import build_text_query, post_search_condition

logger = logging.getLogger(__name__)


class PostService:
    """
    Stateless read service for post lists.

    Error Handling Strategy:
        UnauthorizedError is raised before any statement is built. Store
        failures are logged and wrapped in DatabaseError; application
        errors propagate unchanged.
    """

    async def for_you(
        self,
        db: AsyncSession,
        viewer: Optional[ViewerContext],
        cursor: Optional[str] = None,
    ) -> PostsPage:
        """All posts, newest first."""
        viewer = require_viewer(viewer)
        return await self._page(db, feed_pager, post_statement(viewer.id), cursor, "for-you")

    async def bookmarked(
        self,
        db: AsyncSession,
        viewer: Optional[ViewerContext],
        cursor: Optional[str] = None,
    ) -> PostsPage:
        """The viewer's bookmarked posts, most recently bookmarked first."""
        viewer = require_viewer(viewer)
        statement = (
            post_statement(viewer.id)
            .join(Bookmark, Bookmark.post_id == Post.id)
            .where(Bookmark.user_id == viewer.id)
        )
        return await self._page(db, bookmark_pager, statement, cursor, "bookmarked")

    async def user_posts(
        self,
        db: AsyncSession,
        viewer: Optional[ViewerContext],
        user_id: str,
        cursor: Optional[str] = None,
    ) -> PostsPage:
        """Posts authored by `user_id`, newest first."""
        viewer = require_viewer(viewer)
        statement = post_statement(viewer.id).where(Post.user_id == user_id)
        return await self._page(db, feed_pager, statement, cursor, "user-posts")

    async def search(
        self,
        db: AsyncSession,
        viewer: Optional[ViewerContext],
        q: str,
        cursor: Optional[str] = None,
    ) -> PostsPage:
        """
        Posts whose content, author display name or author username match `q`.

        A query that normalizes to nothing matches nothing: the empty page is
        returned without touching the store.
        """
        viewer = require_viewer(viewer)
        if not build_text_query(q):
            return PostsPage(posts=[], next_cursor=None)

        dialect = db.get_bind().dialect.name
        statement = post_statement(viewer.id).where(post_search_condition(q, dialect))
        return await self._page(db, feed_pager, statement, cursor, "search")

    async def _page(
        self,
        db: AsyncSession,
        pager: CursorPager,
        statement: Select,
        cursor: Optional[str],
        feed: str,
    ) -> PostsPage:
        try:
            page = (await pager.fetch_page(db, statement, cursor)).map(to_post_data)
            return PostsPage(posts=page.items, next_cursor=page.next_cursor)
        except HbookError:
            raise
        except Exception as e:
            logger.error("Database error loading %s feed: %s", feed, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load posts. Please try again.",
                context={"feed": feed, "error_type": type(e).__name__},
            )


post_service = PostService()
