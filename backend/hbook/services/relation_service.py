"""
Hbook Backend — Likes, Bookmarks and Follows
=============================================

What:  Reads and idempotent writes for the three viewer → target relations.
How:
    Reads run one statement on the request session, reusing the projector
    columns the feeds use, so a like button and a feed card always agree.

    Writes go through TransactionRunner: the relation row and its
    notification commit or roll back together.

        ensure present:  INSERT ... ON CONFLICT DO NOTHING
                         rowcount == 1 → the relation is new → notify
        ensure absent:   DELETE ... WHERE  (+ matching notification)

    Repeating a write, or racing two identical writes, converges on the
    same final state and at most one notification.

Notification rules:
    like   → LIKE to the post author, unless the viewer is the author
    follow → FOLLOW to the followed user, unless it is the viewer
    bookmark → none
"""

import logging
from typing import Any, Optional

from sqlalchemy import delete, exists, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.database import TransactionRunner
from hbook.exceptions import DatabaseError, HbookError, NotFoundError
from hbook.models import Bookmark, Follow, Like, Notification, NotificationType, Post, User
from hbook.schemas.post import BookmarkInfo, LikeInfo
from hbook.schemas.user import FollowerInfo
from hbook.services.auth_service import ViewerContext
from hbook.services.projector import require_viewer
from hbook.services.read_models import post_projector, user_projector

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def insert_if_absent(session: AsyncSession, model: Any, **values: Any) -> bool:
    """
    INSERT a row unless its key already exists.

    Returns:
        True when a row was inserted, False when it was already there.
    """
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise ValueError(f"insert-if-absent is not supported on dialect '{dialect}'")
    statement = insert(model.__table__).values(**values).on_conflict_do_nothing()
    result = await session.execute(statement)
    return result.rowcount == 1


async def _post_author(session: AsyncSession, post_id: str) -> str:
    author_id = await session.scalar(select(Post.user_id).where(Post.id == post_id))
    if author_id is None:
        raise NotFoundError(resource="post", resource_id=post_id)
    return author_id


async def _require_user(session: AsyncSession, user_id: str) -> None:
    found = await session.scalar(select(User.id).where(User.id == user_id))
    if found is None:
        raise NotFoundError(resource="user", resource_id=user_id)


class RelationService:
    """
    Stateless service; the session (reads) or transaction runner (writes)
    is passed in per call.
    """

    # ── Likes ─────────────────────────────────────────────────────────────
    async def like_info(
        self, db: AsyncSession, viewer: Optional[ViewerContext], post_id: str
    ) -> LikeInfo:
        viewer = require_viewer(viewer)
        statement = select(Post.id, *post_projector.columns(viewer.id)).where(Post.id == post_id)
        row = await self._first(db, statement, "like info")
        if row is None:
            raise NotFoundError(resource="post", resource_id=post_id)
        derived = post_projector.project(row)
        return LikeInfo(likes=derived["likes"], is_liked_by_user=derived["is_liked_by_user"])

    async def like(
        self, runner: TransactionRunner, viewer: Optional[ViewerContext], post_id: str
    ) -> None:
        viewer = require_viewer(viewer)

        async def work(session: AsyncSession) -> None:
            author_id = await _post_author(session, post_id)
            created = await insert_if_absent(session, Like, user_id=viewer.id, post_id=post_id)
            if created and author_id != viewer.id:
                session.add(
                    Notification(
                        recipient_id=author_id,
                        issuer_id=viewer.id,
                        post_id=post_id,
                        type=NotificationType.LIKE,
                    )
                )

        await self._write(runner, work, "like", post_id)

    async def unlike(
        self, runner: TransactionRunner, viewer: Optional[ViewerContext], post_id: str
    ) -> None:
        viewer = require_viewer(viewer)

        async def work(session: AsyncSession) -> None:
            author_id = await _post_author(session, post_id)
            await session.execute(
                delete(Like).where(Like.user_id == viewer.id, Like.post_id == post_id)
            )
            await session.execute(
                delete(Notification).where(
                    Notification.issuer_id == viewer.id,
                    Notification.recipient_id == author_id,
                    Notification.post_id == post_id,
                    Notification.type == NotificationType.LIKE,
                )
            )

        await self._write(runner, work, "unlike", post_id)

    # ── Bookmarks ─────────────────────────────────────────────────────────
    async def bookmark_info(
        self, db: AsyncSession, viewer: Optional[ViewerContext], post_id: str
    ) -> BookmarkInfo:
        viewer = require_viewer(viewer)
        statement = select(
            exists().where(Bookmark.user_id == viewer.id, Bookmark.post_id == post_id)
        )
        row = await self._first(db, statement, "bookmark info")
        return BookmarkInfo(is_bookmarked_by_user=bool(row[0]))

    async def bookmark(
        self, runner: TransactionRunner, viewer: Optional[ViewerContext], post_id: str
    ) -> None:
        viewer = require_viewer(viewer)

        async def work(session: AsyncSession) -> None:
            await _post_author(session, post_id)
            await insert_if_absent(session, Bookmark, user_id=viewer.id, post_id=post_id)

        await self._write(runner, work, "bookmark", post_id)

    async def unbookmark(
        self, runner: TransactionRunner, viewer: Optional[ViewerContext], post_id: str
    ) -> None:
        viewer = require_viewer(viewer)

        async def work(session: AsyncSession) -> None:
            await session.execute(
                delete(Bookmark).where(Bookmark.user_id == viewer.id, Bookmark.post_id == post_id)
            )

        await self._write(runner, work, "unbookmark", post_id)

    # ── Follows ───────────────────────────────────────────────────────────
    async def follower_info(
        self, db: AsyncSession, viewer: Optional[ViewerContext], user_id: str
    ) -> FollowerInfo:
        viewer = require_viewer(viewer)
        statement = select(User.id, *user_projector.columns(viewer.id)).where(User.id == user_id)
        row = await self._first(db, statement, "follower info")
        if row is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        derived = user_projector.project(row)
        return FollowerInfo(
            followers=derived["followers"],
            is_followed_by_user=derived["is_followed_by_user"],
        )

    async def follow(
        self, runner: TransactionRunner, viewer: Optional[ViewerContext], user_id: str
    ) -> None:
        viewer = require_viewer(viewer)

        async def work(session: AsyncSession) -> None:
            await _require_user(session, user_id)
            created = await insert_if_absent(
                session, Follow, follower_id=viewer.id, following_id=user_id
            )
            if created and user_id != viewer.id:
                session.add(
                    Notification(
                        recipient_id=user_id,
                        issuer_id=viewer.id,
                        type=NotificationType.FOLLOW,
                    )
                )

        await self._write(runner, work, "follow", user_id)

    async def unfollow(
        self, runner: TransactionRunner, viewer: Optional[ViewerContext], user_id: str
    ) -> None:
        viewer = require_viewer(viewer)

        async def work(session: AsyncSession) -> None:
            await session.execute(
                delete(Follow).where(
                    Follow.follower_id == viewer.id, Follow.following_id == user_id
                )
            )
            await session.execute(
                delete(Notification).where(
                    Notification.issuer_id == viewer.id,
                    Notification.recipient_id == user_id,
                    Notification.type == NotificationType.FOLLOW,
                )
            )

        await self._write(runner, work, "unfollow", user_id)

    # ── Helpers ───────────────────────────────────────────────────────────
    async def _first(self, db: AsyncSession, statement, what: str):
        try:
            result = await db.execute(statement)
            return result.first()
        except Exception as e:
            logger.error("Database error loading %s: %s", what, str(e), exc_info=True)
            raise DatabaseError(context={"operation": what})

    async def _write(self, runner: TransactionRunner, work, action: str, target_id: str) -> None:
        try:
            await runner.run(work)
            logger.info("Relation write '%s' applied to %s", action, target_id)
        except HbookError:
            raise
        except Exception as e:
            logger.error("Relation write '%s' on %s failed: %s", action, target_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save your change. Please try again.",
                context={"action": action, "target_id": target_id},
            )


relation_service = RelationService()
