"""
Hbook Backend — Read Models
============================

What:  The concrete pagers and projectors every list endpoint shares, plus
       the row → schema builders.
How:   Projectors are wired to aliased child tables. The outer statements
       select from posts, bookmarks and comments themselves; an un-aliased
       sub-select over the same table would be auto-correlated away.

Row layout of post_statement():
    (Post, User, post_* projection columns, author_* projection columns,
     cursor_id)
"""

from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import aliased, selectinload

from hbook.config import settings
from hbook.models import Bookmark, Comment, Follow, Like, Notification, Post, User
from hbook.schemas.post import MediaData, PostData
from hbook.schemas.user import UserData
from hbook.services.pager import CursorPager, OrderKey
from hbook.services.projector import Relation, ViewerProjector

LikeRow = aliased(Like, name="projected_like")
BookmarkRow = aliased(Bookmark, name="projected_bookmark")
CommentRow = aliased(Comment, name="projected_comment")
FollowRow = aliased(Follow, name="projected_follow")
AuthoredPost = aliased(Post, name="authored_post")


# ── Projectors ────────────────────────────────────────────────────────────
post_projector = ViewerProjector(
    Post.id,
    [
        Relation(LikeRow.post_id, actor=LikeRow.user_id, flag="is_liked_by_user", count="likes"),
        Relation(BookmarkRow.post_id, actor=BookmarkRow.user_id, flag="is_bookmarked_by_user"),
        Relation(CommentRow.post_id, count="comments"),
    ],
    prefix="post",
)

user_projector = ViewerProjector(
    User.id,
    [
        Relation(
            FollowRow.following_id,
            actor=FollowRow.follower_id,
            flag="is_followed_by_user",
            count="followers",
        ),
        Relation(AuthoredPost.user_id, count="posts"),
    ],
    prefix="author",
)


# ── Pagers ────────────────────────────────────────────────────────────────
feed_pager = CursorPager(OrderKey(Post), settings.feed_page_size)
bookmark_pager = CursorPager(OrderKey(Bookmark), settings.feed_page_size)
comment_pager = CursorPager(OrderKey(Comment, descending=False), settings.comment_page_size)
notification_pager = CursorPager(OrderKey(Notification), settings.feed_page_size)


# ── Statements ────────────────────────────────────────────────────────────
def post_statement(viewer_id: str) -> Select:
    """Posts with their author, attachments and all viewer-scoped columns."""
    return (
        select(
            Post,
            User,
            *post_projector.columns(viewer_id),
            *user_projector.columns(viewer_id),
        )
        .join(User, Post.user_id == User.id)
        .options(selectinload(Post.attachments))
    )


def user_statement(viewer_id: str) -> Select:
    """Users with follower / post counts and the viewer's follow flag."""
    return select(User, *user_projector.columns(viewer_id))


# ── Builders ──────────────────────────────────────────────────────────────
def to_user_data(user: User, row: Any) -> UserData:
    return UserData(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        bio=user.bio,
        created_at=user.created_at,
        **user_projector.project(row),
    )


def to_post_data(row: Any) -> PostData:
    post, author = row.Post, row.User
    return PostData(
        id=post.id,
        content=post.content,
        created_at=post.created_at,
        user=to_user_data(author, row),
        attachments=[
            MediaData(id=media.id, type=media.type, url=media.url)
            for media in post.attachments
        ],
        **post_projector.project(row),
    )
