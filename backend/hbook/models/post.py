"""
Hbook Backend — Post and Post-Relation Models
==============================================

What:  ORM models for posts and everything hanging off a post:
       attachments, likes, bookmarks and comments.

Query Patterns:
    - Feeds: ORDER BY created_at DESC, id DESC LIMIT page_size + 1
      → idx_posts_created_id serves the ordering and the keyset seek
    - Comments of a post: WHERE post_id = :id ORDER BY created_at, id
      → idx_comments_post_created
    - Like / bookmark flags: EXISTS on (user_id, post_id), one row at most
    - Like / comment counts: COUNT(*) WHERE post_id = :id, no row materialization

Relationships are declared lazy="raise": async sessions cannot lazy-load,
so every read states what it loads (selectinload for attachments).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hbook.database import Base
from hbook.models.user import User, new_id, utcnow


class MediaType:
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    user: Mapped[User] = relationship(lazy="raise")
    attachments: Mapped[List["Media"]] = relationship(
        back_populates="post",
        lazy="raise",
        order_by="Media.created_at",
    )

    __table_args__ = (
        Index("idx_posts_created_id", "created_at", "id"),
        Index("idx_posts_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user_id={self.user_id}, created_at='{self.created_at}')>"


class Media(Base):
    """
    An uploaded attachment.

    The object store hands back a stable URL; only that URL is kept here.
    post_id stays NULL until the attachment is published with a post.
    """

    __tablename__ = "post_media"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    post_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    post: Mapped[Optional[Post]] = relationship(back_populates="attachments", lazy="raise")


class Like(Base):
    """(user_id, post_id) is the primary key: a viewer likes a post at most once."""

    __tablename__ = "likes"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_likes_post", "post_id"),
    )


class Bookmark(Base):
    """
    A saved post.

    Has its own id because the bookmarked feed is paginated over bookmarks
    (newest bookmark first), so its cursor is a bookmark id.
    """

    __tablename__ = "bookmarks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_bookmarks_user_post"),
        Index("idx_bookmarks_user_created", "user_id", "created_at"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    user: Mapped[User] = relationship(lazy="raise")

    __table_args__ = (
        Index("idx_comments_post_created", "post_id", "created_at"),
    )
