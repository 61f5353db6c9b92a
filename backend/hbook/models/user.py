"""
Hbook Backend — User, Session and Follow Models
================================================

What:  ORM models for accounts, login sessions and the follow graph.
Who:   Queried by the auth dependency (sessions), the user projector
       (followers / posts counts) and the follow write path.

Table Design Rationale:
    - String(36) ids: opaque identifiers; cursors and URLs carry them as-is
    - sessions.id: the token stored in the session cookie
    - follows: composite primary key (follower_id, following_id), so
      "ensure followed" is an insert-on-conflict-do-nothing
    - idx_follows_following: serves the follower COUNT and the
      "is followed by viewer" EXISTS sub-selects
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from hbook.database import Base


def new_id() -> str:
    """Generate a new opaque primary key."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered account.

    Lookups:
        - by id: primary key
        - by username: case-insensitive (lower(username) index)
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


Index("idx_users_username_lower", func.lower(User.username))


class UserSession(Base):
    """
    A login session issued by the identity provider.

    Lifecycle:
        1. Created at login with expires_at = now + lifetime
        2. Extended on use once it enters the second half of its lifetime
        3. Deleted on logout or when found expired
    """

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_sessions_user", "user_id"),
    )


class Follow(Base):
    """Directed edge: follower_id follows following_id."""

    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    following_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        Index("idx_follows_following", "following_id"),
    )
