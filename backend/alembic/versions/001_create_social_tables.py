"""Create social tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Users, sessions, follows, posts, attachments, likes, bookmarks,
       comments and notifications, with the indexes the read model relies on.
How:   Portable column types; the full-text GIN index is PostgreSQL only.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _user_fk(name: str, **kwargs) -> sa.Column:
    return sa.Column(
        name,
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        **kwargs,
    )


def _post_fk(name: str = "post_id", **kwargs) -> sa.Column:
    return sa.Column(
        name,
        sa.String(36),
        sa.ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        **kwargs,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _id_column(),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        _created_at(),
    )
    # Case-insensitive username lookup
    op.create_index("idx_users_username_lower", "users", [sa.text("lower(username)")])

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(64), primary_key=True, comment="Token carried by the session cookie"),
        _user_fk("user_id"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_sessions_user", "sessions", ["user_id"])

    op.create_table(
        "follows",
        _user_fk("follower_id", primary_key=True),
        _user_fk("following_id", primary_key=True),
    )
    op.create_index("idx_follows_following", "follows", ["following_id"])

    op.create_table(
        "posts",
        _id_column(),
        sa.Column("content", sa.Text(), nullable=False),
        _user_fk("user_id"),
        _created_at(),
    )
    # Keyset order of every post feed: (created_at, id)
    op.create_index("idx_posts_created_id", "posts", ["created_at", "id"])
    op.create_index("idx_posts_user_created", "posts", ["user_id", "created_at"])

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute(
            "CREATE INDEX idx_posts_content_fts ON posts "
            "USING GIN (to_tsvector('english', content))"
        )

    op.create_table(
        "post_media",
        _id_column(),
        sa.Column(
            "post_id",
            sa.String(36),
            sa.ForeignKey("posts.id", ondelete="SET NULL"),
            nullable=True,
            comment="NULL until the upload is published with a post",
        ),
        sa.Column("type", sa.String(10), nullable=False, comment="IMAGE or VIDEO"),
        sa.Column("url", sa.String(500), nullable=False),
        _created_at(),
    )

    op.create_table(
        "likes",
        _user_fk("user_id", primary_key=True),
        _post_fk(primary_key=True),
        _created_at(),
    )
    op.create_index("idx_likes_post", "likes", ["post_id"])

    op.create_table(
        "bookmarks",
        _id_column(),
        _user_fk("user_id"),
        _post_fk(),
        _created_at(),
        sa.UniqueConstraint("user_id", "post_id", name="uq_bookmarks_user_post"),
    )
    op.create_index("idx_bookmarks_user_created", "bookmarks", ["user_id", "created_at"])

    op.create_table(
        "comments",
        _id_column(),
        sa.Column("content", sa.Text(), nullable=False),
        _user_fk("user_id"),
        _post_fk(),
        _created_at(),
    )
    op.create_index("idx_comments_post_created", "comments", ["post_id", "created_at"])

    op.create_table(
        "notifications",
        _id_column(),
        _user_fk("recipient_id"),
        _user_fk("issuer_id"),
        sa.Column(
            "post_id",
            sa.String(36),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("type", sa.String(20), nullable=False, comment="LIKE, FOLLOW or COMMENT"),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
    )
    op.create_index(
        "idx_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
    )


def downgrade() -> None:
    """Drop every table, children first. All data is lost."""
    op.drop_table("notifications")
    op.drop_table("comments")
    op.drop_table("bookmarks")
    op.drop_table("likes")
    op.drop_table("post_media")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS idx_posts_content_fts")
    op.drop_table("posts")
    op.drop_table("follows")
    op.drop_table("sessions")
    op.drop_table("users")
