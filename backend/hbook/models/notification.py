"""
Hbook Backend — Notification Model
===================================

What:  One row per "someone did something to you" event.
Who:   Written inside the like / follow transactions; read by the
       notifications page and the unread counter.

Notification rows are created and deleted together with the relation that
caused them, in the same transaction, so a like never exists without its
notification (and vice versa) once the transaction commits.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hbook.database import Base
from hbook.models.post import Post
from hbook.models.user import User, new_id, utcnow


class NotificationType:
    LIKE = "LIKE"
    FOLLOW = "FOLLOW"
    COMMENT = "COMMENT"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    recipient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    issuer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    issuer: Mapped[User] = relationship(foreign_keys=[issuer_id], lazy="raise")
    post: Mapped[Optional[Post]] = relationship(lazy="raise")

    __table_args__ = (
        Index("idx_notifications_recipient_created", "recipient_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, type='{self.type}', "
            f"recipient_id={self.recipient_id}, read={self.read})>"
        )
