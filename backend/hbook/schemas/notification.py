"""
Hbook Backend — Notification Schemas
=====================================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from hbook.schemas.common import CamelModel


class NotificationIssuer(CamelModel):
    username: str
    display_name: str
    avatar_url: Optional[str] = None


class NotificationPost(CamelModel):
    content: str


class NotificationData(CamelModel):
    id: str
    type: str = Field(description="LIKE, FOLLOW or COMMENT")
    read: bool
    created_at: datetime
    issuer_id: str
    post_id: Optional[str] = None
    issuer: NotificationIssuer
    post: Optional[NotificationPost] = None


class NotificationsPage(CamelModel):
    notifications: List[NotificationData]
    next_cursor: Optional[str] = None


class NotificationCountInfo(CamelModel):
    unread_count: int = Field(ge=0)
