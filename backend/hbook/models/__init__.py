# Models package init
"""
Hbook Backend — ORM Models
===========================

Importing this package registers every table with Base.metadata
(Alembic autogenerate and the test fixtures rely on that).
"""

from hbook.models.user import Follow, User, UserSession
from hbook.models.post import Bookmark, Comment, Like, Media, MediaType, Post
from hbook.models.notification import Notification, NotificationType

__all__ = [
    "Bookmark",
    "Comment",
    "Follow",
    "Like",
    "Media",
    "MediaType",
    "Notification",
    "NotificationType",
    "Post",
    "UserSession",
    "User",
]
