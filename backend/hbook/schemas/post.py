"""
Hbook Backend — Post and Comment Schemas
=========================================

What:  Viewer-scoped post / comment payloads and the page wrappers.
Who:   Returned by the feed, bookmark, user-posts, search and comments endpoints.

Page wrappers:
    PostsPage:     {"posts": [...], "nextCursor": "<id>" | null}
    CommentsPage:  {"comments": [...], "previousCursor": "<id>" | null}

    Both cursors mean the same thing: the id of the first record that did
    not fit on this page. The comments key keeps its historical name
    because the comment thread client reads `previousCursor`.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from hbook.schemas.common import CamelModel
from hbook.schemas.user import UserData


class MediaData(CamelModel):
    id: str
    type: str = Field(description="IMAGE or VIDEO")
    url: str


class PostData(CamelModel):
    """
    A post as seen by the current viewer.

    Invariant: is_liked_by_user implies likes >= 1 (both come from the same
    statement).
    """
    id: str
    content: str
    created_at: datetime
    user: UserData
    attachments: List[MediaData] = Field(default_factory=list)
    likes: int = Field(ge=0, description="Number of likes")
    comments: int = Field(ge=0, description="Number of comments")
    is_liked_by_user: bool
    is_bookmarked_by_user: bool


class PostsPage(CamelModel):
    posts: List[PostData]
    next_cursor: Optional[str] = Field(
        default=None,
        description="Cursor for the next page. Null on the last page.",
    )


class CommentData(CamelModel):
    id: str
    content: str
    post_id: str
    created_at: datetime
    user: UserData


class CommentsPage(CamelModel):
    comments: List[CommentData]
    previous_cursor: Optional[str] = Field(
        default=None,
        description="Cursor for the next (later) batch of comments. Null when exhausted.",
    )


class LikeInfo(CamelModel):
    likes: int = Field(ge=0)
    is_liked_by_user: bool


class BookmarkInfo(CamelModel):
    is_bookmarked_by_user: bool
