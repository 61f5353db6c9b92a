"""
Hbook Backend — User Schemas
=============================

What:  Viewer-scoped representation of a user and the follower summary.
Who:   Embedded in every post and comment as the author, returned alone by
       GET /api/users/username/{username}.

Derived fields (never stored):
    followers:            COUNT of follows pointing at the user
    posts:                COUNT of the user's posts
    is_followed_by_user:  the viewer follows this user
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from hbook.schemas.common import CamelModel


class UserData(CamelModel):
    id: str
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime
    followers: int = Field(ge=0, description="Number of followers")
    posts: int = Field(ge=0, description="Number of posts authored")
    is_followed_by_user: bool = Field(description="Whether the viewer follows this user")


class FollowerInfo(CamelModel):
    """Returned by GET /api/users/{user_id}/followers."""
    followers: int = Field(ge=0)
    is_followed_by_user: bool
