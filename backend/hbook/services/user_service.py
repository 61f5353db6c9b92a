"""
Hbook Backend — User Profiles
==============================

What:  Looks up a profile by username, case-insensitively, with the viewer's
       follow flag and the follower / post counts.
Who:   GET /api/users/username/{username}
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.exceptions import DatabaseError, NotFoundError
from hbook.models import User
from hbook.schemas.user import UserData
from hbook.services.auth_service import ViewerContext
from hbook.services.projector import require_viewer
from hbook.services.read_models import to_user_data, user_statement

logger = logging.getLogger(__name__)


class UserService:

    async def get_by_username(
        self,
        db: AsyncSession,
        viewer: Optional[ViewerContext],
        username: str,
    ) -> UserData:
        """
        Raises:
            UnauthorizedError: No viewer.
            NotFoundError: No user with that username (→ 404).
            DatabaseError: Query execution failed (→ 500).
        """
        viewer = require_viewer(viewer)
        statement = user_statement(viewer.id).where(
            func.lower(User.username) == username.lower()
        )
        try:
            result = await db.execute(statement)
            row = result.first()
        except Exception as e:
            logger.error("Database error fetching user %s: %s", username, str(e))
            raise DatabaseError(
                message="Could not retrieve the user. Please try again.",
                context={"username": username},
            )

        if row is None:
            raise NotFoundError(resource="user", resource_id=username)
        return to_user_data(row.User, row)


user_service = UserService()
