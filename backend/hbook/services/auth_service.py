"""
Hbook Backend — Session Authentication
=======================================

What:  Resolves the session cookie into a ViewerContext, or rejects the request.
How:   The identity provider stores one row per login in `sessions`; the
       cookie carries that row's id. Validation follows a sliding-expiry
       scheme:

           now >= expires_at                     → session deleted, 401
           now >= expires_at - lifetime / 2      → extended to now + lifetime,
                                                   cookie re-issued ("fresh")
           otherwise                             → valid, nothing written

       A cookie that does not resolve to a valid session is cleared on the
       401 response (see the UnauthorizedError handler in main.py).
Who:   get_current_viewer() is a FastAPI dependency on every /api route.
When:  Once per request, before any read model is touched.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hbook.config import settings
from hbook.database import get_db_session
from hbook.exceptions import DatabaseError, UnauthorizedError
from hbook.models import User, UserSession
from hbook.models.user import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerContext:
    """The authenticated actor of a request."""

    id: str
    username: str
    display_name: str
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class SessionValidation:
    """Outcome of validating a session id. `viewer` is None when invalid."""

    viewer: Optional[ViewerContext]
    session_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    fresh: bool = False


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    """
    Session validation and lifecycle.

    Args:
        lifetime: Full session lifetime; sessions are extended once less
                  than half of it remains.
    """

    def __init__(self, lifetime: timedelta):
        self.lifetime = lifetime

    async def create_session(self, db: AsyncSession, user_id: str) -> UserSession:
        """Issue a new session for `user_id` (used at login and by tests)."""
        session = UserSession(
            id=secrets.token_hex(20),
            user_id=user_id,
            expires_at=utcnow() + self.lifetime,
        )
        db.add(session)
        await db.flush()
        return session

    async def validate_session(self, db: AsyncSession, session_id: str) -> SessionValidation:
        """
        Look up a session and apply the sliding-expiry rules.

        Returns:
            SessionValidation; `fresh` is True when the expiry was extended
            and the cookie must be re-issued.

        Raises:
            DatabaseError: The lookup itself failed.
        """
        try:
            result = await db.execute(
                select(UserSession, User)
                .join(User, UserSession.user_id == User.id)
                .where(UserSession.id == session_id)
            )
            row = result.first()
            if row is None:
                return SessionValidation(viewer=None)

            session, user = row.UserSession, row.User
            now = utcnow()
            expires_at = as_utc(session.expires_at)

            if now >= expires_at:
                await db.execute(delete(UserSession).where(UserSession.id == session_id))
                # The caller answers 401 and the request session rolls back
                await db.commit()
                logger.info("Expired session removed for user %s", user.id)
                return SessionValidation(viewer=None)

            fresh = now >= expires_at - self.lifetime / 2
            if fresh:
                expires_at = now + self.lifetime
                session.expires_at = expires_at
                # Writes in this request run on their own connection
                await db.commit()

            viewer = ViewerContext(
                id=user.id,
                username=user.username,
                display_name=user.display_name,
                avatar_url=user.avatar_url,
            )
            return SessionValidation(
                viewer=viewer,
                session_id=session.id,
                expires_at=expires_at,
                fresh=fresh,
            )

        except Exception as e:
            logger.error("Session validation failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not validate your session. Please try again.",
                context={"error_type": type(e).__name__},
            )


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
    )


auth_service = AuthService(lifetime=timedelta(days=settings.session_lifetime_days))


async def get_current_viewer(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ViewerContext:
    """
    FastAPI dependency resolving the request's viewer.

    Raises:
        UnauthorizedError: No cookie, unknown session or expired session.
    """
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        raise UnauthorizedError()

    validation = await auth_service.validate_session(db, session_id)
    if validation.viewer is None:
        raise UnauthorizedError(context={"reason": "invalid_session"})

    if validation.fresh:
        set_session_cookie(response, validation.session_id)
    return validation.viewer
