"""
Hbook Backend — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Store-level tests run against a throwaway SQLite file per test
       (aiosqlite), so pager, projector and write paths execute real SQL.
       Pure unit tests use the AsyncMock session.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock session (no database)
    ├── engine:           aiosqlite engine on tmp_path, schema created
    │   ├── session_factory
    │   │   ├── db:        session for seeding and direct service calls
    │   │   └── runner:    TransactionRunner over the same database
    │   └── api_client:    httpx AsyncClient, database dependencies overridden
    └── seed:             helpers creating users, posts, likes, ...
"""

import os
import tempfile

# Settings are read when hbook.config is first imported: set them before any
# hbook import so the process-wide engine never points at PostgreSQL.
_TEST_DIR = tempfile.mkdtemp(prefix="hbook_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/health.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hbook.config import settings
from hbook.database import Base, TransactionRunner, get_db_session, get_transaction_runner
from hbook.models import (
    Bookmark,
    Comment,
    Follow,
    Like,
    Media,
    Notification,
    Post,
    User,
    UserSession,
)
from hbook.services.auth_service import ViewerContext

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """A timestamp `minutes` after BASE_TIME; larger means newer."""
    return BASE_TIME + timedelta(minutes=minutes)


# ══════════════════════════════════════════════════════════════════════════
# Mock Session
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Used to assert that nothing was executed, e.g. when the viewer is
    missing or the search query is empty.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# SQLite Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh SQLite database file with every table created."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hbook.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def runner(session_factory):
    return TransactionRunner(session_factory, attempts=3)


# ══════════════════════════════════════════════════════════════════════════
# Seed Helpers
# ══════════════════════════════════════════════════════════════════════════

class Seeder:
    """
    Creates rows and commits immediately, so requests running on other
    connections see them.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, *rows):
        self.session.add_all(rows)
        await self.session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def user(self, username: str, display_name: Optional[str] = None, **kwargs) -> User:
        return await self._save(
            User(
                id=kwargs.pop("id", f"u-{username}"),
                username=username,
                display_name=display_name or username.title(),
                created_at=kwargs.pop("created_at", BASE_TIME),
                **kwargs,
            )
        )

    async def post(self, id: str, author: User, minutes: int, content: str = "hello") -> Post:
        return await self._save(
            Post(id=id, content=content, user_id=author.id, created_at=at(minutes))
        )

    async def media(self, post: Post, url: str, minutes: int = 0) -> Media:
        return await self._save(
            Media(post_id=post.id, type="IMAGE", url=url, created_at=at(minutes))
        )

    async def like(self, user: User, post: Post) -> Like:
        return await self._save(Like(user_id=user.id, post_id=post.id))

    async def bookmark(self, id: str, user: User, post: Post, minutes: int) -> Bookmark:
        return await self._save(
            Bookmark(id=id, user_id=user.id, post_id=post.id, created_at=at(minutes))
        )

    async def comment(self, id: str, user: User, post: Post, minutes: int) -> Comment:
        return await self._save(
            Comment(
                id=id,
                content=f"comment {id}",
                user_id=user.id,
                post_id=post.id,
                created_at=at(minutes),
            )
        )

    async def follow(self, follower: User, following: User) -> Follow:
        return await self._save(Follow(follower_id=follower.id, following_id=following.id))

    async def notification(self, id: str, recipient: User, issuer: User, type: str,
                           minutes: int, post: Optional[Post] = None,
                           read: bool = False) -> Notification:
        return await self._save(
            Notification(
                id=id,
                recipient_id=recipient.id,
                issuer_id=issuer.id,
                post_id=post.id if post else None,
                type=type,
                read=read,
                created_at=at(minutes),
            )
        )

    async def session_for(self, user: User, expires_in: timedelta) -> UserSession:
        return await self._save(
            UserSession(
                id=f"sess-{user.id}",
                user_id=user.id,
                expires_at=datetime.now(timezone.utc) + expires_in,
            )
        )


@pytest.fixture
def seed(db):
    return Seeder(db)


def viewer_of(user: User) -> ViewerContext:
    return ViewerContext(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
    )


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def api_client(session_factory, runner):
    """
    HTTPX AsyncClient talking to a fresh app whose database dependencies
    point at the test database.

    Usage:
        client = api_client
        client.cookies.set(settings.session_cookie_name, session.id)
        response = await client.get("/api/posts/for-you")
    """
    from hbook.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_transaction_runner] = lambda: runner

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def cookie_name():
    return settings.session_cookie_name
