"""
Hbook Backend — Session Authentication Tests
=============================================

What we test:
    ✅ Valid session → viewer, nothing written
    ✅ Session in the last half of its lifetime → extended, fresh
    ✅ Expired session → deleted, no viewer
    ✅ Unknown session id → no viewer
    ✅ Naive datetimes (SQLite) are read as UTC
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from hbook.models import UserSession
from hbook.services.auth_service import AuthService, as_utc

LIFETIME = timedelta(days=30)


class TestValidateSession:

    def setup_method(self):
        self.service = AuthService(lifetime=LIFETIME)

    @pytest.mark.asyncio
    async def test_valid_session(self, db, seed):
        alice = await seed.user("alice", avatar_url="https://cdn.example/a.png")
        session = await seed.session_for(alice, expires_in=timedelta(days=29))

        result = await self.service.validate_session(db, session.id)

        assert result.viewer.id == alice.id
        assert result.viewer.username == "alice"
        assert result.viewer.avatar_url == "https://cdn.example/a.png"
        assert result.fresh is False

    @pytest.mark.asyncio
    async def test_session_past_half_life_is_extended(self, db, seed, session_factory):
        alice = await seed.user("alice")
        session = await seed.session_for(alice, expires_in=timedelta(days=3))

        result = await self.service.validate_session(db, session.id)

        assert result.fresh is True
        assert result.expires_at > datetime.now(timezone.utc) + timedelta(days=29)
        # Committed: visible from another connection without a caller commit
        async with session_factory() as other:
            stored = await other.scalar(
                select(UserSession.expires_at).where(UserSession.id == session.id)
            )
        assert as_utc(stored) > datetime.now(timezone.utc) + timedelta(days=29)

    @pytest.mark.asyncio
    async def test_expired_session_is_deleted(self, db, seed):
        alice = await seed.user("alice")
        session = await seed.session_for(alice, expires_in=timedelta(seconds=-1))

        result = await self.service.validate_session(db, session.id)

        assert result.viewer is None
        remaining = await db.scalar(select(UserSession.id).where(UserSession.id == session.id))
        assert remaining is None

    @pytest.mark.asyncio
    async def test_unknown_session(self, db):
        result = await self.service.validate_session(db, "no-such-session")
        assert result.viewer is None
        assert result.fresh is False

    @pytest.mark.asyncio
    async def test_create_then_validate(self, db, seed):
        alice = await seed.user("alice")
        session = await self.service.create_session(db, alice.id)
        await db.commit()

        result = await self.service.validate_session(db, session.id)

        assert result.viewer.id == alice.id
        assert len(session.id) == 40


class TestAsUtc:

    def test_naive_is_treated_as_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert as_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_aware_is_unchanged(self):
        aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert as_utc(aware) is aware
