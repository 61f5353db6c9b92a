"""
Hbook Backend — Transaction Runner Tests
=========================================

What we test:
    ✅ Transient OperationalError retries the whole unit of work
    ✅ The attempt budget is fixed; the last error is re-raised
    ✅ Other exceptions are not retried and roll everything back
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from hbook.database import TransactionRunner
from hbook.models import User


def locked() -> OperationalError:
    return OperationalError("INSERT", {}, Exception("database is locked"))


class TestTransactionRunner:

    @pytest.mark.asyncio
    async def test_returns_work_result(self, runner):
        async def work(session):
            return "done"

        assert await runner.run(work) == "done"

    @pytest.mark.asyncio
    async def test_retries_transient_failure(self, db, runner):
        calls = []

        async def work(session):
            calls.append(1)
            session.add(User(id=f"u{len(calls)}", username=f"user{len(calls)}", display_name="U"))
            if len(calls) == 1:
                raise locked()
            return len(calls)

        assert await runner.run(work) == 2
        # First attempt rolled back, second committed
        ids = (await db.execute(select(User.id))).scalars().all()
        assert ids == ["u2"]

    @pytest.mark.asyncio
    async def test_gives_up_after_attempt_budget(self, session_factory):
        runner = TransactionRunner(session_factory, attempts=3)
        calls = []

        async def work(session):
            calls.append(1)
            raise locked()

        with pytest.raises(OperationalError):
            await runner.run(work)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_application_error_rolls_back_without_retry(self, db, runner):
        calls = []

        async def work(session):
            calls.append(1)
            session.add(User(id="u1", username="alice", display_name="Alice"))
            await session.flush()
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await runner.run(work)

        assert len(calls) == 1
        assert await db.scalar(select(func.count()).select_from(User)) == 0
