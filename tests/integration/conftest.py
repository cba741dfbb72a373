"""Integration-test fixtures.

These run against a migrated PostgreSQL at DATABASE_URL (alembic upgrade head)
and are skipped when none is reachable. All integration tests share a single
event loop so that the module-level SQLAlchemy async engine pool stays valid
across the whole session.
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mk_common.database import async_session_factory, engine
from src.mk_market.application.schemas import MarketCreateRequest
from src.mk_market.application.service import MarketApplicationService
from tests.factories import ist

_INSERT_USER_SQL = text("""
    INSERT INTO users (id, username) VALUES (:id, :username)
""")

_INSERT_WALLET_SQL = text("""
    INSERT INTO wallets (user_id, deposit_balance) VALUES (:user_id, :deposit)
""")


async def _ping() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1 FROM markets LIMIT 1"))


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def session_factory() -> async_sessionmaker[AsyncSession]:  # type: ignore[misc]
    """Session factory bound to the real database; skips the suite without one."""
    try:
        await asyncio.wait_for(_ping(), timeout=5)
    except (OSError, SQLAlchemyError, asyncio.TimeoutError) as exc:
        pytest.skip(f"migrated PostgreSQL not reachable: {exc}")
    yield async_session_factory
    await engine.dispose()


@pytest_asyncio.fixture(loop_scope="session")
async def make_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[int], Awaitable[str]]:
    """Create a user with a wallet holding `deposit` paise; returns the user id."""

    async def _make(deposit: int) -> str:
        user_id = f"it-{uuid.uuid4().hex[:12]}"
        async with session_factory() as db:
            await db.execute(_INSERT_USER_SQL, {"id": user_id, "username": user_id})
            await db.execute(_INSERT_WALLET_SQL, {"user_id": user_id, "deposit": deposit})
            await db.commit()
        return user_id

    return _make


@pytest_asyncio.fixture(loop_scope="session")
async def make_delhi_market(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], Awaitable[str]]:
    """Create a Delhi Bazar style market (08:00-14:40, result 15:15) on the 2026-10-17 cycle."""

    async def _make() -> str:
        req = MarketCreateRequest(
            name=f"IT Delhi {uuid.uuid4().hex[:8]}",
            start_time="08:00",
            end_time="14:40",
            result_time="15:15",
        )
        async with session_factory() as db:
            detail = await MarketApplicationService().create_market(db, req, "it-admin", ist(7, 0))
        return detail.id

    return _make
