"""Shared fixtures: in-memory SQLite engine, fresh schema per test, fixed clock."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from expedition_store.db import models  # noqa: F401  (registers tables)
from expedition_store.db.base import Base
from expedition_store.db.models import Character

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine):
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as s:
        yield s


@pytest_asyncio.fixture
async def characters(session):
    """Character directory rows: id -> name."""
    rows = {
        42: "Aradune",
        43: "Firiona",
        44: "Tunare",
        45: "Rallos",
    }
    session.add_all(Character(id=char_id, name=name) for char_id, name in rows.items())
    await session.commit()
    return rows
