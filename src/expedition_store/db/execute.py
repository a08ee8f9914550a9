"""Statement execution shared by the expedition services.

Every statement goes through run_write/run_read so a storage failure is
rolled back, logged once and reported as a value instead of an exception.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def upsert(session: AsyncSession, model: Any):
    """INSERT construct of the session's dialect, supporting on_conflict_do_update()."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"upsert is not supported for dialect {dialect!r}")


def now_expr(clock: Clock | None):
    """Reference instant for expiry filters; the engine clock unless one is injected."""
    if clock is None:
        return func.now()
    return clock()


def skipped() -> dict:
    return {"success": True, "affected": 0, "skipped": True}


def storage_failure(action: str, exc: Exception) -> dict:
    return {"error": "storage_failure", "action": action, "detail": str(exc)}


async def run_write(session: AsyncSession, action: str, *statements, **context) -> dict:
    """Execute statements in one transaction and commit."""
    affected = 0
    try:
        for stmt in statements:
            result = await session.execute(stmt)
            affected += max(0, result.rowcount or 0)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning("%s failed %s", action, context, exc_info=True)
        return storage_failure(action, exc)
    return {"success": True, "affected": affected}


async def run_read(session: AsyncSession, action: str, stmt, **context) -> list:
    """Execute a select and return its rows, or [] when the engine fails."""
    try:
        result = await session.execute(stmt)
        return list(result.all())
    except SQLAlchemyError:
        await session.rollback()
        logger.warning("%s failed %s", action, context, exc_info=True)
        return []
