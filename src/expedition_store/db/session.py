from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from expedition_store.core.config import get_settings

engine: AsyncEngine | None = None
SessionLocal: sessionmaker | None = None


def init_engine(dsn: str | None = None) -> None:
    global engine, SessionLocal  # noqa: PLW0603
    if engine:
        return
    settings = get_settings() if dsn is None else None
    engine = create_async_engine(
        dsn or settings.postgres_dsn,
        echo=settings.sql_echo if settings else False,
        future=True,
    )
    SessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def dispose_engine() -> None:
    global engine, SessionLocal  # noqa: PLW0603
    if engine is None:
        return
    await engine.dispose()
    engine = None
    SessionLocal = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    if SessionLocal is None:
        init_engine()
    assert SessionLocal is not None  # for type checkers
    async with SessionLocal() as session:
        yield session
