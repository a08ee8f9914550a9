"""CLI utilities for the expedition store."""
import asyncio
from typing import Optional

import typer
from alembic import command
from alembic.config import Config

from expedition_store.core.logging import setup_logging
from expedition_store.db import session as db_session
from expedition_store.services.expedition import ExpeditionService
from expedition_store.services.lockouts import LockoutService

app = typer.Typer(help="Expedition store CLI")


async def _show_lockouts(character_id: int, expedition: Optional[str]) -> None:
    service = LockoutService()
    db_session.init_engine()
    async with db_session.SessionLocal() as session:
        lockouts = await service.load_character_lockouts(session, character_id, expedition)
    await db_session.dispose_engine()

    if not lockouts:
        typer.echo(f"Character {character_id} has no active lockouts.")
        return
    for lockout in sorted(lockouts, key=lambda t: (t.expedition_name, t.event_name)):
        typer.echo(
            f"{lockout.expedition_name} | {lockout.event_name} | "
            f"expires {lockout.expire_time.isoformat()} ({lockout.seconds_remaining()}s left)"
        )


async def _show_expedition(expedition_id: int) -> None:
    service = ExpeditionService()
    db_session.init_engine()
    async with db_session.SessionLocal() as session:
        record = await service.load_full(session, expedition_id, with_lockouts=True)
    await db_session.dispose_engine()

    if record is None:
        typer.echo(f"Expedition {expedition_id} not found.")
        raise typer.Exit(code=1)
    typer.echo(record.model_dump_json(indent=2))


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Overrides LOG_LEVEL")):
    setup_logging(log_level)


@app.command()
def migrate(revision: str = "head"):
    """Run Alembic migrations."""
    cfg = Config("alembic.ini")
    command.upgrade(cfg, revision)


@app.command()
def lockouts(
    character_id: int,
    expedition: Optional[str] = typer.Option(None, "--expedition", "-e", help="Expedition name"),
):
    """List a character's active lockouts."""
    asyncio.run(_show_lockouts(character_id, expedition))


@app.command()
def show(expedition_id: int):
    """Dump an expedition with its members and internal lockouts."""
    asyncio.run(_show_expedition(expedition_id))


if __name__ == "__main__":
    app()
