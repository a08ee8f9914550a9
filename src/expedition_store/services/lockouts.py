"""Lockout service: character and expedition lockout timers.

Character lockouts are keyed by (character, expedition name, event name);
the pending flag is row state, never part of the key. Expedition lockouts are
keyed by (expedition, event name). All merges go
through the engine's ON CONFLICT upsert, never read-then-write.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from sqlalchemy import ColumnElement, and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expedition_store.db.execute import Clock, now_expr, run_read, run_write, skipped, upsert
from expedition_store.db.models import CharacterLockout, ExpeditionDetails, ExpeditionLockout
from expedition_store.game.lockout import ExpeditionLockoutTimer, ExpeditionMember

logger = logging.getLogger(__name__)

CHARACTER_LOCKOUT_KEY = ["character_id", "expedition_name", "event_name"]
EXPEDITION_LOCKOUT_KEY = ["expedition_id", "event_name"]
TIMER_COLUMNS = ("from_expedition_uuid", "expire_time", "duration")


def _character_rows(
    character_ids: Iterable[int], lockouts: Iterable[ExpeditionLockoutTimer], is_pending: bool
) -> list[dict]:
    # one row per key; a repeated key would hit the same row twice in one statement
    rows: dict[tuple, dict] = {}
    for character_id in character_ids:
        for lockout in lockouts:
            key = (character_id, lockout.expedition_name, lockout.event_name)
            rows[key] = {
                "character_id": character_id,
                "expire_time": lockout.expire_time,
                "duration": lockout.duration,
                "from_expedition_uuid": lockout.expedition_uuid,
                "expedition_name": lockout.expedition_name,
                "event_name": lockout.event_name,
                "is_pending": is_pending,
            }
    return list(rows.values())


def _member_ids(members: Iterable[ExpeditionMember]) -> list[int]:
    return list(dict.fromkeys(m.char_id for m in members if m.char_id))


class LockoutService:
    """Reads and merges lockouts; expiry is judged against `clock` (engine clock when None)."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock

    def active_filter(self) -> ColumnElement[bool]:
        """Predicate for active character lockouts: not pending and not yet expired."""
        return and_(
            CharacterLockout.is_pending.is_(False),
            CharacterLockout.expire_time > now_expr(self.clock),
        )

    # ----------------------------------------------------------------- reads

    async def load_character_lockouts(
        self,
        session: AsyncSession,
        character_id: int,
        expedition_name: str | None = None,
    ) -> set[ExpeditionLockoutTimer]:
        """Active (non-pending, unexpired) lockouts, optionally for one expedition name."""
        logger.debug("Loading character [%s] lockouts [%s]", character_id, expedition_name or "*")

        stmt = select(
            CharacterLockout.from_expedition_uuid,
            CharacterLockout.expedition_name,
            CharacterLockout.event_name,
            CharacterLockout.expire_time,
            CharacterLockout.duration,
        ).where(CharacterLockout.character_id == character_id, self.active_filter())
        if expedition_name is not None:
            stmt = stmt.where(CharacterLockout.expedition_name == expedition_name)

        rows = await run_read(
            session, "load_character_lockouts", stmt,
            character_id=character_id, expedition_name=expedition_name,
        )
        return {
            ExpeditionLockoutTimer(
                expedition_uuid=row.from_expedition_uuid,
                expedition_name=row.expedition_name,
                event_name=row.event_name,
                expire_time=row.expire_time,
                duration=row.duration,
            )
            for row in rows
        }

    async def load_lockouts_for_expeditions(
        self, session: AsyncSession, expedition_ids: Iterable[int]
    ) -> dict[int, dict[str, ExpeditionLockoutTimer]]:
        """Internal lockouts of several expeditions, by expedition id then event name."""
        ids = list(dict.fromkeys(expedition_ids))
        if not ids:
            return {}

        logger.debug("Loading internal lockouts for [%s] expeditions", len(ids))

        stmt = (
            select(
                ExpeditionLockout.expedition_id,
                ExpeditionLockout.from_expedition_uuid,
                ExpeditionDetails.expedition_name,
                ExpeditionLockout.event_name,
                ExpeditionLockout.expire_time,
                ExpeditionLockout.duration,
            )
            .join(ExpeditionDetails, ExpeditionLockout.expedition_id == ExpeditionDetails.id)
            .where(
                ExpeditionLockout.expedition_id.in_(ids),
                ExpeditionLockout.expire_time > now_expr(self.clock),
            )
            .order_by(ExpeditionLockout.expedition_id)
        )
        rows = await run_read(session, "load_lockouts_for_expeditions", stmt, expedition_ids=ids)

        lockouts: dict[int, dict[str, ExpeditionLockoutTimer]] = {}
        for row in rows:
            lockouts.setdefault(row.expedition_id, {})[row.event_name] = ExpeditionLockoutTimer(
                expedition_uuid=row.from_expedition_uuid,
                expedition_name=row.expedition_name,
                event_name=row.event_name,
                expire_time=row.expire_time,
                duration=row.duration,
            )
        return lockouts

    # ---------------------------------------------------------------- merges

    async def upsert_character_lockouts(
        self,
        session: AsyncSession,
        character_id: int,
        lockouts: Iterable[ExpeditionLockoutTimer],
        replace_on_conflict: bool = False,
        is_pending: bool = False,
    ) -> dict:
        """
        Batch merge of lockouts for one character.

        With replace_on_conflict an existing row takes the new uuid, expire
        time and duration; otherwise the existing row is left as it is. A
        conflicting row keeps its own pending flag either way.
        """
        rows = _character_rows([character_id] if character_id else [], list(lockouts), is_pending)
        if not rows:
            return skipped()

        logger.debug(
            "Inserting [%s] lockouts for character [%s] replace [%s] pending [%s]",
            len(rows), character_id, replace_on_conflict, is_pending,
        )

        stmt = upsert(session, CharacterLockout).values(rows)
        if replace_on_conflict:
            set_ = {col: stmt.excluded[col] for col in TIMER_COLUMNS}
        else:
            set_ = {"character_id": stmt.excluded.character_id}
        stmt = stmt.on_conflict_do_update(index_elements=CHARACTER_LOCKOUT_KEY, set_=set_)

        return await run_write(
            session, "upsert_character_lockouts", stmt, character_id=character_id
        )

    async def upsert_members_lockout(
        self,
        session: AsyncSession,
        members: Iterable[ExpeditionMember],
        lockout: ExpeditionLockoutTimer,
    ) -> dict:
        """Apply one fresh lockout to every member; the newest timer always wins."""
        rows = _character_rows(_member_ids(members), [lockout], is_pending=False)
        if not rows:
            return skipped()

        logger.debug(
            "Inserting members lockout [%s]:[%s] expiring [%s] for [%s] characters",
            lockout.expedition_name, lockout.event_name, lockout.expire_time.isoformat(), len(rows),
        )

        stmt = upsert(session, CharacterLockout).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=CHARACTER_LOCKOUT_KEY,
            set_={col: stmt.excluded[col] for col in TIMER_COLUMNS},
        )
        return await run_write(
            session, "upsert_members_lockout", stmt,
            expedition_name=lockout.expedition_name, event_name=lockout.event_name,
        )

    async def upsert_expedition_lockout(
        self, session: AsyncSession, expedition_id: int, lockout: ExpeditionLockoutTimer
    ) -> dict:
        return await self.upsert_expedition_lockouts(
            session, expedition_id, {lockout.event_name: lockout}
        )

    async def upsert_expedition_lockouts(
        self,
        session: AsyncSession,
        expedition_id: int,
        lockouts: Mapping[str, ExpeditionLockoutTimer],
    ) -> dict:
        """Write an expedition's internal lockouts, replacing timers of the same event."""
        rows = {
            lockout.event_name: {
                "expedition_id": expedition_id,
                "from_expedition_uuid": lockout.expedition_uuid,
                "event_name": lockout.event_name,
                "expire_time": lockout.expire_time,
                "duration": lockout.duration,
            }
            for lockout in lockouts.values()
        }
        if not expedition_id or not rows:
            return skipped()

        logger.debug("Inserting [%s] lockouts for expedition [%s]", len(rows), expedition_id)

        stmt = upsert(session, ExpeditionLockout).values(list(rows.values()))
        stmt = stmt.on_conflict_do_update(
            index_elements=EXPEDITION_LOCKOUT_KEY,
            set_={col: stmt.excluded[col] for col in TIMER_COLUMNS},
        )
        return await run_write(
            session, "upsert_expedition_lockouts", stmt, expedition_id=expedition_id
        )

    # --------------------------------------------------------------- deletes

    async def delete_character_lockouts(
        self, session: AsyncSession, character_id: int, expedition_name: str | None = None
    ) -> dict:
        """Remove every lockout of a character, pending included, optionally for one expedition."""
        if not character_id or expedition_name == "":
            return skipped()

        logger.debug("Deleting character [%s] lockouts [%s]", character_id, expedition_name or "*")

        stmt = delete(CharacterLockout).where(CharacterLockout.character_id == character_id)
        if expedition_name is not None:
            stmt = stmt.where(CharacterLockout.expedition_name == expedition_name)
        return await run_write(
            session, "delete_character_lockouts", stmt,
            character_id=character_id, expedition_name=expedition_name,
        )

    async def delete_character_lockout(
        self, session: AsyncSession, character_id: int, expedition_name: str, event_name: str
    ) -> dict:
        """Remove one active lockout; a pending reservation for the event is kept."""
        if not character_id or not expedition_name or not event_name:
            return skipped()

        logger.debug(
            "Deleting character [%s] lockout [%s]:[%s]", character_id, expedition_name, event_name
        )

        stmt = delete(CharacterLockout).where(
            CharacterLockout.character_id == character_id,
            CharacterLockout.is_pending.is_(False),
            CharacterLockout.expedition_name == expedition_name,
            CharacterLockout.event_name == event_name,
        )
        return await run_write(
            session, "delete_character_lockout", stmt,
            character_id=character_id, expedition_name=expedition_name, event_name=event_name,
        )

    async def delete_lockouts_for_members(
        self,
        session: AsyncSession,
        members: Iterable[ExpeditionMember],
        expedition_name: str,
        event_name: str,
    ) -> dict:
        ids = _member_ids(members)
        if not ids or not expedition_name or not event_name:
            return skipped()

        logger.debug(
            "Deleting lockout [%s]:[%s] for [%s] members", expedition_name, event_name, len(ids)
        )

        stmt = delete(CharacterLockout).where(
            CharacterLockout.character_id.in_(ids),
            CharacterLockout.is_pending.is_(False),
            CharacterLockout.expedition_name == expedition_name,
            CharacterLockout.event_name == event_name,
        )
        return await run_write(
            session, "delete_lockouts_for_members", stmt,
            expedition_name=expedition_name, event_name=event_name,
        )

    async def delete_expedition_lockout(
        self, session: AsyncSession, expedition_id: int, event_name: str
    ) -> dict:
        if not expedition_id or not event_name:
            return skipped()

        logger.debug("Deleting expedition [%s] lockout event [%s]", expedition_id, event_name)

        stmt = delete(ExpeditionLockout).where(
            ExpeditionLockout.expedition_id == expedition_id,
            ExpeditionLockout.event_name == event_name,
        )
        return await run_write(
            session, "delete_expedition_lockout", stmt,
            expedition_id=expedition_id, event_name=event_name,
        )

    # --------------------------------------------------------------- pending

    async def promote_pending_lockouts(
        self, session: AsyncSession, character_id: int, expedition_name: str
    ) -> dict:
        """Confirm a character's pending lockouts for an expedition."""
        if not character_id or not expedition_name:
            return skipped()

        logger.debug(
            "Assigning character [%s] pending lockouts [%s]", character_id, expedition_name
        )

        stmt = (
            update(CharacterLockout)
            .where(
                CharacterLockout.character_id == character_id,
                CharacterLockout.expedition_name == expedition_name,
                CharacterLockout.is_pending.is_(True),
            )
            .values(is_pending=False)
        )
        return await run_write(
            session, "promote_pending_lockouts", stmt,
            character_id=character_id, expedition_name=expedition_name,
        )

    async def discard_pending_lockouts(self, session: AsyncSession, character_id: int) -> dict:
        """Drop every pending lockout of a character, whatever the expedition."""
        if not character_id:
            return skipped()

        logger.debug("Deleting character [%s] pending lockouts", character_id)

        stmt = delete(CharacterLockout).where(
            CharacterLockout.character_id == character_id,
            CharacterLockout.is_pending.is_(True),
        )
        return await run_write(
            session, "discard_pending_lockouts", stmt, character_id=character_id
        )

    async def discard_members_pending_lockouts(
        self, session: AsyncSession, members: Iterable[ExpeditionMember]
    ) -> dict:
        ids = _member_ids(members)
        if not ids:
            return skipped()

        logger.debug("Deleting pending lockouts for [%s] characters", len(ids))

        stmt = delete(CharacterLockout).where(
            CharacterLockout.character_id.in_(ids),
            CharacterLockout.is_pending.is_(True),
        )
        return await run_write(session, "discard_members_pending_lockouts", stmt)
