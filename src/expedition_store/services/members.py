"""Member service: expedition rosters and leadership."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expedition_store.db.execute import run_read, run_write, skipped, upsert
from expedition_store.db.models import Character, ExpeditionDetails, ExpeditionMembership
from expedition_store.game.lockout import ExpeditionMember

logger = logging.getLogger(__name__)


class MemberService:
    """Roster rows are unique per character; re-adding a character merges into its row."""

    async def add_member(self, session: AsyncSession, expedition_id: int, character_id: int) -> dict:
        return await self.add_members(session, expedition_id, [ExpeditionMember(character_id)])

    async def add_members(
        self, session: AsyncSession, expedition_id: int, members: Iterable[ExpeditionMember]
    ) -> dict:
        """
        Insert characters into an expedition.

        A character already on a roster keeps its row; moving a character to
        another expedition requires remove_member() on the old one first.
        """
        rows = [
            {"expedition_id": expedition_id, "character_id": char_id}
            for char_id in dict.fromkeys(m.char_id for m in members if m.char_id)
        ]
        if not expedition_id or not rows:
            return skipped()

        logger.debug("Inserting [%s] characters into expedition [%s]", len(rows), expedition_id)

        stmt = upsert(session, ExpeditionMembership).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["character_id"],
            set_={"character_id": stmt.excluded.character_id},
        )
        return await run_write(session, "add_members", stmt, expedition_id=expedition_id)

    async def remove_member(self, session: AsyncSession, expedition_id: int, character_id: int) -> dict:
        logger.debug("Removing member [%s] from expedition [%s]", character_id, expedition_id)
        stmt = delete(ExpeditionMembership).where(
            ExpeditionMembership.expedition_id == expedition_id,
            ExpeditionMembership.character_id == character_id,
        )
        return await run_write(
            session, "remove_member", stmt, expedition_id=expedition_id, character_id=character_id
        )

    async def remove_all_members(self, session: AsyncSession, expedition_id: int) -> dict:
        logger.debug("Removing all members of expedition [%s]", expedition_id)
        stmt = delete(ExpeditionMembership).where(ExpeditionMembership.expedition_id == expedition_id)
        return await run_write(session, "remove_all_members", stmt, expedition_id=expedition_id)

    async def find_expedition_for_character(
        self, session: AsyncSession, character_id: int
    ) -> int | None:
        """Expedition the character currently belongs to, if any."""
        logger.debug("Getting expedition id for character [%s]", character_id)
        stmt = select(ExpeditionMembership.expedition_id).where(
            ExpeditionMembership.character_id == character_id
        )
        rows = await run_read(
            session, "find_expedition_for_character", stmt, character_id=character_id
        )
        return rows[0].expedition_id if rows else None

    async def get_leader(self, session: AsyncSession, expedition_id: int) -> ExpeditionMember | None:
        logger.debug("Getting leader of expedition [%s]", expedition_id)
        stmt = (
            select(ExpeditionDetails.leader_id, Character.name)
            .join(Character, ExpeditionDetails.leader_id == Character.id)
            .where(ExpeditionDetails.id == expedition_id)
        )
        rows = await run_read(session, "get_leader", stmt, expedition_id=expedition_id)
        if not rows:
            return None
        return ExpeditionMember(char_id=rows[0].leader_id, name=rows[0].name)

    async def set_leader(self, session: AsyncSession, expedition_id: int, character_id: int) -> dict:
        logger.debug("Updating leader [%s] for expedition [%s]", character_id, expedition_id)
        stmt = (
            update(ExpeditionDetails)
            .where(ExpeditionDetails.id == expedition_id)
            .values(leader_id=character_id)
        )
        return await run_write(
            session, "set_leader", stmt, expedition_id=expedition_id, character_id=character_id
        )
