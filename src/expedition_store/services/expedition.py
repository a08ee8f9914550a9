"""Expedition service: create, composite loads, settings, disband, create validation."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from expedition_store.db.execute import Clock, run_read, run_write
from expedition_store.db.models import (
    Character,
    CharacterLockout,
    ExpeditionDetails,
    ExpeditionLockout,
    ExpeditionMembership,
)
from expedition_store.game.constants import (
    EXPEDITION_MAX_PLAYERS_CAP,
    EXPEDITION_MIN_PLAYERS_FLOOR,
    EXPEDITION_NAME_MAX_LEN,
    EXPEDITION_UUID_LEN,
)
from expedition_store.game.lockout import ExpeditionLockoutTimer, ExpeditionMember
from expedition_store.schemas import CreateCandidate, ExpeditionRecord
from expedition_store.services.lockouts import LockoutService
from expedition_store.services.members import MemberService

logger = logging.getLogger(__name__)


def _valid_create_args(uuid: str, expedition_name: str, min_players: int, max_players: int) -> bool:
    if not uuid or len(uuid) > EXPEDITION_UUID_LEN:
        return False
    if not expedition_name or len(expedition_name) > EXPEDITION_NAME_MAX_LEN:
        return False
    return EXPEDITION_MIN_PLAYERS_FLOOR <= min_players <= max_players <= EXPEDITION_MAX_PLAYERS_CAP


class ExpeditionService:
    """Expedition records joined with their roster and the character directory."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.lockouts = LockoutService(clock)
        self.members = MemberService()

    async def create(
        self,
        session: AsyncSession,
        uuid: str,
        instance_id: int,
        expedition_name: str,
        leader_id: int,
        min_players: int,
        max_players: int,
    ) -> int:
        """Insert expedition details; returns the new id, or 0 when nothing was created."""
        logger.debug(
            "Inserting new expedition [%s] leader [%s] uuid [%s]", expedition_name, leader_id, uuid
        )
        if not _valid_create_args(uuid, expedition_name, min_players, max_players):
            logger.warning("Rejected expedition [%s] uuid [%s]: invalid arguments", expedition_name, uuid)
            return 0

        details = ExpeditionDetails(
            uuid=uuid,
            instance_id=instance_id,
            expedition_name=expedition_name,
            leader_id=leader_id,
            min_players=min_players,
            max_players=max_players,
        )
        try:
            session.add(details)
            await session.flush()
            expedition_id = details.id
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.warning("Failed to obtain an expedition id for [%s]", expedition_name, exc_info=True)
            return 0
        return expedition_id

    # ----------------------------------------------------------- composite reads

    @staticmethod
    def _full_select():
        leader = aliased(Character)
        member = aliased(Character)
        return (
            select(
                ExpeditionDetails.id,
                ExpeditionDetails.uuid,
                ExpeditionDetails.instance_id,
                ExpeditionDetails.expedition_name,
                ExpeditionDetails.leader_id,
                ExpeditionDetails.min_players,
                ExpeditionDetails.max_players,
                ExpeditionDetails.add_replay_on_join,
                ExpeditionDetails.is_locked,
                leader.name.label("leader_name"),
                ExpeditionMembership.character_id,
                member.name.label("member_name"),
            )
            .join(leader, ExpeditionDetails.leader_id == leader.id)
            .join(ExpeditionMembership, ExpeditionDetails.id == ExpeditionMembership.expedition_id)
            .join(member, ExpeditionMembership.character_id == member.id)
        )

    @staticmethod
    def _records(rows) -> list[ExpeditionRecord]:
        records: dict[int, ExpeditionRecord] = {}
        for row in rows:
            record = records.get(row.id)
            if record is None:
                record = records[row.id] = ExpeditionRecord(
                    id=row.id,
                    uuid=row.uuid,
                    instance_id=row.instance_id,
                    expedition_name=row.expedition_name,
                    leader=ExpeditionMember(char_id=row.leader_id, name=row.leader_name),
                    min_players=row.min_players,
                    max_players=row.max_players,
                    add_replay_on_join=row.add_replay_on_join,
                    is_locked=row.is_locked,
                )
            record.members.append(ExpeditionMember(char_id=row.character_id, name=row.member_name))
        return list(records.values())

    async def _attach_lockouts(
        self, session: AsyncSession, records: list[ExpeditionRecord]
    ) -> None:
        lockouts = await self.lockouts.load_lockouts_for_expeditions(
            session, [r.id for r in records]
        )
        for record in records:
            record.lockouts = lockouts.get(record.id, {})

    async def load_full(
        self, session: AsyncSession, expedition_id: int, with_lockouts: bool = False
    ) -> ExpeditionRecord | None:
        """Expedition with members and leader name; None when missing or memberless."""
        logger.debug("Loading expedition [%s]", expedition_id)
        stmt = (
            self._full_select()
            .where(ExpeditionDetails.id == expedition_id)
            .order_by(ExpeditionMembership.character_id)
        )
        records = self._records(
            await run_read(session, "load_expedition", stmt, expedition_id=expedition_id)
        )
        if not records:
            return None
        if with_lockouts:
            await self._attach_lockouts(session, records)
        return records[0]

    async def load_all(
        self, session: AsyncSession, with_lockouts: bool = False
    ) -> list[ExpeditionRecord]:
        """Every expedition that has members, by ascending id."""
        logger.debug("Loading all expeditions")
        stmt = self._full_select().order_by(
            ExpeditionDetails.id, ExpeditionMembership.character_id
        )
        records = self._records(await run_read(session, "load_all_expeditions", stmt))
        if with_lockouts and records:
            await self._attach_lockouts(session, records)
        return records

    # ---------------------------------------------------------------- settings

    async def set_lock_state(self, session: AsyncSession, expedition_id: int, is_locked: bool) -> dict:
        logger.debug("Updating lock state [%s] for expedition [%s]", is_locked, expedition_id)
        stmt = (
            update(ExpeditionDetails)
            .where(ExpeditionDetails.id == expedition_id)
            .values(is_locked=is_locked)
        )
        return await run_write(session, "set_lock_state", stmt, expedition_id=expedition_id)

    async def set_replay_on_join(
        self, session: AsyncSession, expedition_id: int, add_on_join: bool
    ) -> dict:
        logger.debug(
            "Updating replay lockout on join [%s] for expedition [%s]", add_on_join, expedition_id
        )
        stmt = (
            update(ExpeditionDetails)
            .where(ExpeditionDetails.id == expedition_id)
            .values(add_replay_on_join=add_on_join)
        )
        return await run_write(session, "set_replay_on_join", stmt, expedition_id=expedition_id)

    async def transfer_leader(
        self, session: AsyncSession, expedition_id: int, new_leader_id: int
    ) -> dict:
        return await self.members.set_leader(session, expedition_id, new_leader_id)

    async def delete(self, session: AsyncSession, expedition_id: int) -> dict:
        """Disband: drop roster, internal lockouts and details together.

        Character lockouts are keyed by expedition name and outlive the instance.
        """
        logger.debug("Deleting expedition [%s]", expedition_id)
        return await run_write(
            session,
            "delete_expedition",
            delete(ExpeditionMembership).where(ExpeditionMembership.expedition_id == expedition_id),
            delete(ExpeditionLockout).where(ExpeditionLockout.expedition_id == expedition_id),
            delete(ExpeditionDetails).where(ExpeditionDetails.id == expedition_id),
            expedition_id=expedition_id,
        )

    # ---------------------------------------------------------- create checks

    async def load_candidates_for_create(
        self,
        session: AsyncSession,
        character_names: Iterable[str],
        expedition_name: str,
    ) -> list[CreateCandidate]:
        """
        Resolve a prospective roster in one query.

        Each named character comes back with its current expedition (if any)
        and its active lockouts for `expedition_name`, ordered by character id.
        Unknown names are simply absent from the result.
        """
        names = list(dict.fromkeys(n for n in character_names if n))
        if not names:
            return []

        logger.debug(
            "Loading data of [%s] characters for [%s] request", len(names), expedition_name
        )

        stmt = (
            select(
                Character.id,
                Character.name,
                ExpeditionMembership.expedition_id,
                CharacterLockout.from_expedition_uuid,
                CharacterLockout.event_name,
                CharacterLockout.expire_time,
                CharacterLockout.duration,
            )
            .select_from(Character)
            .outerjoin(
                CharacterLockout,
                and_(
                    Character.id == CharacterLockout.character_id,
                    CharacterLockout.expedition_name == expedition_name,
                    self.lockouts.active_filter(),
                ),
            )
            .outerjoin(ExpeditionMembership, Character.id == ExpeditionMembership.character_id)
            .where(Character.name.in_(names))
            .order_by(Character.id, CharacterLockout.event_name)
        )
        rows = await run_read(
            session, "load_candidates_for_create", stmt, expedition_name=expedition_name
        )

        candidates: dict[int, CreateCandidate] = {}
        for row in rows:
            candidate = candidates.get(row.id)
            if candidate is None:
                candidate = candidates[row.id] = CreateCandidate(
                    character_id=row.id, name=row.name, expedition_id=row.expedition_id
                )
            if row.event_name is not None:
                candidate.lockouts.append(
                    ExpeditionLockoutTimer(
                        expedition_uuid=row.from_expedition_uuid,
                        expedition_name=expedition_name,
                        event_name=row.event_name,
                        expire_time=row.expire_time,
                        duration=row.duration,
                    )
                )
        return list(candidates.values())
