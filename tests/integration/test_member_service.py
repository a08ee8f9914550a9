"""Member service: roster merges, exclusivity and leadership."""
from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from expedition_store.db.models import ExpeditionMembership
from expedition_store.game.lockout import ExpeditionMember
from expedition_store.services import ExpeditionService, MemberService


@pytest.fixture
def members() -> MemberService:
    return MemberService()


@pytest_asyncio.fixture
async def expedition_ids(session, characters):
    service = ExpeditionService()
    first = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    second = await service.create(session, "uuid-b", 101, "Solteris", 43, 1, 6)
    return first, second


async def _roster_size(session, expedition_id) -> int:
    return await session.scalar(
        select(func.count())
        .select_from(ExpeditionMembership)
        .where(ExpeditionMembership.expedition_id == expedition_id)
    )


async def test_add_member_is_idempotent(session, members, expedition_ids):
    first, _ = expedition_ids
    assert (await members.add_member(session, first, 42))["success"] is True
    assert (await members.add_member(session, first, 42))["success"] is True

    assert await _roster_size(session, first) == 1
    assert await members.find_expedition_for_character(session, 42) == first


async def test_add_members_in_one_batch(session, members, expedition_ids):
    first, _ = expedition_ids
    roster = [ExpeditionMember(42, "Aradune"), ExpeditionMember(43, "Firiona"), ExpeditionMember(42)]
    await members.add_members(session, first, roster)
    assert await _roster_size(session, first) == 2


async def test_character_belongs_to_one_expedition(session, members, expedition_ids):
    first, second = expedition_ids
    await members.add_member(session, first, 44)

    # still on the first roster until removed
    await members.add_member(session, second, 44)
    assert await members.find_expedition_for_character(session, 44) == first

    await members.remove_member(session, first, 44)
    await members.add_member(session, second, 44)
    assert await members.find_expedition_for_character(session, 44) == second
    assert await _roster_size(session, first) == 0
    assert await _roster_size(session, second) == 1


async def test_find_expedition_absent_is_none(session, members, characters):
    assert await members.find_expedition_for_character(session, 45) is None


async def test_remove_all_members(session, members, expedition_ids):
    first, second = expedition_ids
    await members.add_members(session, first, [ExpeditionMember(42), ExpeditionMember(43)])
    await members.add_member(session, second, 44)

    await members.remove_all_members(session, first)

    assert await _roster_size(session, first) == 0
    assert await members.find_expedition_for_character(session, 44) == second


async def test_leader_lookup_and_change(session, members, expedition_ids):
    first, _ = expedition_ids
    assert await members.get_leader(session, first) == ExpeditionMember(42, "Aradune")

    await members.set_leader(session, first, 45)
    assert await members.get_leader(session, first) == ExpeditionMember(45, "Rallos")


async def test_leader_missing_from_directory(session, members, expedition_ids):
    first, _ = expedition_ids
    await members.set_leader(session, first, 999)
    assert await members.get_leader(session, first) is None
    assert await members.get_leader(session, 12345) is None


async def test_empty_roster_is_skipped(session, members, expedition_ids):
    first, _ = expedition_ids
    assert (await members.add_members(session, first, []))["skipped"] is True
    assert (await members.add_member(session, 0, 42))["skipped"] is True
