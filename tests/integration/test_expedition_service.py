"""Expedition service: create sentinel, composite loads, settings, disband, create checks."""
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from expedition_store.db.models import ExpeditionLockout, ExpeditionMembership
from expedition_store.game.lockout import ExpeditionLockoutTimer, ExpeditionMember
from expedition_store.services import ExpeditionService


@pytest.fixture
def service(clock) -> ExpeditionService:
    return ExpeditionService(clock)


def _timer(clock, seconds=60, name="Solteris", event="boss1", uuid="uuid-a"):
    return ExpeditionLockoutTimer(
        expedition_uuid=uuid,
        expedition_name=name,
        event_name=event,
        expire_time=clock() + timedelta(seconds=seconds),
        duration=3600,
    )


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


async def test_create_returns_new_id(session, service, characters):
    first = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    second = await service.create(session, "uuid-b", 101, "Solteris", 43, 1, 6)
    assert first > 0
    assert second > first


async def test_create_failure_returns_zero(session, service, characters):
    assert await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6) > 0

    # duplicate uuid is rejected by the engine
    assert await service.create(session, "uuid-a", 200, "Solteris", 43, 1, 6) == 0
    assert await _count(session, ExpeditionMembership) == 0
    assert await _count(session, ExpeditionLockout) == 0

    # the session is still usable afterwards
    assert await service.create(session, "uuid-b", 200, "Solteris", 43, 1, 6) > 0


@pytest.mark.parametrize(
    "args",
    [
        ("", 100, "Solteris", 42, 1, 6),
        ("uuid-a", 100, "", 42, 1, 6),
        ("uuid-a", 100, "Solteris", 42, 6, 1),
        ("uuid-a", 100, "Solteris", 42, 1, 500),
    ],
)
async def test_create_rejects_invalid_arguments(session, service, args):
    assert await service.create(session, *args) == 0


async def test_load_full_joins_members_and_leader(session, service, characters):
    expedition_id = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    await service.members.add_members(
        session, expedition_id, [ExpeditionMember(43), ExpeditionMember(42)]
    )

    record = await service.load_full(session, expedition_id)

    assert record is not None
    assert record.uuid == "uuid-a"
    assert record.instance_id == 100
    assert record.leader == ExpeditionMember(42, "Aradune")
    assert record.members == [ExpeditionMember(42, "Aradune"), ExpeditionMember(43, "Firiona")]
    assert record.add_replay_on_join is True
    assert record.is_locked is False
    assert record.lockouts == {}
    assert record.has_member(43)


async def test_load_full_without_members_is_none(session, service, characters):
    expedition_id = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    assert await service.load_full(session, expedition_id) is None
    assert await service.load_full(session, 9999) is None


async def test_load_full_with_lockouts(session, service, clock, characters):
    expedition_id = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    await service.members.add_member(session, expedition_id, 42)
    boss = _timer(clock)
    await service.lockouts.upsert_expedition_lockout(session, expedition_id, boss)

    record = await service.load_full(session, expedition_id, with_lockouts=True)
    assert record.lockouts == {"boss1": boss}


async def test_load_all_orders_by_id_and_skips_empty(session, service, characters):
    first = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    empty = await service.create(session, "uuid-b", 101, "Solteris", 43, 1, 6)
    third = await service.create(session, "uuid-c", 102, "Crypt of Nadox", 44, 1, 6)
    await service.members.add_member(session, third, 44)
    await service.members.add_members(session, first, [ExpeditionMember(42), ExpeditionMember(45)])

    records = await service.load_all(session)

    assert [r.id for r in records] == [first, third]
    assert empty not in {r.id for r in records}
    assert [m.char_id for m in records[0].members] == [42, 45]
    assert records[1].leader.name == "Tunare"


async def test_settings_updates(session, service, characters):
    expedition_id = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    await service.members.add_members(session, expedition_id, [ExpeditionMember(42), ExpeditionMember(43)])

    assert (await service.set_lock_state(session, expedition_id, True))["success"] is True
    assert (await service.set_replay_on_join(session, expedition_id, False))["success"] is True
    assert (await service.transfer_leader(session, expedition_id, 43))["success"] is True

    record = await service.load_full(session, expedition_id)
    assert record.is_locked is True
    assert record.add_replay_on_join is False
    assert record.leader == ExpeditionMember(43, "Firiona")


async def test_delete_disbands_expedition(session, service, clock, characters):
    expedition_id = await service.create(session, "uuid-a", 100, "Solteris", 42, 1, 6)
    await service.members.add_members(session, expedition_id, [ExpeditionMember(42), ExpeditionMember(43)])
    await service.lockouts.upsert_expedition_lockout(session, expedition_id, _timer(clock))
    await service.lockouts.upsert_members_lockout(session, [ExpeditionMember(42)], _timer(clock))

    result = await service.delete(session, expedition_id)

    assert result["success"] is True
    assert await service.load_full(session, expedition_id) is None
    assert await service.members.find_expedition_for_character(session, 42) is None
    assert await _count(session, ExpeditionLockout) == 0
    # character lockouts outlive the instance
    assert await service.lockouts.load_character_lockouts(session, 42, "Solteris") == {_timer(clock)}


async def test_candidates_for_create(session, service, clock, characters):
    current = await service.create(session, "uuid-x", 100, "Crypt of Nadox", 43, 1, 6)
    await service.members.add_member(session, current, 43)

    lockouts = service.lockouts
    boss1 = _timer(clock, event="boss1")
    boss2 = _timer(clock, event="boss2")
    await lockouts.upsert_character_lockouts(session, 42, [boss1, boss2])
    await lockouts.upsert_character_lockouts(session, 43, [_timer(clock)], is_pending=True)
    await lockouts.upsert_character_lockouts(session, 44, [_timer(clock, seconds=-1)])
    await lockouts.upsert_character_lockouts(session, 45, [_timer(clock, name="Crypt of Nadox")])

    candidates = await service.load_candidates_for_create(
        session, ["Rallos", "Tunare", "Firiona", "Aradune", "Nobody", "Aradune"], "Solteris"
    )

    assert [c.character_id for c in candidates] == [42, 43, 44, 45]
    aradune, firiona, tunare, rallos = candidates
    assert aradune.name == "Aradune"
    assert aradune.lockouts == [boss1, boss2]
    assert aradune.is_locked_out
    assert not aradune.in_expedition
    assert firiona.expedition_id == current
    assert firiona.lockouts == []
    assert tunare.lockouts == []
    assert rallos.lockouts == []


async def test_candidates_for_empty_roster(session, service, characters):
    assert await service.load_candidates_for_create(session, [], "Solteris") == []
