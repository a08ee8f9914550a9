#!/usr/bin/env python3
"""Seed a handful of characters into the directory for local testing."""
import asyncio

from sqlalchemy import select

from expedition_store.db.models import Character
from expedition_store.db.session import dispose_engine, get_session, init_engine

DEV_CHARACTERS = [
    (1, "Aradune"),
    (2, "Firiona"),
    (3, "Tunare"),
    (4, "Rallos"),
    (5, "Solusek"),
    (6, "Karana"),
]


async def seed_characters(session) -> int:
    added = 0
    for char_id, name in DEV_CHARACTERS:
        existing = await session.scalar(select(Character).where(Character.id == char_id))
        if not existing:
            session.add(Character(id=char_id, name=name))
            added += 1
    await session.flush()
    return added


async def main():
    init_engine()
    async for session in get_session():
        try:
            added = await seed_characters(session)
            await session.commit()
            print(f"Seeded {added} characters.")
        except Exception as e:
            await session.rollback()
            print("Error:", e)
            raise
        break
    await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
