"""Database models."""
from expedition_store.db.models.character import Character
from expedition_store.db.models.expedition import (
    CharacterLockout,
    ExpeditionDetails,
    ExpeditionLockout,
    ExpeditionMembership,
)

__all__ = [
    "Character",
    "CharacterLockout",
    "ExpeditionDetails",
    "ExpeditionLockout",
    "ExpeditionMembership",
]
