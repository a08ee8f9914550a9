"""Expedition membership and lockout persistence."""
from expedition_store.game.lockout import ExpeditionLockoutTimer, ExpeditionMember
from expedition_store.schemas import CreateCandidate, ExpeditionRecord
from expedition_store.services import ExpeditionService, LockoutService, MemberService

__version__ = "0.1.0"

__all__ = [
    "CreateCandidate",
    "ExpeditionLockoutTimer",
    "ExpeditionMember",
    "ExpeditionRecord",
    "ExpeditionService",
    "LockoutService",
    "MemberService",
]
