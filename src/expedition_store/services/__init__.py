"""Expedition persistence services."""
from expedition_store.services.expedition import ExpeditionService
from expedition_store.services.lockouts import LockoutService
from expedition_store.services.members import MemberService

__all__ = ["ExpeditionService", "LockoutService", "MemberService"]
