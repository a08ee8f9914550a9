"""Pydantic projections returned by the composite expedition reads."""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from expedition_store.game.lockout import ExpeditionLockoutTimer, ExpeditionMember


class ExpeditionRecord(BaseModel):
    id: int
    uuid: str
    instance_id: int
    expedition_name: str
    leader: ExpeditionMember
    min_players: int
    max_players: int
    add_replay_on_join: bool
    is_locked: bool
    members: List[ExpeditionMember] = Field(default_factory=list)
    # internal lockouts by event name, filled only when requested
    lockouts: Dict[str, ExpeditionLockoutTimer] = Field(default_factory=dict)

    def has_member(self, character_id: int) -> bool:
        return any(m.char_id == character_id for m in self.members)


class CreateCandidate(BaseModel):
    """Eligibility data for one character of a prospective roster."""

    character_id: int
    name: str
    expedition_id: Optional[int] = None
    lockouts: List[ExpeditionLockoutTimer] = Field(default_factory=list)

    @property
    def in_expedition(self) -> bool:
        return self.expedition_id is not None

    @property
    def is_locked_out(self) -> bool:
        return bool(self.lockouts)
