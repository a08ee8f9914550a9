"""Expedition models (details, members, expedition and character lockouts)."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from expedition_store.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class ExpeditionDetails(Base):
    """One instanced expedition and its mutable settings."""

    __tablename__ = "expedition_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    instance_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    expedition_name: Mapped[str] = mapped_column(String(128), nullable=False)
    leader_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    min_players: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_players: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    add_replay_on_join: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


class ExpeditionMembership(Base):
    """Roster row; a character belongs to at most one expedition."""

    __tablename__ = "expedition_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    expedition_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("expedition_details.id", ondelete="CASCADE"), nullable=False, index=True
    )
    character_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)


class ExpeditionLockout(Base):
    """Internal lockout owned by an expedition instance, inherited by later joiners."""

    __tablename__ = "expedition_lockouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    expedition_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("expedition_details.id", ondelete="CASCADE"), nullable=False
    )
    from_expedition_uuid: Mapped[str] = mapped_column(String(36), nullable=False)
    event_name: Mapped[str] = mapped_column(String(256), nullable=False)
    expire_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds

    __table_args__ = (
        UniqueConstraint("expedition_id", "event_name", name="uq_expedition_lockout_event"),
    )


class CharacterLockout(Base):
    """Lockout barring a character from an expedition (by name) event.

    A pending row is a tentative reservation and is never counted as active.
    """

    __tablename__ = "expedition_character_lockouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    character_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    expire_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds
    from_expedition_uuid: Mapped[str] = mapped_column(String(36), nullable=False)
    expedition_name: Mapped[str] = mapped_column(String(128), nullable=False)
    event_name: Mapped[str] = mapped_column(String(256), nullable=False)
    is_pending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint(
            "character_id",
            "expedition_name",
            "event_name",
            name="uq_character_lockout_event",
        ),
    )
