"""Lockout timer and member value objects."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from expedition_store.game.constants import (
    EVENT_NAME_MAX_LEN,
    EXPEDITION_NAME_MAX_LEN,
    EXPEDITION_UUID_LEN,
    REPLAY_TIMER_NAME,
)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes coming back from the engine are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class ExpeditionMember:
    """Character taking part in an expedition."""

    char_id: int
    name: str = ""


@dataclass(frozen=True)
class ExpeditionLockoutTimer:
    """
    One (expedition name, event name) lockout.

    expire_time is the instant the lockout stops applying; duration is the
    original length in seconds. Timers are never mutated, use
    with_expire_time() to derive an updated copy.
    """

    expedition_uuid: str
    expedition_name: str
    event_name: str
    expire_time: datetime
    duration: int = 0

    def __post_init__(self) -> None:
        if not self.expedition_name or len(self.expedition_name) > EXPEDITION_NAME_MAX_LEN:
            raise ValueError(f"invalid expedition name: {self.expedition_name!r}")
        if not self.event_name or len(self.event_name) > EVENT_NAME_MAX_LEN:
            raise ValueError(f"invalid event name: {self.event_name!r}")
        if len(self.expedition_uuid) > EXPEDITION_UUID_LEN:
            raise ValueError(f"invalid expedition uuid: {self.expedition_uuid!r}")
        if self.duration < 0:
            raise ValueError("duration must be >= 0")
        object.__setattr__(self, "expire_time", as_utc(self.expire_time))

    @classmethod
    def from_duration(
        cls,
        expedition_uuid: str,
        expedition_name: str,
        event_name: str,
        duration: int,
        now: datetime | None = None,
    ) -> ExpeditionLockoutTimer:
        """Timer expiring `duration` seconds from now."""
        start = as_utc(now) if now else utcnow()
        return cls(
            expedition_uuid=expedition_uuid,
            expedition_name=expedition_name,
            event_name=event_name,
            expire_time=start + timedelta(seconds=duration),
            duration=duration,
        )

    @property
    def is_replay_timer(self) -> bool:
        return self.event_name == REPLAY_TIMER_NAME

    def is_expired(self, now: datetime | None = None) -> bool:
        # the expiration instant itself no longer counts as active
        return self.expire_time <= (as_utc(now) if now else utcnow())

    def seconds_remaining(self, now: datetime | None = None) -> int:
        delta = self.expire_time - (as_utc(now) if now else utcnow())
        return max(0, int(delta.total_seconds()))

    def is_same_lockout(self, other: ExpeditionLockoutTimer) -> bool:
        return (
            self.expedition_name == other.expedition_name
            and self.event_name == other.event_name
        )

    def with_expire_time(
        self, expire_time: datetime, duration: int | None = None
    ) -> ExpeditionLockoutTimer:
        return replace(
            self,
            expire_time=expire_time,
            duration=self.duration if duration is None else duration,
        )
