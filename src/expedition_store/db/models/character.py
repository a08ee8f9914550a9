"""Character directory model."""
from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from expedition_store.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Character(Base):
    """Character directory (id <-> name); owned by the world server, read here for joins."""

    __tablename__ = "character_data"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
