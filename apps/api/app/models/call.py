"""Call record model."""
from __future__ import annotations

from datetime import datetime, timezone
import enum

from sqlalchemy import DateTime, Enum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncState(str, enum.Enum):
    """Progress of the background reconciliation for a call."""

    PENDING = "pending"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


ACTIVE_SYNC_STATES = (SyncState.PENDING, SyncState.POLLING)


class Call(Base):
    """Outbound qualification call placed for a demo request."""

    __tablename__ = "calls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    call_id: Mapped[str | None] = mapped_column(String, unique=True)
    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    company_name: Mapped[str | None] = mapped_column(String)
    phone_number: Mapped[str] = mapped_column(String, nullable=False)
    transcript: Mapped[str | None] = mapped_column(Text)
    recording_url: Mapped[str | None] = mapped_column(String)
    call_status: Mapped[str | None] = mapped_column(String)
    duration: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    sync_state: Mapped[SyncState] = mapped_column(
        Enum(SyncState, name="sync_state"), default=SyncState.PENDING, nullable=False
    )
    sync_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sync_error: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # Every flush of a dirty row bumps ``revision`` and guards on the loaded value.
    __mapper_args__ = {"version_id_col": revision}
