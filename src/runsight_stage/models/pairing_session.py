"""SQLAlchemy model for device pairing sessions."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from runsight_stage.db.session import Base
from runsight_stage.db.time import as_utc, utcnow

PAIRING_STATUS_PENDING = "pending"
PAIRING_STATUS_PAIRED = "paired"
PAIRING_STATUS_EXPIRED = "expired"

PAIRING_CODE_TTL = timedelta(minutes=5)


class PairingSession(Base):
    """Time-boxed link between a user's pairing intent and a six digit code.

    Status state machine: ``pending`` moves to ``paired`` when claimed before
    expiry, or to ``expired`` once a lapsed TTL is observed. Both are terminal.
    """

    __tablename__ = "pairing_sessions"
    __table_args__ = (
        # At most one pending session per code.
        Index(
            "uq_pairing_sessions_pending_code",
            "code",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(6), nullable=False, index=True)
    device_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PAIRING_STATUS_PENDING, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def is_expired(self, now: datetime) -> bool:
        """Return True once ``now`` has reached the expiry timestamp."""
        return now >= as_utc(self.expires_at)

    def remaining_seconds(self, now: datetime) -> int:
        """Whole seconds left before expiry, never negative."""
        remaining = (as_utc(self.expires_at) - now).total_seconds()
        if remaining < 0:
            return 0
        return int(remaining)
