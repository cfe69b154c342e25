"""Pairing coordinator linking mobile users to wearable devices.

A mobile user requests a short numeric code, types it into the device, and the
device exchanges the code for a durable bearer token. The mobile client polls
the session status until it observes the device as paired or the code lapses.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from runsight_stage.core.errors import (
    DeviceAlreadyRegistered,
    InvalidOrExpiredCode,
    PairingCodeUnavailable,
    SessionNotFound,
    StoreUnavailable,
)
from runsight_stage.db.time import utcnow
from runsight_stage.models import (
    PAIRING_CODE_TTL,
    PAIRING_STATUS_EXPIRED,
    PAIRING_STATUS_PAIRED,
    PAIRING_STATUS_PENDING,
    Device,
    PairingSession,
)
from runsight_stage.services.tokens import (
    generate_device_token,
    generate_pairing_code,
    generate_session_id,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class PairingCodeResult:
    """Freshly issued pairing code handed back to the mobile client."""

    code: str
    session_id: str
    expires_at: datetime
    expires_in_seconds: int


@dataclass(frozen=True)
class PairedDeviceSummary:
    device_id: str
    device_name: str | None
    device_type: str
    firmware_version: str | None
    paired_at: datetime


@dataclass(frozen=True)
class PairingStatusResult:
    paired: bool
    expired: bool
    remaining_seconds: int = 0
    device: PairedDeviceSummary | None = None


class PairingService:
    """Issue, claim and report on pairing sessions.

    The service is bound to one database session, i.e. one inbound request.
    Time and TTL are injectable so expiry behaviour can be exercised directly.
    """

    def __init__(
        self,
        db: Session,
        *,
        now: Callable[[], datetime] = utcnow,
        ttl: timedelta = PAIRING_CODE_TTL,
        max_code_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS,
    ) -> None:
        self.db = db
        self._now = now
        self.ttl = ttl
        self.max_code_attempts = max_code_attempts

    # --- Request ---------------------------------------------------------------------
    def request_pairing_code(self, user_id: str) -> PairingCodeResult:
        """Create a pending session with a code unique among pending sessions.

        Every call creates a new session. Collisions with another pending code,
        either seen up front or reported by the unique index on insert, trigger
        a redraw up to ``max_code_attempts`` times.

        Raises:
            PairingCodeUnavailable: If every draw collided.
            StoreUnavailable: If the database failed.
        """
        for attempt in range(1, self.max_code_attempts + 1):
            now = self._now()
            code = generate_pairing_code()
            try:
                if not self._code_is_free(code, now):
                    logger.debug("Pairing code collision, redrawing (attempt %d)", attempt)
                    continue
                session = PairingSession(
                    id=generate_session_id(),
                    user_id=user_id,
                    code=code,
                    status=PAIRING_STATUS_PENDING,
                    expires_at=now + self.ttl,
                    created_at=now,
                )
                self.db.add(session)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("Pairing session insert conflicted, redrawing (attempt %d)", attempt)
                continue
            except SQLAlchemyError as err:
                self.db.rollback()
                logger.error("Failed to create pairing session", exc_info=True)
                raise StoreUnavailable("Failed to create pairing session") from err

            logger.info("Issued pairing session %s for user %s", session.id, user_id)
            return PairingCodeResult(
                code=code,
                session_id=session.id,
                expires_at=now + self.ttl,
                expires_in_seconds=int(self.ttl.total_seconds()),
            )

        logger.error("No free pairing code after %d attempts", self.max_code_attempts)
        raise PairingCodeUnavailable(self.max_code_attempts)

    def _code_is_free(self, code: str, now: datetime) -> bool:
        """Return True if no live pending session holds ``code``.

        A pending row whose TTL already lapsed is retired on the spot so its
        code can be reissued.
        """
        existing = (
            self.db.query(PairingSession)
            .filter(
                PairingSession.code == code,
                PairingSession.status == PAIRING_STATUS_PENDING,
            )
            .first()
        )
        if existing is None:
            return True
        if existing.is_expired(now):
            self._mark_expired(existing.id, now)
            return True
        return False

    # --- Verify ----------------------------------------------------------------------
    def verify_pairing_code(
        self,
        code: str,
        device_id: str,
        device_type: str,
        firmware_version: str | None = None,
        hardware_version: str | None = None,
        mac_address: str | None = None,
    ) -> Device:
        """Claim a pending session for a device and issue its bearer token.

        The device insert and the session transition commit together. The
        session update only matches while the row is still pending and
        unexpired, so of several concurrent claimants exactly one wins.

        Raises:
            InvalidOrExpiredCode: Unknown, expired or already claimed code.
            DeviceAlreadyRegistered: ``device_id`` already has a credential.
            StoreUnavailable: If the database failed.
        """
        now = self._now()
        try:
            session = self._find_claimable(code, now)
            if session is None:
                raise InvalidOrExpiredCode()
            if self._device_exists(device_id):
                raise DeviceAlreadyRegistered(device_id)
            session_id = session.id
            owner_id = session.user_id
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Failed to look up pairing code", exc_info=True)
            raise StoreUnavailable() from err

        device = Device(
            device_id=device_id,
            user_id=owner_id,
            device_name=device_id,
            device_type=device_type,
            firmware_version=firmware_version,
            hardware_version=hardware_version,
            mac_address=mac_address,
            device_token=generate_device_token(),
            is_active=True,
            paired_at=now,
        )

        try:
            self.db.add(device)
            self.db.flush()
            result = self.db.execute(
                update(PairingSession)
                .where(
                    PairingSession.id == session_id,
                    PairingSession.status == PAIRING_STATUS_PENDING,
                    PairingSession.expires_at > now,
                )
                .values(
                    status=PAIRING_STATUS_PAIRED,
                    device_id=device_id,
                    paired_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                logger.info("Pairing session %s was claimed or expired concurrently", session_id)
                raise InvalidOrExpiredCode()
            self.db.commit()
        except IntegrityError as err:
            self.db.rollback()
            raise DeviceAlreadyRegistered(device_id) from err
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Failed to pair device %s", device_id, exc_info=True)
            raise StoreUnavailable("Failed to pair device") from err

        logger.info("Paired device %s via session %s", device_id, session_id)
        return device

    def _find_claimable(self, code: str, now: datetime) -> PairingSession | None:
        return (
            self.db.query(PairingSession)
            .filter(
                PairingSession.code == code,
                PairingSession.status == PAIRING_STATUS_PENDING,
                PairingSession.expires_at > now,
            )
            .first()
        )

    def _device_exists(self, device_id: str) -> bool:
        return (
            self.db.query(Device.id).filter(Device.device_id == device_id).first()
            is not None
        )

    # --- Status ----------------------------------------------------------------------
    def get_pairing_status(self, session_id: str, user_id: str) -> PairingStatusResult:
        """Report the state of a session owned by ``user_id``.

        Non-blocking and safe to poll. A pending session found past its expiry
        is persisted as expired on the way out.

        Raises:
            SessionNotFound: Unknown session or owned by another user.
            StoreUnavailable: If the database failed.
        """
        now = self._now()
        try:
            session = (
                self.db.query(PairingSession)
                .filter(PairingSession.id == session_id, PairingSession.user_id == user_id)
                .first()
            )
            if session is None:
                raise SessionNotFound()

            if session.status == PAIRING_STATUS_PAIRED:
                return PairingStatusResult(
                    paired=True,
                    expired=False,
                    device=self._device_summary(session.device_id),
                )

            if session.status == PAIRING_STATUS_EXPIRED or session.is_expired(now):
                if session.status == PAIRING_STATUS_PENDING:
                    self._mark_expired(session.id, now)
                    self.db.commit()
                    logger.info("Pairing session %s expired unclaimed", session.id)
                return PairingStatusResult(paired=False, expired=True, remaining_seconds=0)

            return PairingStatusResult(
                paired=False,
                expired=False,
                remaining_seconds=session.remaining_seconds(now),
            )
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Failed to read pairing session %s", session_id, exc_info=True)
            raise StoreUnavailable() from err

    def _device_summary(self, device_id: str | None) -> PairedDeviceSummary | None:
        if device_id is None:
            return None
        device = self.db.query(Device).filter(Device.device_id == device_id).first()
        if device is None:
            return None
        return PairedDeviceSummary(
            device_id=device.device_id,
            device_name=device.device_name,
            device_type=device.device_type,
            firmware_version=device.firmware_version,
            paired_at=device.paired_at,
        )

    def _mark_expired(self, session_id: str, now: datetime) -> None:
        # Conditional so a concurrent claim or duplicate poll is never overwritten.
        self.db.execute(
            update(PairingSession)
            .where(
                PairingSession.id == session_id,
                PairingSession.status == PAIRING_STATUS_PENDING,
                PairingSession.expires_at <= now,
            )
            .values(status=PAIRING_STATUS_EXPIRED)
            .execution_options(synchronize_session=False)
        )
