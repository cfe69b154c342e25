"""Lookups and lifecycle operations on paired device credentials."""

from __future__ import annotations

import logging
import secrets

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from runsight_stage.core.errors import DeviceNotFound, InvalidDeviceToken, StoreUnavailable
from runsight_stage.models import Device

logger = logging.getLogger(__name__)


class DeviceService:
    """Device credential queries scoped to one database session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def authenticate(self, token: str | None) -> Device:
        """Resolve a bearer token to its active device.

        Raises:
            InvalidDeviceToken: Missing token, unknown token or removed device.
            StoreUnavailable: If the database failed.
        """
        if not token:
            raise InvalidDeviceToken("Device token required")
        try:
            device = (
                self.db.query(Device)
                .filter(Device.device_token == token, Device.is_active.is_(True))
                .first()
            )
        except SQLAlchemyError as err:
            logger.error("Failed to validate device token", exc_info=True)
            raise StoreUnavailable() from err
        # The query already matched on the token; compare again in constant time.
        if device is None or not secrets.compare_digest(device.device_token, token):
            raise InvalidDeviceToken()
        return device

    def list_active(self, user_id: str) -> list[Device]:
        """Return the user's active devices, most recently paired first."""
        try:
            return (
                self.db.query(Device)
                .filter(Device.user_id == user_id, Device.is_active.is_(True))
                .order_by(Device.paired_at.desc())
                .all()
            )
        except SQLAlchemyError as err:
            logger.error("Failed to list devices for user %s", user_id, exc_info=True)
            raise StoreUnavailable() from err

    def remove(self, user_id: str, device_id: str) -> Device:
        """Soft-delete one of the user's devices.

        The row stays so the identifier keeps counting as registered.

        Raises:
            DeviceNotFound: Not owned by the user or already removed.
            StoreUnavailable: If the database failed.
        """
        try:
            device = (
                self.db.query(Device)
                .filter(
                    Device.device_id == device_id,
                    Device.user_id == user_id,
                    Device.is_active.is_(True),
                )
                .first()
            )
            if device is None:
                raise DeviceNotFound()
            device.is_active = False
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Failed to remove device %s", device_id, exc_info=True)
            raise StoreUnavailable("Failed to remove device") from err

        logger.info("Removed device %s for user %s", device_id, user_id)
        return device
