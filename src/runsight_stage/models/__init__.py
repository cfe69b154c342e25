"""SQLAlchemy models for the RunSight application."""

from .device import Device
from .pairing_session import (
    PAIRING_CODE_TTL,
    PAIRING_STATUS_EXPIRED,
    PAIRING_STATUS_PAIRED,
    PAIRING_STATUS_PENDING,
    PairingSession,
)
from .user import User

__all__ = [
    "Device",
    "PairingSession",
    "PAIRING_CODE_TTL",
    "PAIRING_STATUS_PENDING",
    "PAIRING_STATUS_PAIRED",
    "PAIRING_STATUS_EXPIRED",
    "User",
]
