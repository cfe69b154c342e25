"""Cryptographically random identifiers used by the pairing flow."""

from __future__ import annotations

import secrets
import uuid
from typing import Final

PAIRING_CODE_DIGITS: Final[int] = 6
_PAIRING_CODE_SPACE: Final[int] = 10**PAIRING_CODE_DIGITS
# 2**20 is the smallest power of two covering 10**6 values.
_PAIRING_CODE_BITS: Final[int] = 20

DEVICE_TOKEN_BYTES: Final[int] = 32
SESSION_ID_PREFIX: Final[str] = "pair_"


def generate_pairing_code() -> str:
    """Return a uniformly distributed, zero padded six digit code.

    Draws outside the six digit range are discarded and redrawn instead of
    being folded with a modulo, which would bias low codes.
    """
    while True:
        value = secrets.randbits(_PAIRING_CODE_BITS)
        if value < _PAIRING_CODE_SPACE:
            return f"{value:0{PAIRING_CODE_DIGITS}d}"


def generate_device_token() -> str:
    """Return a 256-bit hex encoded bearer token for a newly paired device."""
    return secrets.token_hex(DEVICE_TOKEN_BYTES)


def generate_session_id() -> str:
    """Return an opaque pairing session identifier such as ``pair_1a2b3c4d``."""
    return SESSION_ID_PREFIX + uuid.uuid4().hex[:8]
