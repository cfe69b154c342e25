"""Domain-level exceptions with stable machine-readable codes.

Services raise these; only the API layer turns them into HTTP responses, using
``http_status`` as the category hint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Pairing and devices
ERR_PAIRING_CODE_INVALID = "ERR_PAIRING_CODE_INVALID"
ERR_DEVICE_ALREADY_PAIRED = "ERR_DEVICE_ALREADY_PAIRED"
ERR_DEVICE_NOT_FOUND = "ERR_DEVICE_NOT_FOUND"
ERR_INVALID_DEVICE_TOKEN = "ERR_INVALID_DEVICE_TOKEN"
ERR_RESOURCE_NOT_FOUND = "ERR_RESOURCE_NOT_FOUND"

# Admission control
ERR_RATE_LIMIT = "ERR_RATE_LIMIT"
ERR_STRICT_RATE_LIMIT = "ERR_STRICT_RATE_LIMIT"

# Request processing and infrastructure
ERR_VALIDATION_FAILED = "ERR_VALIDATION_FAILED"
ERR_UNAUTHORIZED = "ERR_UNAUTHORIZED"
ERR_FORBIDDEN = "ERR_FORBIDDEN"
ERR_METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
ERR_REQUEST_FAILED = "ERR_REQUEST_FAILED"
ERR_DATABASE_QUERY = "ERR_DATABASE_QUERY"
ERR_SERVICE_UNAVAILABLE = "ERR_SERVICE_UNAVAILABLE"
ERR_INTERNAL = "ERR_INTERNAL"


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class InvalidOrExpiredCode(DomainError):
    """The code matches no pending, unexpired session.

    Never-issued, expired and already-claimed codes all raise this same error
    so callers cannot tell which codes exist.
    """

    def __init__(self) -> None:
        super().__init__(
            code=ERR_PAIRING_CODE_INVALID,
            http_status=401,
            message="Invalid or expired pairing code",
        )


class DeviceAlreadyRegistered(DomainError):
    def __init__(self, device_id: str) -> None:
        super().__init__(
            code=ERR_DEVICE_ALREADY_PAIRED,
            http_status=409,
            message="Device already registered",
            details={"device_id": device_id},
        )


class SessionNotFound(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ERR_RESOURCE_NOT_FOUND,
            http_status=404,
            message="Pairing session not found",
        )


class DeviceNotFound(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ERR_DEVICE_NOT_FOUND,
            http_status=404,
            message="Device not found or already removed",
        )


class InvalidDeviceToken(DomainError):
    def __init__(self, message: str = "Invalid or inactive device token") -> None:
        super().__init__(
            code=ERR_INVALID_DEVICE_TOKEN,
            http_status=401,
            message=message,
        )


class RateLimitExceeded(DomainError):
    """Admission denied for the caller's client key."""

    def __init__(self, code: str, message: str, retry_after: int) -> None:
        super().__init__(
            code=code,
            http_status=429,
            message=message,
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after


class StoreUnavailable(DomainError):
    """The persistence layer failed; never retried here."""

    def __init__(self, message: str = "Database error") -> None:
        super().__init__(
            code=ERR_DATABASE_QUERY,
            http_status=500,
            message=message,
        )


class PairingCodeUnavailable(DomainError):
    """No free pairing code was found within the bounded number of draws."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ERR_SERVICE_UNAVAILABLE,
            http_status=503,
            message="Unable to allocate a pairing code",
            details={"attempts": attempts},
        )
