"""JWT helpers for mobile user authentication.

Issuing tokens belongs to the identity service; this module only mints tokens
for tooling and tests and decodes the ones presented by mobile clients.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from runsight_stage.core.settings import Settings, settings


def create_access_token(
    subject: str,
    extra_claims: dict[str, str] | None = None,
    *,
    config: Settings = settings,
) -> str:
    """Create a JWT access token for the given user identifier."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=config.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        config.secret_key,
        algorithm=config.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str, *, config: Settings = settings) -> str:
    """Return the subject of a valid access token.

    Raises:
        JWTError: If the token is malformed, expired or carries no subject.
    """
    payload = jwt.decode(token, config.secret_key, algorithms=[config.jwt_algorithm])
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    return str(subject)
