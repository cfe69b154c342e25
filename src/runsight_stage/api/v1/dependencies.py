"""Shared API dependencies for authentication and service construction."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from runsight_stage.core.errors import StoreUnavailable
from runsight_stage.core.security import decode_access_token
from runsight_stage.core.settings import Settings
from runsight_stage.db.session import get_db
from runsight_stage.models import Device, User
from runsight_stage.services.devices import DeviceService
from runsight_stage.services.pairing import PairingService

# Missing credentials are reported as 401 by the dependencies below.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def get_settings(request: Request) -> Settings:
    """Return the settings the running app was built with."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_current_user(credentials: CredentialsDep, db: SessionDep, config: SettingsDep) -> User:
    """Get the current authenticated mobile user from a JWT.

    Raises:
        HTTPException: If the token is missing or invalid, or the user is unknown.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user_id = decode_access_token(credentials.credentials, config=config)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err

    try:
        user = db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as err:
        raise StoreUnavailable() from err
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_device(credentials: CredentialsDep, db: SessionDep) -> Device:
    """Get the paired device presenting a bearer token."""
    token = credentials.credentials if credentials is not None else None
    return DeviceService(db).authenticate(token)


def get_pairing_service(db: SessionDep) -> PairingService:
    return PairingService(db)


def get_device_service(db: SessionDep) -> DeviceService:
    return DeviceService(db)


CurrentUserDep = Annotated[User, Depends(get_current_user)]
CurrentDeviceDep = Annotated[Device, Depends(get_current_device)]
PairingServiceDep = Annotated[PairingService, Depends(get_pairing_service)]
DeviceServiceDep = Annotated[DeviceService, Depends(get_device_service)]
