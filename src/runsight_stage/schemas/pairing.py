"""Pairing-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

MAC_ADDRESS_PATTERN = r"^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$"


class PairingCodeResponse(BaseModel):
    """Code displayed on the phone for the user to enter on the device."""

    code: str = Field(..., description="Six digit pairing code")
    session_id: str = Field(..., description="Identifier to poll for status")
    expires_at: datetime = Field(..., description="Absolute expiry time (UTC)")
    expires_in_seconds: int = Field(..., description="Seconds until the code lapses")

    model_config = ConfigDict(from_attributes=True)


class PairedDevice(BaseModel):
    device_id: str
    device_name: str | None = None
    device_type: str
    firmware_version: str | None = None
    paired_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PairingStatusResponse(BaseModel):
    """Snapshot returned to a polling mobile client."""

    paired: bool
    expired: bool
    remaining_seconds: int = Field(0, description="Zero once paired or expired")
    device: PairedDevice | None = None

    model_config = ConfigDict(from_attributes=True)


class DeviceRegisterRequest(BaseModel):
    """Submitted by a device to claim a pairing code."""

    code: str = Field(..., pattern=r"^\d{6}$", description="Six digit pairing code")
    device_id: str = Field(..., min_length=1, max_length=50)
    device_type: str = Field(..., min_length=1, max_length=50)
    firmware_version: str | None = Field(None, max_length=20)
    hardware_version: str | None = Field(None, max_length=20)
    mac_address: str | None = Field(None, pattern=MAC_ADDRESS_PATTERN)


class DeviceConfig(BaseModel):
    """Upload behaviour the device should adopt."""

    upload_interval_seconds: int
    batch_size: int
    compression_enabled: bool


class DeviceRegisterResponse(BaseModel):
    device_token: str = Field(..., description="Bearer token for later device calls")
    user_id: str
    config: DeviceConfig
