"""Device management schemas for the mobile app."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from runsight_stage.schemas.pairing import DeviceConfig


class DeviceResponse(BaseModel):
    device_id: str
    device_name: str | None = None
    device_type: str
    firmware_version: str | None = None
    is_active: bool
    paired_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeviceRemovedResponse(BaseModel):
    device_id: str
    status: Literal["removed"] = "removed"


class DeviceConfigResponse(BaseModel):
    device_id: str
    config: DeviceConfig
