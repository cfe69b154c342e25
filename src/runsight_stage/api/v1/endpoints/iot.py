"""Endpoints called by the wearable device itself."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from runsight_stage.api.rate_limit import PAIRING_VERIFY_GATE, RateLimitGate
from runsight_stage.api.v1.dependencies import (
    CurrentDeviceDep,
    PairingServiceDep,
    SettingsDep,
)
from runsight_stage.core.settings import Settings
from runsight_stage.schemas.common import Envelope, success
from runsight_stage.schemas.device import DeviceConfigResponse
from runsight_stage.schemas.pairing import (
    DeviceConfig,
    DeviceRegisterRequest,
    DeviceRegisterResponse,
)

router = APIRouter(prefix="/iot", tags=["iot"])


def _device_config(config: Settings) -> DeviceConfig:
    return DeviceConfig(
        upload_interval_seconds=config.device_upload_interval_seconds,
        batch_size=config.device_batch_size,
        compression_enabled=config.device_compression_enabled,
    )


@router.post(
    "/pairing/verify",
    response_model=Envelope[DeviceRegisterResponse],
    dependencies=[Depends(RateLimitGate(PAIRING_VERIFY_GATE))],
)
def verify_pairing_code(
    payload: DeviceRegisterRequest,
    pairing: PairingServiceDep,
    config: SettingsDep,
) -> Envelope[DeviceRegisterResponse]:
    """Exchange a pairing code for a device bearer token.

    Unauthenticated: possession of a live code is the only credential, hence
    the strict rate limit.
    """
    device = pairing.verify_pairing_code(
        code=payload.code,
        device_id=payload.device_id,
        device_type=payload.device_type,
        firmware_version=payload.firmware_version,
        hardware_version=payload.hardware_version,
        mac_address=payload.mac_address,
    )
    return success(
        "Device paired successfully",
        DeviceRegisterResponse(
            device_token=device.device_token,
            user_id=device.user_id,
            config=_device_config(config),
        ),
    )


@router.get("/devices/config", response_model=Envelope[DeviceConfigResponse])
def get_device_config(
    device: CurrentDeviceDep,
    config: SettingsDep,
) -> Envelope[DeviceConfigResponse]:
    return success(
        "Device configuration retrieved successfully",
        DeviceConfigResponse(device_id=device.device_id, config=_device_config(config)),
    )
