"""Mobile app endpoints: pairing codes, pairing status and device management."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from runsight_stage.api.rate_limit import PAIRING_GATE, RateLimitGate
from runsight_stage.api.v1.dependencies import (
    CurrentUserDep,
    DeviceServiceDep,
    PairingServiceDep,
)
from runsight_stage.schemas.common import Envelope, success
from runsight_stage.schemas.device import DeviceRemovedResponse, DeviceResponse
from runsight_stage.schemas.pairing import PairingCodeResponse, PairingStatusResponse

router = APIRouter(prefix="/mobile", tags=["mobile"])

pairing_gate = RateLimitGate(PAIRING_GATE)


@router.post(
    "/pairing/request",
    response_model=Envelope[PairingCodeResponse],
    dependencies=[Depends(pairing_gate)],
)
def request_pairing_code(
    current_user: CurrentUserDep,
    pairing: PairingServiceDep,
) -> Envelope[PairingCodeResponse]:
    """Issue a six digit code for the user to enter on their device."""
    result = pairing.request_pairing_code(current_user.id)
    return success(
        "Pairing code generated successfully",
        PairingCodeResponse.model_validate(result),
    )


@router.get(
    "/pairing/{session_id}/status",
    response_model=Envelope[PairingStatusResponse],
    dependencies=[Depends(pairing_gate)],
)
def check_pairing_status(
    session_id: str,
    current_user: CurrentUserDep,
    pairing: PairingServiceDep,
) -> Envelope[PairingStatusResponse]:
    """Poll whether a device has claimed the session yet."""
    result = pairing.get_pairing_status(session_id, current_user.id)
    return success(
        "Pairing status retrieved successfully",
        PairingStatusResponse.model_validate(result),
    )


@router.get("/devices", response_model=Envelope[list[DeviceResponse]])
def list_devices(
    current_user: CurrentUserDep,
    devices: DeviceServiceDep,
) -> Envelope[list[DeviceResponse]]:
    rows = devices.list_active(current_user.id)
    return success(
        "Devices retrieved successfully",
        [DeviceResponse.model_validate(row) for row in rows],
    )


@router.delete("/devices/{device_id}", response_model=Envelope[DeviceRemovedResponse])
def remove_device(
    device_id: str,
    current_user: CurrentUserDep,
    devices: DeviceServiceDep,
) -> Envelope[DeviceRemovedResponse]:
    devices.remove(current_user.id, device_id)
    return success("Device removed successfully", DeviceRemovedResponse(device_id=device_id))
