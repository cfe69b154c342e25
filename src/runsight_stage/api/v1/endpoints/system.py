"""System endpoints for health checks and public configuration."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from runsight_stage.api.rate_limit import AdmissionControl
from runsight_stage.api.v1.dependencies import SessionDep, SettingsDep
from runsight_stage.models import PAIRING_CODE_TTL

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health")
def get_system_health(db: SessionDep, config: SettingsDep) -> dict[str, object]:
    """Report service and database health."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e.__class__.__name__}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {"database": db_status},
        "version": config.app_version,
    }


@router.get("/config")
def get_public_config(request: Request, config: SettingsDep) -> dict[str, object]:
    """Return a sanitized snapshot of runtime configuration.

    Excludes secrets and connection strings.
    """
    admission: AdmissionControl = request.app.state.admission
    return {
        "app": {"name": config.app_name, "version": config.app_version},
        "pairing": {"code_ttl_seconds": int(PAIRING_CODE_TTL.total_seconds())},
        "rate_limits": {
            limiter.policy.name: {
                "rate_per_second": limiter.policy.rate,
                "burst": limiter.policy.burst,
                "retry_after": limiter.policy.retry_after,
                "active_clients": len(limiter),
            }
            for limiter in admission.limiters
        },
        "rate_limit_sweep_interval_seconds": config.rate_limit_sweep_interval_seconds,
    }
