"""Main entry point for the RunSight Stage application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runsight_stage.api.rate_limit import AdmissionControl, GlobalRateLimitMiddleware
from runsight_stage.api.responses import register_exception_handlers
from runsight_stage.api.v1 import iot_router, mobile_router, system_router
from runsight_stage.core.settings import Settings, settings
from runsight_stage.services.rate_limit import RateLimitSweeper

logger = logging.getLogger(__name__)


def create_app(config: Settings = settings) -> FastAPI:
    """Assemble the API with its own admission state."""
    app = FastAPI(
        title=config.app_name,
        description="Device pairing and run tracking API",
        version=config.app_version,
    )

    admission = AdmissionControl.from_settings(config)
    app.state.settings = config
    app.state.admission = admission
    app.state.rate_limit_sweeper = None

    # Added first so it sits inside CORS and rejections still carry CORS headers.
    app.add_middleware(
        GlobalRateLimitMiddleware,
        limiter=admission.global_limiter,
        trust_forwarded=config.trust_proxy_headers,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )

    register_exception_handlers(app)

    app.include_router(mobile_router, prefix="/api/v1")
    app.include_router(iot_router, prefix="/api/v1")
    app.include_router(system_router, prefix="/api/v1")

    @app.on_event("startup")
    async def on_startup() -> None:
        sweeper = RateLimitSweeper(
            admission.limiters,
            interval=config.rate_limit_sweep_interval_seconds,
        )
        await sweeper.start()
        app.state.rate_limit_sweeper = sweeper
        logger.info("Started %s %s", config.app_name, config.app_version)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        sweeper: RateLimitSweeper | None = app.state.rate_limit_sweeper
        if sweeper:
            await sweeper.stop()
        app.state.rate_limit_sweeper = None

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": config.app_name,
            "version": config.app_version,
            "docs": "/docs",
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run("runsight_stage.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
