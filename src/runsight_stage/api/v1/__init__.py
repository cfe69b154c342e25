"""Version 1 API endpoints."""

from .endpoints import iot_router, mobile_router, system_router

__all__ = [
    "iot_router",
    "mobile_router",
    "system_router",
]
