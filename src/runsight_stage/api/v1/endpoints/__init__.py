"""API endpoint modules for version 1."""

from .iot import router as iot_router
from .mobile import router as mobile_router
from .system import router as system_router

__all__ = [
    "iot_router",
    "mobile_router",
    "system_router",
]
