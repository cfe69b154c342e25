"""Business logic services for the RunSight application."""

from .devices import DeviceService
from .pairing import PairingService
from .rate_limit import RateLimiter, RateLimitPolicy, RateLimitSweeper

__all__ = [
    "DeviceService",
    "PairingService",
    "RateLimiter",
    "RateLimitPolicy",
    "RateLimitSweeper",
]
