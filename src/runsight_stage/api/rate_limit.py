"""Admission gates placed in front of request dispatch.

``GlobalRateLimitMiddleware`` applies the lenient policy to every request.
``RateLimitGate`` is a route dependency applying a named strict limiter to the
sensitive routes only. Limiters are owned by an ``AdmissionControl`` stored on
``app.state`` rather than at module level, so each app instance starts clean.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from runsight_stage.api.client_identity import client_ip
from runsight_stage.api.responses import domain_error_response
from runsight_stage.core.errors import RateLimitExceeded
from runsight_stage.core.settings import Settings
from runsight_stage.services.rate_limit import (
    RateLimiter,
    lenient_policy,
    strict_policy,
)

logger = logging.getLogger(__name__)

PAIRING_GATE = "pairing"
PAIRING_VERIFY_GATE = "pairing_verify"


@dataclass
class AdmissionControl:
    """The limiters of one application instance."""

    global_limiter: RateLimiter
    strict: dict[str, RateLimiter] = field(default_factory=dict)
    trust_forwarded: bool = True

    @classmethod
    def from_settings(
        cls, config: Settings, *, clock: Callable[[], float] = time.monotonic
    ) -> AdmissionControl:
        return cls(
            global_limiter=RateLimiter(lenient_policy(config), clock=clock),
            strict={
                # Allows a mobile client to poll status roughly every three seconds.
                PAIRING_GATE: RateLimiter(strict_policy(config, PAIRING_GATE), clock=clock),
                PAIRING_VERIFY_GATE: RateLimiter(
                    strict_policy(
                        config,
                        PAIRING_VERIFY_GATE,
                        config.pairing_verify_rate_limit_per_minute,
                    ),
                    clock=clock,
                ),
            },
            trust_forwarded=config.trust_proxy_headers,
        )

    @property
    def limiters(self) -> list[RateLimiter]:
        return [self.global_limiter, *self.strict.values()]


def _rejection(limiter: RateLimiter, request: Request, key: str) -> RateLimitExceeded:
    policy = limiter.policy
    logger.warning(
        "Rate limit exceeded (%s) for %s on %s %s",
        policy.name,
        key,
        request.method,
        request.url.path,
    )
    return RateLimitExceeded(policy.error_code, policy.message, policy.retry_after)


class GlobalRateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests over the lenient policy before routing."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter, trust_forwarded: bool = True) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.trust_forwarded = trust_forwarded

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        key = client_ip(request, trust_forwarded=self.trust_forwarded)
        if not self.limiter.allow(key):
            return domain_error_response(_rejection(self.limiter, request, key))
        return await call_next(request)


class RateLimitGate:
    """Route dependency enforcing one of the app's strict limiters."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, request: Request) -> None:
        admission: AdmissionControl = request.app.state.admission
        limiter = admission.strict[self.name]
        key = client_ip(request, trust_forwarded=admission.trust_forwarded)
        if not limiter.allow(key):
            raise _rejection(limiter, request, key)
