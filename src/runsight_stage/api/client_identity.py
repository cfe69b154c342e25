"""Derive the admission-control key for an inbound request."""

from __future__ import annotations

from starlette.requests import Request

UNKNOWN_CLIENT = "unknown"


def client_ip(request: Request, *, trust_forwarded: bool = True) -> str:
    """Return the caller's apparent network address.

    Behind a reverse proxy the first ``X-Forwarded-For`` entry (then
    ``X-Real-IP``) names the original client; otherwise the socket peer is
    used. Clients sharing an address share a key.
    """
    if trust_forwarded:
        forwarded_for = request.headers.get("x-forwarded-for", "")
        first = forwarded_for.split(",", 1)[0].strip()
        if first:
            return first
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT
