"""Render errors into the response envelope."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from runsight_stage.core.errors import (
    ERR_FORBIDDEN,
    ERR_INTERNAL,
    ERR_METHOD_NOT_ALLOWED,
    ERR_REQUEST_FAILED,
    ERR_RESOURCE_NOT_FOUND,
    ERR_UNAUTHORIZED,
    ERR_VALIDATION_FAILED,
    DomainError,
    RateLimitExceeded,
)

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: ERR_UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ERR_FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ERR_RESOURCE_NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ERR_METHOD_NOT_ALLOWED,
}


def error_response(
    status_code: int,
    message: str,
    error: Any,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build an ``{"status": "error", ...}`` envelope response."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {"status": "error", "message": message, "data": None, "error": error}
        ),
        headers=headers,
    )


def domain_error_response(exc: DomainError) -> JSONResponse:
    """Render a DomainError with its stable code and any details."""
    payload: dict[str, Any] = {"error_code": exc.code}
    if exc.details:
        payload.update(exc.details)
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}
    return error_response(exc.http_status, exc.message, payload, headers=headers)


async def _handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    if exc.http_status >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return domain_error_response(exc)


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    ]
    logger.warning("Validation failed for %s %s: %s", request.method, request.url.path, errors)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        {"error_code": ERR_VALIDATION_FAILED, "fields": errors},
    )


async def _handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    default = (
        ERR_INTERNAL
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
        else ERR_REQUEST_FAILED
    )
    code = _HTTP_ERROR_CODES.get(exc.status_code, default)
    return error_response(
        exc.status_code,
        str(exc.detail),
        {"error_code": code},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install envelope renderers for domain, validation and HTTP errors."""
    app.add_exception_handler(DomainError, _handle_domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _handle_http_exception)  # type: ignore[arg-type]
