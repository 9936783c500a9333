"""HTTP middleware.

Order of execution for an incoming request (outermost first):
request id + access log, service key check, error handler.
"""

import hmac
import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from checkout_api.infrastructure.config import settings

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

# Reachable without the service key. The payment callback is authenticated
# by its HMAC signature instead.
PUBLIC_PATHS = frozenset({"/health", "/ready", "/openapi.json", "/payment/callback"})
PUBLIC_PREFIXES = ("/docs", "/redoc")


def is_public(path: str) -> bool:
    path = path.rstrip("/") or "/"
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and write one access log line.

    An incoming ``X-Request-ID`` is reused, otherwise a UUID is generated.
    The id is bound to structlog's context for the request's duration.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _reject(error_code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error_code": error_code, "message": message, "details": []},
        headers={"WWW-Authenticate": "Bearer"},
    )


def check_service_key(authorization: str | None) -> tuple[str, str] | None:
    """Validate ``Authorization: Bearer <service_api_key>``.

    Returns:
        ``(error_code, message)`` for a rejected header, None when valid.
    """
    if not authorization:
        return "UNAUTHORIZED", "Missing Authorization header"

    scheme, _, key = authorization.partition(" ")
    if scheme.lower() != "bearer" or not key:
        return "UNAUTHORIZED", "Invalid Authorization header format. Use 'Bearer <api_key>'"

    if not hmac.compare_digest(key.encode(), settings.service_api_key.encode()):
        return "INVALID_API_KEY", "Invalid API key"
    return None


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Only the upstream gateway may call non-public routes.

    The gateway authenticates shoppers itself and forwards the user in
    ``X-User-Id``; this service only checks the shared service key.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if is_public(request.url.path):
            return await call_next(request)

        rejection = check_service_key(request.headers.get("Authorization"))
        if rejection is not None:
            logger.warning(
                "Service key rejected",
                path=request.url.path,
                method=request.method,
                reason=rejection[0],
            )
            return _reject(*rejection)

        request.state.authenticated = True
        return await call_next(request)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last-resort handler returning the 500 error envelope."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("Unhandled exception", path=request.url.path, method=request.method, error=str(e))
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error_code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                    "details": [],
                    "request_id": getattr(request.state, "request_id", None),
                },
            )


def setup_middleware(app: FastAPI) -> None:
    """Register middleware; the last one added runs first."""
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(ApiKeyMiddleware)
    app.add_middleware(RequestIdMiddleware)
