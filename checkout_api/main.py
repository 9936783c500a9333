"""FastAPI application for the checkout service.

Wires routers, middleware and the error envelope handlers. Run with
``uvicorn checkout_api.main:app``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkout_api.api import (
    admin_orders_router,
    cart_router,
    catalog_router,
    health_router,
    orders_router,
    payments_router,
)
from checkout_api.api.middleware import setup_middleware
from checkout_api.infrastructure.config import settings
from checkout_api.infrastructure.database import engine
from checkout_api.infrastructure.logging import configure_logging
from checkout_api.infrastructure.payment_gateway import get_payment_gateway_registry

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging on startup and release database connections on shutdown."""
    configure_logging(settings.log_level, json_logs=settings.log_json)
    logger.info(
        "Starting checkout API",
        version=settings.api_version,
        debug=settings.debug,
        payment_methods=get_payment_gateway_registry().supported_methods(),
    )

    yield

    logger.info("Shutting down checkout API")
    await engine.dispose()


app = FastAPI(
    title="Checkout API",
    description="Cart, order and payment reconciliation service for the souvenir shop",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(catalog_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(admin_orders_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTPException in the error envelope."""
    request_id = getattr(request.state, "request_id", None)

    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures in the error envelope."""
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ],
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log and hide anything a route did not handle."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled route exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": [],
            "request_id": request_id,
        },
    )
