"""Swahiba access API: anonymous guest access and conversation bridging."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from swahiba_api.config import settings, validate_settings
from swahiba_api.core.errors import register_exception_handlers
from swahiba_api.database import close_database
from swahiba_api.logging_config import get_logger, setup_logging
from swahiba_api.middleware import (
    CorrelationIdMiddleware,
    PreflightCORSMiddleware,
    SecurityHeadersMiddleware,
)
from swahiba_api.middleware.cors import ALLOWED_HEADERS, ALLOWED_METHODS
from swahiba_api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from swahiba_api.routers import (
    health,
    passkey,
    request_chat,
    request_onboard,
    requests_inbox,
    user_request_chat,
)

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Migrations are applied by the deploy step before uvicorn starts
    validate_settings()
    logger.info(
        "Swahiba access API started",
        environment=settings.environment,
        otp_dev_echo=settings.otp_dev_echo,
    )

    yield

    logger.info("Shutting down Swahiba access API...")
    await close_database()
    logger.info("Swahiba access API shutdown complete")


app = FastAPI(
    title="Swahiba Access API",
    description="Anonymous access (OTP, access code, passkey) and guest/peer chat bridging",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
register_exception_handlers(app)

# Middleware (order matters: last added runs first)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=ALLOWED_METHODS,
    allow_headers=ALLOWED_HEADERS,
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(request_onboard.router)
app.include_router(passkey.router)
app.include_router(request_chat.router)
app.include_router(user_request_chat.router)
app.include_router(requests_inbox.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "Swahiba Access API",
        "version": "0.1.0",
        "docs": "/docs",
    }
