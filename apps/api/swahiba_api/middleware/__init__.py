"""ASGI middleware for the Swahiba access API."""

from swahiba_api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from swahiba_api.middleware.cors import PreflightCORSMiddleware
from swahiba_api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "CORRELATION_ID_HEADER",
    "CorrelationIdMiddleware",
    "PreflightCORSMiddleware",
    "SecurityHeadersMiddleware",
]
