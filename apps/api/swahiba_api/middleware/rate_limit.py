"""Rate limiting for the unauthenticated guest endpoints (slowapi).

OTP issuance, access-code guessing and passkey ceremonies are keyed by
client IP. Storage is Redis in deployment and in-memory under tests,
where limiting is disabled.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from swahiba_api.config import settings
from swahiba_api.core.errors import error_body

_storage_uri = (
    "memory://"
    if settings.testing
    else (settings.redis_url if settings.redis_url else "memory://")
)


def client_ip(request: Request) -> str:
    """Client IP, respecting X-Forwarded-For behind the edge proxy."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(
    key_func=client_ip,
    storage_uri=_storage_uri,
    enabled=not settings.testing,
)

# Per-endpoint limits (@limiter.limit):
# request-onboard: 20/minute
# passkey: 20/minute


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """429 in the shared ``{error, details}`` envelope."""
    return JSONResponse(
        status_code=429,
        content=error_body("Too many requests", f"Rate limit exceeded: {exc.detail}"),
    )
