"""Correlation ID middleware.

Reads ``X-Correlation-ID`` from the request (or mints one), exposes it to
the log formatters through ``correlation_id_ctx`` and echoes it on the
response. Pure ASGI, so the asyncpg connections used inside the request
stay on the request's event loop.
"""

import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from swahiba_api.logging_config import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Probe traffic is not worth a log line per hit
_QUIET_PATHS = ("/health",)


class CorrelationIdMiddleware:
    """Tags each HTTP request with a correlation id and logs its outcome."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        correlation_id = headers.get(b"x-correlation-id", b"").decode() or str(
            uuid.uuid4()
        )
        token = correlation_id_ctx.set(correlation_id)

        method = scope.get("method", "")
        path = scope.get("path", "")
        quiet = path.startswith(_QUIET_PATHS)
        start_time = time.perf_counter()
        status_code: int | None = None

        if not quiet:
            logger.info("Request started", method=method, path=path)

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status")
                response_headers = list(message.get("headers", []))
                response_headers.append(
                    (CORRELATION_ID_HEADER.lower().encode(), correlation_id.encode())
                )
                message = {**message, "headers": response_headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
            if not quiet:
                logger.info(
                    "Request completed",
                    method=method,
                    path=path,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
        except Exception:
            logger.exception(
                "Request failed",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        finally:
            correlation_id_ctx.reset(token)
