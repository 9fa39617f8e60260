"""
HTTP middleware: request correlation and timing, security headers, body size cap.
"""

import time
from typing import Callable, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
from starlette.types import ASGIApp

from academy.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


QUIET_PATHS: FrozenSet[str] = frozenset({
    "/health",
    "/",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
})

# Proxied document downloads; the measured time stops at the first byte
STREAMING_PREFIXES = ("/api/documents/stream/",)

SLOW_REQUEST_MS = 1000


def should_skip_logging(path: str) -> bool:
    return path in QUIET_PATHS or path.startswith("/static/")


def is_streaming_path(path: str) -> bool:
    return path.startswith(STREAMING_PREFIXES)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id (reusing an incoming X-Request-ID),
    logs start and completion, and returns X-Request-ID and
    X-Response-Time headers. Health and docs paths are not logged.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        method, path = request.method, request.url.path
        quiet = should_skip_logging(path)
        started = time.perf_counter()

        if not quiet:
            logger.info(
                f"→ {method} {path}",
                extra={
                    "event_type": "http_request_start",
                    "http_method": method,
                    "http_path": path,
                    "client_ip": request.client.host if request.client else "unknown",
                }
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"✗ {method} {path} - unhandled {type(exc).__name__}",
                exc_info=True,
                extra={
                    "event_type": "http_request_error",
                    "http_method": method,
                    "http_path": path,
                    "duration_ms": (time.perf_counter() - started) * 1000,
                }
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            set_request_id("")
            set_user_id("")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

        if not quiet:
            streaming = is_streaming_path(path)
            logger.log_request(method, path, response.status_code, elapsed_ms, is_streaming=streaming)
            if elapsed_ms > SLOW_REQUEST_MS and not streaming:
                logger.warning(f"Slow request: {method} {path} took {elapsed_ms:.2f}ms")

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Answers 413 when the declared Content-Length is over max_size"""

    def __init__(self, app: ASGIApp, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(
                f"Rejected {request.url.path}: body of {declared} bytes exceeds {self.max_size}",
                extra={"event_type": "request_too_large", "http_path": request.url.path}
            )
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": f"Request body too large. Maximum size is {self.max_size // (1024 * 1024)}MB",
                    "code": "PAYLOAD_TOO_LARGE",
                }
            )
        return await call_next(request)
