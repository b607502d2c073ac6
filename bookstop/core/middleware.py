import time
import uuid
import logging
from typing import List, Optional, Set

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from bookstop.core.config import settings
from bookstop.core.security import SECURITY_HEADERS

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = ["http://localhost:5173"]


def get_client_ip(request: Request) -> str:
    """Client IP, honouring the usual reverse-proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an X-Request-ID and logs the request line and
    the response status with its processing time.
    """

    def __init__(self, app, exclude_paths: Optional[Set[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or {"/health", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()
        should_log = request.url.path not in self.exclude_paths

        if should_log:
            logger.info(
                f"--> {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "client_ip": get_client_ip(request),
                    "query_params": str(request.query_params) or None,
                    "user_agent": request.headers.get("user-agent", "unknown"),
                },
            )

        response = await call_next(request)

        process_time = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id

        if should_log:
            logger.info(
                f"<-- {request.method} {request.url.path} {response.status_code} ({process_time:.2f}ms)",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "process_time_ms": round(process_time, 2),
                },
            )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds `SECURITY_HEADERS` to every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        headers = dict(SECURITY_HEADERS)
        # HSTS only makes sense over TLS
        if request.url.scheme != "https":
            headers.pop("Strict-Transport-Security", None)

        for header, value in headers.items():
            response.headers[header] = value
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared body exceeds `max_size` bytes."""

    def __init__(self, app, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")

        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            logger.warning(
                "Rejected oversized request",
                extra={"path": request.url.path, "content_length": content_length},
            )
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "message": f"Request payload exceeds maximum size of {self.max_size} bytes",
                },
            )

        return await call_next(request)


def register_middlewares(app: FastAPI) -> None:
    """
    Registers all middlewares for the application. Starlette runs them in
    reverse order of registration, so logging (added last) sees everything.
    """
    allowed_hosts = _get_allowed_hosts()

    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)

    if "*" not in allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(RequestLoggingMiddleware, exclude_paths=settings.LOGGING_EXCLUDE_PATHS)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def _get_allowed_hosts() -> List[str]:
    hosts = _split_csv(settings.ALLOWED_HOSTS)
    if not hosts:
        logger.warning("ALLOWED_HOSTS is empty, falling back to localhost only")
        return ["localhost", "127.0.0.1"]
    return hosts


def _get_cors_origins() -> List[str]:
    origins = _split_csv(settings.CORS_ORIGINS)
    if not origins:
        logger.warning("CORS_ORIGINS is empty, falling back to the local dev client")
        return DEFAULT_CORS_ORIGINS
    return origins
