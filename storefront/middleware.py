import time
import uuid
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .core.config import settings

logger = logging.getLogger(__name__)

class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Token-bearing responses must never be cached
        if request.url.path.startswith("/auth"):
            response.headers["Cache-Control"] = "no-store"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response

SLOW_REQUEST_SECONDS = 1.0

class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its outcome."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        client_host = request.client.host if request.client else "unknown"
        log = logger.warning if elapsed >= SLOW_REQUEST_SECONDS else logger.info
        log(f"[{request_id}] {client_host} {request.method} {request.url.path} -> {response.status_code} ({elapsed * 1000:.0f} ms)")
        response.headers["X-Request-ID"] = request_id
        return response

class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", "-")
            logger.error(f"[{request_id}] Unhandled error on {request.method} {request.url.path}: {e}", exc_info=True)

            message = f"Internal server error: {e}" if settings.DEBUG else "Internal server error"
            return JSONResponse(
                status_code=500,
                content={"success": False, "data": None, "error": message, "code": "INTERNAL_ERROR"}
            )
