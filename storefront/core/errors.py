import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import StorefrontError, ValidationError

logger = logging.getLogger(__name__)


def create_error_response(error_message: str, code: str = "ERROR", field_errors: Optional[List[Dict[str, str]]] = None) -> dict:
    """Create a standardized error response"""
    body: Dict[str, Any] = {
        "success": False,
        "data": None,
        "error": error_message,
        "code": code,
    }
    if field_errors:
        body["errors"] = field_errors
    return body


def create_success_response(data: Any) -> dict:
    """Create a standardized success response"""
    return {
        "success": True,
        "data": data,
        "error": None
    }


def _field_errors_from_pydantic(exc: RequestValidationError) -> List[Dict[str, str]]:
    errors = []
    for err in exc.errors():
        # loc is ("body", "field", ...) for JSON bodies
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.append({"field": ".".join(loc), "msg": msg})
    return errors


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_exception_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
        field_errors = exc.details if isinstance(exc, ValidationError) else None
        headers = None
        retry_after = getattr(exc, "retry_after", None)
        if retry_after:
            headers = {"Retry-After": str(retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(exc.message, exc.code, field_errors),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        field_errors = _field_errors_from_pydantic(exc)
        message = field_errors[0]["msg"] if field_errors else "Validation failed"
        return JSONResponse(
            status_code=400,
            content=create_error_response(message, "VALIDATION_ERROR", field_errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # HTTPBearer reports a missing header as 403
        if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
            return JSONResponse(
                status_code=401,
                content=create_error_response("Authentication required", "MISSING_TOKEN"),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(str(exc.detail), "HTTP_ERROR"),
        )
