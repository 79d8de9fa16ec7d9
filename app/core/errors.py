# app/core/errors.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """
    Base of the domain error taxonomy.

    Services raise these; the handlers below render them as
    ``{"success": false, "message": ...}`` with ``status_code``.
    """

    status_code: int = 500
    default_message: str = "Request failed."

    def __init__(self, message: Optional[str] = None, *, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed."


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found."


class DuplicateBidError(AppError):
    status_code = 409
    default_message = "You have already submitted a bid for this project."


class InvalidTransitionError(AppError):
    status_code = 409
    default_message = "Operation not allowed in the current project status."


class RateLimitedError(AppError):
    status_code = 429
    default_message = "Too many requests, please try again later."


class PersistenceError(AppError):
    status_code = 500
    default_message = "Database error."


def error_body(message: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request failed",
        extra={
            "error": type(exc).__name__,
            "status": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "request_id": _request_id(request),
        },
    )
    message = exc.message
    if exc.status_code >= 500 and not get_settings().is_dev:
        message = "Internal Server Error"
    headers = {"Retry-After": "60"} if isinstance(exc, RateLimitedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, errors=exc.errors),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or None, "message": err.get("msg", "invalid")})
    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed.", errors=errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed."
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "request_id": _request_id(request),
        },
    )
    if get_settings().is_dev:
        return JSONResponse(
            status_code=500,
            content=error_body(str(exc) or "Internal Server Error", error=type(exc).__name__),
        )
    return JSONResponse(status_code=500, content=error_body("Internal Server Error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
