"""Uniform JSON error envelope for every failure the API can produce."""

import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.core.config import Config
from backend.app.utils.logger import create_logger

logger = create_logger(__name__, level=Config.LOG_LEVEL)


class ErrorKind(str, Enum):
    UNSUPPORTED_TYPE = "UnsupportedType"
    TOO_LARGE = "TooLarge"
    NO_FILE_PROVIDED = "NoFileProvided"
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    INVALID_REQUEST = "InvalidRequest"
    INTERNAL = "Internal"


class ApiError(Exception):
    """Error carrying the HTTP status to respond with."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Any = None,
        kind: Optional[ErrorKind] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors
        self.kind = kind


def request_path(request: Request) -> str:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return path


def error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: Any = None,
    exc: Optional[BaseException] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Log the failure and build the standard error envelope."""
    path = request_path(request)
    if status_code >= 500:
        logger.error(
            f"{request.method} {path} -> {status_code}: {message}",
            exc_info=(type(exc), exc, exc.__traceback__) if exc else None,
        )
    else:
        logger.warning(f"{request.method} {path} -> {status_code}: {message}")

    body = {
        "status": status_code,
        "message": message or "Internal Server Error",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": path,
    }

    if Config.is_development() and exc is not None:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )

    if errors:
        body["errors"] = jsonable_encoder(errors)

    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(request, exc.status_code, exc.message, exc.errors, exc)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # Unmatched routes reach here as a bare 404 from the router
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Resource not found - {request_path(request)}"
    else:
        message = str(exc.detail)
    return error_response(
        request, exc.status_code, message, exc=exc, headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(request, 400, "Invalid request", exc.errors(), exc)


async def catch_unhandled_errors(request: Request, call_next):
    """Funnel anything the route handlers did not handle into the envelope."""
    try:
        return await call_next(request)
    except Exception as exc:
        message = str(exc) if Config.is_development() else "Internal Server Error"
        return error_response(request, 500, message, exc=exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.middleware("http")(catch_unhandled_errors)
