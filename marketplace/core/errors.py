# marketplace/core/errors.py
# Engine error taxonomy and the FastAPI handlers that turn it into
# {"success": false, "error": ..., "statusCode": ...} responses.

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from loguru import logger


class MarketplaceError(Exception):
    """Base class for errors raised by the engine components."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    status_code = 400
    default_message = "Invalid input"


class InvalidCategoryError(ValidationError):
    default_message = "Invalid category"


class InvalidStatusError(ValidationError):
    default_message = "Invalid status"


class SelfRatingError(ValidationError):
    default_message = "Cannot rate your own profile"


class NotFoundError(MarketplaceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(MarketplaceError):
    status_code = 409
    default_message = "Conflict"


class DuplicateNameError(ConflictError):
    default_message = "Category with this name already exists"


class TerminalStatusError(ConflictError):
    default_message = "Request is already closed"


class AuthError(MarketplaceError):
    status_code = 401
    default_message = "Not authenticated"


class AccessDeniedError(AuthError):
    status_code = 403
    default_message = "Access denied"


class StorageError(MarketplaceError):
    status_code = 500
    default_message = "Database operation failed"


def error_body(message: str, status_code: int, details: Any | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message, "statusCode": status_code}
    if details is not None:
        body["details"] = details
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.status_code))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_body("Invalid request parameters", 422, details=jsonable_errors(exc)),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body("Internal server error", 500))


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
