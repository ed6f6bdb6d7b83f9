"""Exception handlers rendering every failure as ``{"message": ...}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from storefront.errors import StorefrontError

logger = structlog.get_logger(__name__)


def _first_message(messages) -> str:
    """Flatten Protean's ``{"field": ["msg", ...]}`` error payload to one line."""
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, (list, tuple)) and value:
                return str(value[0])
            if value:
                return str(value)
    return str(messages)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    return _message(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _message(400, _first_message(exc.messages))


async def invalid_operation_handler(request: Request, exc: InvalidOperationError) -> JSONResponse:
    return _message(400, str(exc))


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _message(404, "Order not found" if "Order" in str(exc) else "Resource not found")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        return _message(400, f"{location}: {errors[0].get('msg')}" if location else errors[0].get("msg"))
    return _message(400, "Invalid request")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, error=str(exc))
    return _message(500, "Internal server error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(InvalidOperationError, invalid_operation_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
