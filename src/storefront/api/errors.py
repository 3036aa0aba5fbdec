"""Map storefront exceptions onto ``{success: false, message}`` responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.config import is_development
from storefront.exceptions import (
    AuthenticationRequired,
    ConcurrentModification,
    OrderAccessDenied,
    PaymentDeclined,
    error_message,
)

logger = structlog.get_logger(__name__)


def failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return failure(400, error_message(exc))


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return failure(400, "; ".join(problems) or "Invalid request")


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return failure(404, error_message(exc))


async def _unauthenticated(request: Request, exc: AuthenticationRequired) -> JSONResponse:
    return failure(401, str(exc) or "Authentication required")


async def _forbidden(request: Request, exc: OrderAccessDenied) -> JSONResponse:
    return failure(403, str(exc) or "Access denied")


async def _payment_declined(request: Request, exc: PaymentDeclined) -> JSONResponse:
    extra = {}
    if exc.order is not None:
        extra["data"] = exc.order
    return failure(400, str(exc), **extra)


async def _conflict(request: Request, exc: ConcurrentModification) -> JSONResponse:
    return failure(409, str(exc))


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled request error", path=request.url.path, method=request.method)
    message = "An unexpected error occurred"
    if is_development():
        return failure(500, message, error=str(exc))
    return failure(500, message)


def register_error_handlers(app: FastAPI) -> None:
    """Install the storefront exception handlers on ``app``."""
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(AuthenticationRequired, _unauthenticated)
    app.add_exception_handler(OrderAccessDenied, _forbidden)
    app.add_exception_handler(PaymentDeclined, _payment_declined)
    app.add_exception_handler(ConcurrentModification, _conflict)
    app.add_exception_handler(Exception, _unexpected)
