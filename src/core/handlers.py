"""
Global exception handlers for the FastAPI application.

Every failure that escapes a route is classified by the shared
``ErrorClassifier`` and rendered as ``{error, code, errors?, stack?}``, so
clients see one error shape whatever raised it.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound
from sqlalchemy.orm.exc import StaleDataError
from structlog import get_logger

from src.core.dependencies.governance import get_error_classifier
from src.core.exceptions import BastionError, PersistenceConstraintError, RateLimitExceededError
from src.core.governance import error_response

__all__ = [
    "bastion_error_handler",
    "rate_limit_exceeded_error_handler",
    "validation_error_handler",
    "persistence_error_handler",
    "unhandled_exception_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


async def bastion_error_handler(request: Request, exc: BastionError) -> JSONResponse:
    """Handles `BastionError`, returning the error's own status and code.

    Args:
        request: The incoming `Request` object.
        exc: The `BastionError` instance.

    Returns:
        A `JSONResponse` with the classified status code and error body.
    """
    return error_response(get_error_classifier().classify(exc))


async def rate_limit_exceeded_error_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    """Handles `RateLimitExceededError`, returning a `429 Too Many Requests`.

    The response carries `Retry-After`, `X-RateLimit-Remaining` and
    `X-RateLimit-Reset` headers.
    """
    logger.warning(
        "rate_limit_rejected",
        path=request.url.path,
        retry_after=exc.retry_after,
    )
    return error_response(get_error_classifier().classify(exc))


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handles request and model validation failures with `400 Bad Request`."""
    return error_response(get_error_classifier().classify(exc))


async def persistence_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handles storage constraint violations (duplicate, missing, bad reference)."""
    return error_response(get_error_classifier().classify(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handles anything else with `500 Internal Server Error`.

    The raw error is logged by the classifier; the client only sees the
    generic message outside development mode.
    """
    return error_response(get_error_classifier().classify(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Registers all exception handlers with the FastAPI application.

    Handlers are resolved by the exception's MRO, so the more specific
    `RateLimitExceededError` handler wins over the `BastionError` one.

    Args:
        app: The `FastAPI` application instance.
    """
    app.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_error_handler)
    app.add_exception_handler(BastionError, bastion_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PydanticValidationError, validation_error_handler)
    app.add_exception_handler(PersistenceConstraintError, persistence_error_handler)
    app.add_exception_handler(IntegrityError, persistence_error_handler)
    app.add_exception_handler(NoResultFound, persistence_error_handler)
    app.add_exception_handler(StaleDataError, persistence_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
