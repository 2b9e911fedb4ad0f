"""Error Classification Service for Preventing Information Disclosure.

This service turns any raised failure into a stable, client-safe description:
an HTTP status, a machine-readable code, a message and, for validation
failures, per-field violations.

Precedence (first match wins):
1. Application errors (``BastionError``) pass through verbatim.
2. Schema validation errors (pydantic, FastAPI request validation) become
   ``400 VALIDATION_ERROR`` with field errors.
3. Persistence constraint violations become ``409 DUPLICATE``,
   ``404 NOT_FOUND`` or ``400 INVALID_REFERENCE``.
4. Anything else becomes ``500 INTERNAL_ERROR``. Only development mode
   returns the raw message and the traceback.

The raw failure is always logged server-side; sanitization applies to the
outbound payload only.
"""

import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound
from sqlalchemy.orm.exc import StaleDataError

from src.core.exceptions import (
    BastionError,
    ConstraintViolation,
    ErrorKind,
    PersistenceConstraintError,
    RateLimitExceededError,
)
from src.domain.value_objects.runtime_mode import RuntimeMode

GENERIC_INTERNAL_MESSAGE = "An unexpected error occurred"
VALIDATION_FAILED_MESSAGE = "Validation failed"

_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})

# SQLSTATE codes (PostgreSQL drivers expose them as ``pgcode`` or ``sqlstate``)
_SQLSTATE_UNIQUE = "23505"
_SQLSTATE_FOREIGN_KEY = "23503"


@dataclass(frozen=True)
class ClassifiedError:
    """Client-safe description of a failure."""

    http_status: int
    error_code: str
    user_message: str
    field_errors: Optional[Dict[str, List[str]]] = None
    debug_details: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Render the outbound JSON body ``{error, code, errors?, stack?}``."""
        payload: Dict[str, Any] = {"error": self.user_message, "code": self.error_code}
        if self.field_errors:
            payload["errors"] = self.field_errors
        if self.debug_details:
            payload["stack"] = self.debug_details
        return payload


_CONSTRAINT_RESPONSES: Dict[ConstraintViolation, ClassifiedError] = {
    ConstraintViolation.UNIQUE: ClassifiedError(
        http_status=ErrorKind.CONFLICT.http_status,
        error_code=ErrorKind.CONFLICT.code,
        user_message="A record with this value already exists",
    ),
    ConstraintViolation.RECORD_NOT_FOUND: ClassifiedError(
        http_status=ErrorKind.NOT_FOUND.http_status,
        error_code=ErrorKind.NOT_FOUND.code,
        user_message="Record not found",
    ),
    ConstraintViolation.FOREIGN_KEY: ClassifiedError(
        http_status=ErrorKind.INVALID_REFERENCE.http_status,
        error_code=ErrorKind.INVALID_REFERENCE.code,
        user_message="Related record not found",
    ),
}


class ErrorClassifier:
    """Total mapping from raised failures to ``ClassifiedError``.

    The runtime mode is fixed at construction so that classification is a
    deterministic function of the error value.
    """

    def __init__(self, mode: RuntimeMode = RuntimeMode.PRODUCTION):
        self.mode = mode
        self._logger = structlog.get_logger("security.errors")

    def classify(self, error: BaseException) -> ClassifiedError:
        """Classify ``error`` and log it.

        Args:
            error: Any raised exception

        Returns:
            ClassifiedError: Status, code, message and optional field errors
        """
        classified = self._classify(error)
        self._log(error, classified)
        return classified

    def _classify(self, error: BaseException) -> ClassifiedError:
        if isinstance(error, BastionError):
            headers = error.headers() if isinstance(error, RateLimitExceededError) else {}
            return ClassifiedError(
                http_status=error.status_code,
                error_code=error.code,
                user_message=error.message,
                field_errors=error.field_errors,
                headers=headers,
            )

        if isinstance(error, (PydanticValidationError, RequestValidationError)):
            strip_location = isinstance(error, RequestValidationError)
            return ClassifiedError(
                http_status=ErrorKind.VALIDATION.http_status,
                error_code=ErrorKind.VALIDATION.code,
                user_message=VALIDATION_FAILED_MESSAGE,
                field_errors=field_errors_from(error.errors(), strip_location=strip_location),
            )

        violation = constraint_violation_of(error)
        if violation is not None:
            return _CONSTRAINT_RESPONSES[violation]

        if self.mode.is_development:
            return ClassifiedError(
                http_status=ErrorKind.INTERNAL.http_status,
                error_code=ErrorKind.INTERNAL.code,
                user_message=str(error) or "Unknown error",
                debug_details="".join(
                    traceback.format_exception(type(error), error, error.__traceback__)
                ),
            )
        return ClassifiedError(
            http_status=ErrorKind.INTERNAL.http_status,
            error_code=ErrorKind.INTERNAL.code,
            user_message=GENERIC_INTERNAL_MESSAGE,
        )

    def _log(self, error: BaseException, classified: ClassifiedError) -> None:
        log = self._logger.error if classified.http_status >= 500 else self._logger.warning
        log(
            "request_error_classified",
            error_type=type(error).__name__,
            error_message=str(error),
            http_status=classified.http_status,
            error_code=classified.error_code,
            exc_info=error,
        )


def field_errors_from(
    errors: Iterable[Mapping[str, Any]], strip_location: bool = False
) -> Dict[str, List[str]]:
    """Flatten a pydantic violation list into ``{field path: [messages]}``.

    Args:
        errors: Items exposing ``loc`` and ``msg`` as produced by ``.errors()``
        strip_location: Drop a leading request location (``body``, ``query``...)

    Returns:
        Dict[str, List[str]]: Dotted field path to violation messages
    """
    flattened: Dict[str, List[str]] = {}
    for item in errors:
        loc = [str(part) for part in item.get("loc", ())]
        if strip_location and len(loc) > 1 and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        name = ".".join(loc) or "__root__"
        flattened.setdefault(name, []).append(str(item.get("msg", "Invalid value")))
    return flattened


def constraint_violation_of(error: BaseException) -> Optional[ConstraintViolation]:
    """Recognise persistence constraint violations.

    Understands ``PersistenceConstraintError`` raised by repositories as well
    as SQLAlchemy's ``IntegrityError`` (PostgreSQL SQLSTATE codes and SQLite
    messages), ``NoResultFound`` and ``StaleDataError``.
    """
    if isinstance(error, PersistenceConstraintError):
        return error.violation

    if isinstance(error, (NoResultFound, StaleDataError)):
        return ConstraintViolation.RECORD_NOT_FOUND

    if isinstance(error, IntegrityError):
        orig = error.orig
        sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if sqlstate == _SQLSTATE_UNIQUE:
            return ConstraintViolation.UNIQUE
        if sqlstate == _SQLSTATE_FOREIGN_KEY:
            return ConstraintViolation.FOREIGN_KEY

        message = str(orig).lower()
        if "unique constraint" in message or "duplicate key" in message:
            return ConstraintViolation.UNIQUE
        if "foreign key constraint" in message:
            return ConstraintViolation.FOREIGN_KEY

    return None
