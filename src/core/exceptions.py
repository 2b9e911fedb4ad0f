from __future__ import annotations

"""Centralized, structured error model for Bastion.

Every application failure is a ``BastionError`` tagged with an ``ErrorKind``.
The kind fixes the HTTP status and the stable, machine-readable code; the
instance carries a human-readable message and, for validation failures,
per-field violation messages.

The thin subclasses below are constructors for the individual kinds. They
exist so that call sites read naturally (``raise NotFoundError("Report")``)
and so that ``except`` clauses can target a kind; classification only ever
looks at ``kind``, ``status_code`` and ``code``.

Persistence constraint violations are modelled separately by
``PersistenceConstraintError`` because they originate in the storage layer,
not in application logic.
"""

from enum import Enum
from typing import Dict, Final, List, Mapping, Optional

__all__: Final = [
    "ErrorKind",
    "BastionError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "RateLimitExceededError",
    "ConflictError",
    "InvalidReferenceError",
    "ConstraintViolation",
    "PersistenceConstraintError",
    "assert_authenticated",
    "assert_ownership",
    "assert_found",
]


class ErrorKind(str, Enum):
    """Failure taxonomy. The value is the stable error code sent to clients."""

    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    CONFLICT = "DUPLICATE"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    INTERNAL = "INTERNAL_ERROR"

    @property
    def http_status(self) -> int:
        return _KIND_STATUS[self]

    @property
    def code(self) -> str:
        return self.value


_KIND_STATUS: Final[Dict[ErrorKind, int]] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RATE_LIMIT_EXCEEDED: 429,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_REFERENCE: 400,
    ErrorKind.INTERNAL: 500,
}


class BastionError(Exception):
    """Base exception class for all application errors.

    Attributes:
        message (str): A human-readable error message, safe to return to clients.
        kind (ErrorKind): The taxonomy tag.
        status_code (int): HTTP status, defaults to the kind's status.
        code (str): Machine-readable code, defaults to the kind's code.
        field_errors (dict | None): Field name to list of violation messages.
        is_operational (bool): False for programming errors that should page someone.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.INTERNAL,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        field_errors: Optional[Mapping[str, List[str]]] = None,
        is_operational: bool = True,
    ):
        self.message = message
        self.kind = kind
        self.status_code = status_code if status_code is not None else kind.http_status
        self.code = code if code is not None else kind.code
        self.field_errors = {k: list(v) for k, v in field_errors.items()} if field_errors else None
        self.is_operational = is_operational
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, status={self.status_code}, message={self.message!r})"


class ValidationError(BastionError):
    """Raised for malformed or out-of-policy input. Maps to `400 Bad Request`."""

    def __init__(self, message: str = "Validation failed", errors: Optional[Mapping[str, List[str]]] = None):
        super().__init__(message, ErrorKind.VALIDATION, field_errors=errors)

    @property
    def errors(self) -> Optional[Dict[str, List[str]]]:
        return self.field_errors


class AuthenticationError(BastionError):
    """Raised when no verified principal is present. Maps to `401 Unauthorized`."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, ErrorKind.AUTHENTICATION)


class AuthorizationError(BastionError):
    """Raised when a verified principal lacks permission. Maps to `403 Forbidden`."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, ErrorKind.AUTHORIZATION)


class NotFoundError(BastionError):
    """Raised when a referenced entity is absent. Maps to `404 Not Found`."""

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found", ErrorKind.NOT_FOUND)


class RateLimitExceededError(BastionError):
    """Raised when a caller's quota is exhausted. Maps to `429 Too Many Requests`.

    Attributes:
        retry_after (int | None): Seconds until the window resets.
        window_reset_at (int | None): Epoch milliseconds at which the window resets.
    """

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        *,
        retry_after: Optional[int] = None,
        window_reset_at: Optional[int] = None,
    ):
        self.retry_after = retry_after
        self.window_reset_at = window_reset_at
        super().__init__(message, ErrorKind.RATE_LIMIT_EXCEEDED)

    def headers(self) -> Dict[str, str]:
        headers = {"X-RateLimit-Remaining": "0"}
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        if self.window_reset_at is not None:
            headers["X-RateLimit-Reset"] = str(self.window_reset_at)
        return headers


class ConflictError(BastionError):
    """Raised on a uniqueness conflict. Maps to `409 Conflict`."""

    def __init__(self, message: str = "A record with this value already exists"):
        super().__init__(message, ErrorKind.CONFLICT)


class InvalidReferenceError(BastionError):
    """Raised when a referenced related record does not exist. Maps to `400 Bad Request`."""

    def __init__(self, message: str = "Related record not found"):
        super().__init__(message, ErrorKind.INVALID_REFERENCE)


# ---------------------------------------------------------------------------
# Persistence constraint errors
# ---------------------------------------------------------------------------


class ConstraintViolation(str, Enum):
    """Constraint-violation kinds reported by the persistence layer."""

    UNIQUE = "unique"
    RECORD_NOT_FOUND = "record_not_found"
    FOREIGN_KEY = "foreign_key"


class PersistenceConstraintError(Exception):
    """Raised by repositories when a write violates a storage constraint.

    The message may contain table and column names, so it is logged but never
    returned to clients.
    """

    def __init__(self, violation: ConstraintViolation, message: str = ""):
        self.violation = violation
        self.message = message or f"{violation.value} constraint violated"
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def assert_authenticated(principal: object, message: str = "Authentication required") -> None:
    """Raise ``AuthenticationError`` unless ``principal`` is truthy."""
    if not principal:
        raise AuthenticationError(message)


def assert_ownership(condition: bool, message: str = "Permission denied") -> None:
    """Raise ``AuthorizationError`` unless ``condition`` holds."""
    if not condition:
        raise AuthorizationError(message)


def assert_found(value: object, resource: str = "Resource") -> None:
    """Raise ``NotFoundError`` when ``value`` is None."""
    if value is None:
        raise NotFoundError(resource)
