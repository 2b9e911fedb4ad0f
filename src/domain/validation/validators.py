"""Reusable pydantic field types for untrusted user input.

Each type is an ``Annotated`` alias usable directly on request models::

    class SignupRequest(BaseModel):
        email: EmailAddress
        password: Password

Violations surface as ordinary pydantic validation errors and are therefore
reported as ``400 VALIDATION_ERROR`` with per-field messages.
"""

import re
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import (
    AfterValidator,
    AwareDatetime,
    BeforeValidator,
    EmailStr,
    Field,
    HttpUrl,
    StrictInt,
    StringConstraints,
)

from src.utils.security import sanitize_html

_PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"
_ZIP_CODE_PATTERN = r"^\d{5}(-\d{4})?$"

_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "Password must contain a lowercase letter"),
    (re.compile(r"[A-Z]"), "Password must contain an uppercase letter"),
    (re.compile(r"[0-9]"), "Password must contain a number"),
)
_SPECIAL_CHARACTER = re.compile(r"[^a-zA-Z0-9]")


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _lower(value: str) -> str:
    return value.lower()


def _check_password(value: str) -> str:
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(value):
            raise ValueError(message)
    return value


def _check_strong_password(value: str) -> str:
    _check_password(value)
    if not _SPECIAL_CHARACTER.search(value):
        raise ValueError("Password must contain a special character")
    return value


EmailAddress = Annotated[EmailStr, BeforeValidator(_strip), AfterValidator(_lower)]
"""Syntactically valid email address, trimmed and lowercased."""

Password = Annotated[
    str,
    StringConstraints(min_length=8, max_length=128),
    AfterValidator(_check_password),
]
"""8 to 128 characters with a lowercase letter, an uppercase letter and a digit."""

StrongPassword = Annotated[
    str,
    StringConstraints(min_length=12, max_length=128),
    AfterValidator(_check_strong_password),
]
"""12 to 128 characters, ``Password`` rules plus a special character."""

PhoneNumber = Annotated[str, StringConstraints(pattern=_PHONE_PATTERN)]
"""E.164-style number: optional ``+`` and up to 15 digits, no leading zero."""

ZipCode = Annotated[str, StringConstraints(pattern=_ZIP_CODE_PATTERN)]
"""US ZIP or ZIP+4."""

SafeString = Annotated[str, BeforeValidator(_strip), AfterValidator(sanitize_html)]
"""Free text with HTML tags and entities removed."""

Currency = Annotated[Decimal, Field(ge=0, decimal_places=2)]
"""Non-negative amount with at most two decimal places."""

Uuid = Annotated[UUID, BeforeValidator(_strip)]
"""UUID of any version in canonical text form."""

Url = HttpUrl

IsoDateTime = AwareDatetime
"""ISO 8601 timestamp with an explicit offset."""

PositiveInteger = Annotated[StrictInt, Field(gt=0)]
"""Whole number above zero; numeric strings are rejected."""

__all__ = [
    "EmailAddress",
    "Password",
    "StrongPassword",
    "PhoneNumber",
    "ZipCode",
    "SafeString",
    "Currency",
    "Uuid",
    "Url",
    "IsoDateTime",
    "PositiveInteger",
]
