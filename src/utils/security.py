"""Security utilities for input sanitization and validation.

This module provides the stateless helpers consumed by request handlers:
HTML stripping and escaping, constant-time comparison, random tokens,
file-upload validation and secret masking for logs.
"""

import re
import secrets
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

_TAG_PATTERN = re.compile(r"<[^>]*>")
_ENTITY_PATTERN = re.compile(r"&[^;]+;")

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#039;",
}
_HTML_ESCAPE_PATTERN = re.compile(r"[&<>\"']")

_SQL_INJECTION_PATTERNS = [
    re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|UNION|ALTER|CREATE|TRUNCATE)\b", re.IGNORECASE),
    re.compile(r"--"),
    re.compile(r";"),
    re.compile(r"\bOR\b.*=.*", re.IGNORECASE),
    re.compile(r"\bAND\b.*=.*", re.IGNORECASE),
]


def sanitize_html(value: str) -> str:
    """Strip HTML tags and entities from a string.

    Tags are removed before entities, then surrounding whitespace is trimmed.
    Applying the function twice yields the same result as applying it once.

    Args:
        value: Untrusted text

    Returns:
        str: Plain text without markup
    """
    without_tags = _TAG_PATTERN.sub("", value)
    without_entities = _ENTITY_PATTERN.sub("", without_tags)
    return without_entities.strip()


def escape_html(value: str) -> str:
    """Escape a string for safe inclusion in HTML text.

    Replaces ``& < > " '`` with their entity equivalents.
    """
    return _HTML_ESCAPE_PATTERN.sub(lambda match: _HTML_ESCAPES[match.group(0)], value)


def has_sql_injection_patterns(value: str) -> bool:
    """Check whether a string looks like an SQL injection attempt.

    Parameterised queries already protect the persistence layer; this is an
    additional screen for free-text fields.
    """
    return any(pattern.search(value) for pattern in _SQL_INJECTION_PATTERNS)


def generate_secure_token(length: int = 32) -> str:
    """Generate a random hex token.

    Args:
        length: Number of random bytes to draw

    Returns:
        str: ``2 * length`` lowercase hex characters
    """
    if length < 0:
        raise ValueError("length cannot be negative")
    return secrets.token_bytes(length).hex()


def secure_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time.

    Lengths are compared first since length is not secret. Every character
    pair is then XORed into an accumulator, so the running time does not
    depend on where the strings first differ.

    Security:
        - Use for tokens, signatures and other secrets
        - Never short-circuits on the first mismatching character
    """
    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)

    return result == 0


def mask_secret(value: str) -> str:
    """Mask a secret for logging, keeping the first and last four characters."""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}****{value[-4:]}"


class UploadedFile(Protocol):
    """Minimal shape of an uploaded file's metadata."""

    name: str
    type: str
    size: int


@dataclass(frozen=True)
class FileMetadata:
    """Metadata of an uploaded file, detached from its content."""

    name: str
    type: str
    size: int


@dataclass(frozen=True)
class FileValidationOptions:
    max_size_bytes: int
    allowed_mime_types: List[str] = field(default_factory=list)
    allowed_extensions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileValidationResult:
    valid: bool
    error: Optional[str] = None


def validate_file_upload(file: UploadedFile, options: FileValidationOptions) -> FileValidationResult:
    """Validate an uploaded file against size, MIME type and extension rules.

    Checks run in that order and the first failure is returned; errors are
    not accumulated.

    Args:
        file: Object exposing ``name``, ``type`` and ``size``
        options: Limits to enforce

    Returns:
        FileValidationResult: ``valid`` flag and the first error message
    """
    if file.size > options.max_size_bytes:
        max_mb = options.max_size_bytes / 1024 / 1024
        return FileValidationResult(
            valid=False,
            error=f"File size exceeds maximum of {max_mb:g}MB",
        )

    if file.type not in options.allowed_mime_types:
        return FileValidationResult(valid=False, error=f"File type {file.type} is not allowed")

    extension = file.name.rsplit(".", 1)[-1].lower()
    if not extension or extension not in options.allowed_extensions:
        return FileValidationResult(
            valid=False,
            error=f"File extension .{extension} is not allowed",
        )

    return FileValidationResult(valid=True)


FILE_UPLOAD_DEFAULTS = FileValidationOptions(
    max_size_bytes=10 * 1024 * 1024,
    allowed_mime_types=["image/jpeg", "image/png", "image/gif", "image/webp", "application/pdf"],
    allowed_extensions=["jpg", "jpeg", "png", "gif", "webp", "pdf"],
)
