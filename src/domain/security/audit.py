"""Audit trail for security-relevant operations.

Every governed operation emits exactly one ``AuditEvent`` describing who did
what, to which resource, from where, and whether it succeeded. Events are
handed to an ``AuditSink``; the default sink writes one record per event to
stderr, and emission failures never fail the audited operation.

Features:
- Immutable audit events with read-only metadata
- Handler wrapping with duration measurement for sync and async handlers
- Pluggable sinks (stderr stream, in-memory for tests)
- Recursive redaction helper for log payloads
"""

import inspect
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TextIO, TypeVar, Union

import structlog

from src.domain.value_objects.runtime_mode import RuntimeMode

logger = structlog.get_logger(__name__)

T = TypeVar("T")

REDACTED = "[REDACTED]"
SENSITIVE_KEY_FRAGMENTS = ("password", "token", "secret", "apikey", "creditcard", "ssn", "email")


class AuditAction(str, Enum):
    """Catalogue of audited actions."""

    USER_LOGIN = "user.login"
    USER_LOGOUT = "user.logout"
    USER_REGISTER = "user.register"
    USER_PASSWORD_CHANGE = "user.password_change"
    USER_DELETE = "user.delete"
    RESOURCE_CREATE = "resource.create"
    RESOURCE_READ = "resource.read"
    RESOURCE_UPDATE = "resource.update"
    RESOURCE_DELETE = "resource.delete"
    EXPORT_GENERATE = "export.generate"
    ADMIN_ACTION = "admin.action"


@dataclass(frozen=True)
class AuditEvent:
    """Immutable record of one audited operation.

    ``metadata`` is exposed as a read-only mapping; the event cannot be
    changed after creation.
    """

    timestamp: datetime
    action: AuditAction
    succeeded: bool
    actor_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    caller_ip: Optional[str] = None
    caller_agent: Optional[str] = None
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the event for sinks."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "actor_id": self.actor_id,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "metadata": dict(self.metadata),
            "caller_ip": self.caller_ip,
            "caller_agent": self.caller_agent,
            "succeeded": self.succeeded,
            "error_message": self.error_message,
        }


@dataclass
class AuditContext:
    """Request-derived fields attached to every event of a wrapped handler."""

    actor_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    caller_ip: Optional[str] = None
    caller_agent: Optional[str] = None


class AuditSink(ABC):
    """Destination for audit events."""

    @abstractmethod
    async def emit(self, event: AuditEvent) -> None:
        """Persist or forward a single event."""
        raise NotImplementedError


def _tag_as_audit(_, __, event_dict):
    event_dict.pop("event", None)
    return {"type": "audit", **event_dict}


def _drop_event_name(_, __, event_dict):
    event_dict.pop("event", None)
    return event_dict


def _prefix_audit(_, __, rendered):
    return "[AUDIT] " + rendered


class StreamAuditSink(AuditSink):
    """Writes audit events to a text stream, stderr by default.

    Development mode pretty-prints ``[AUDIT] <indented JSON>``; production
    mode writes one JSON object per line tagged ``"type": "audit"`` so that
    log shippers can route it. Records go through a dedicated structlog
    logger, independent of the application's logging configuration.
    """

    def __init__(self, mode: RuntimeMode = RuntimeMode.PRODUCTION, stream: Optional[TextIO] = None):
        self.mode = mode
        self._stream = stream
        if mode.is_development:
            self._processors = [_drop_event_name, structlog.processors.JSONRenderer(indent=2), _prefix_audit]
        else:
            self._processors = [_tag_as_audit, structlog.processors.JSONRenderer()]

    def _logger(self):
        # stderr is resolved per call so that redirected streams are honoured
        stream = self._stream if self._stream is not None else sys.stderr
        return structlog.wrap_logger(
            structlog.PrintLogger(stream),
            processors=self._processors,
            wrapper_class=structlog.BoundLogger,
        )

    async def emit(self, event: AuditEvent) -> None:
        self._logger().info("audit", **event.to_dict())


class InMemoryAuditSink(AuditSink):
    """Collects events in a list."""

    def __init__(self):
        self.events: List[AuditEvent] = []

    async def emit(self, event: AuditEvent) -> None:
        self.events.append(event)


class AuditRecorder:
    """Builds audit events and delivers them to a sink.

    Args:
        sink: Where events are written
        clock: Returns the current UTC time; replaceable in tests
    """

    def __init__(self, sink: AuditSink, clock: Optional[Callable[[], datetime]] = None):
        self.sink = sink
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def record(
        self,
        action: AuditAction,
        *,
        succeeded: bool,
        actor_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        caller_ip: Optional[str] = None,
        caller_agent: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Emit one audit event.

        A failing sink is logged and otherwise ignored: auditing must not
        change the outcome of the operation being audited.
        """
        event = AuditEvent(
            timestamp=self._clock(),
            action=action,
            succeeded=succeeded,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            metadata=metadata or {},
            caller_ip=caller_ip,
            caller_agent=caller_agent,
            error_message=error_message,
        )
        try:
            await self.sink.emit(event)
        except Exception as exc:
            logger.error(
                "audit_write_failed",
                action=action.value,
                actor_id=actor_id,
                error=str(exc),
                exc_info=True,
            )

    async def wrap(
        self,
        action: AuditAction,
        handler: Callable[[], Union[T, Awaitable[T]]],
        context: Optional[AuditContext] = None,
    ) -> T:
        """Run ``handler`` and record its outcome.

        Both outcomes carry ``duration_ms``; on failure the event also carries
        the error message and the original exception propagates unchanged.
        """
        context = context or AuditContext()
        started = time.perf_counter()
        try:
            result = handler()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            await self.record(
                action,
                succeeded=False,
                actor_id=context.actor_id,
                resource_type=context.resource_type,
                resource_id=context.resource_id,
                metadata={**context.metadata, "duration_ms": _elapsed_ms(started)},
                caller_ip=context.caller_ip,
                caller_agent=context.caller_agent,
                error_message=str(exc) or "Unknown error",
            )
            raise

        await self.record(
            action,
            succeeded=True,
            actor_id=context.actor_id,
            resource_type=context.resource_type,
            resource_id=context.resource_id,
            metadata={**context.metadata, "duration_ms": _elapsed_ms(started)},
            caller_ip=context.caller_ip,
            caller_agent=context.caller_agent,
        )
        return result


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def sanitize_for_logging(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Redact sensitive values before they reach a log or audit record.

    A key is sensitive when its lowercased name contains one of
    ``SENSITIVE_KEY_FRAGMENTS``. Nested mappings are processed recursively;
    lists and scalars are copied as-is.
    """
    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        lowered = str(key).lower()
        if any(fragment in lowered for fragment in SENSITIVE_KEY_FRAGMENTS):
            sanitized[key] = REDACTED
        elif isinstance(value, Mapping):
            sanitized[key] = sanitize_for_logging(value)
        else:
            sanitized[key] = value
    return sanitized
