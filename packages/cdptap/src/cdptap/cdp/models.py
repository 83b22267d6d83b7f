"""Normalized event envelopes.

Every CDP occurrence we keep is converted into one of these dataclasses.
The pipeline is: CDP params -> normalize -> envelope -> filters -> ring buffer.

PUBLIC API:
  - StackFrame: Innermost frame of a console/log stack
  - EventEnvelope: Common fields and serialization
  - ConsoleEvent, ExceptionEvent, LogEvent, RequestEvent, ResponseEvent, LoadingFinishedEvent, LoadingFailedEvent
  - CATEGORIES: Filterable categories
  - KINDS: Envelope kinds
  - category_of: Map a kind to its category
"""

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Literal

type Severity = Literal["error", "warning", "info", "debug", "verbose"]

SEVERITIES = ("error", "warning", "info", "debug", "verbose")

CATEGORIES = ("console", "log", "network")

_KIND_CATEGORY = {
    "console": "console",
    "exception": "console",
    "log": "log",
    "request": "network",
    "response": "network",
    "loadingFinished": "network",
    "loadingFailed": "network",
}

KINDS = tuple(_KIND_CATEGORY)


def category_of(kind: str) -> str:
    """Category used by the session kind gate."""
    return _KIND_CATEGORY.get(kind, "other")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class StackFrame:
    """Single-frame origin attribution."""

    url: str = ""
    line: int = 0
    column: int = 0

    def to_dict(self) -> dict:
        return {"url": self.url, "line": self.line, "column": self.column}


@dataclass(kw_only=True)
class EventEnvelope:
    """Fields shared by every captured event.

    Attributes:
        sequence: Assigned by RingBuffer.push(), never by the producer.
        captured_at: Capture time in epoch milliseconds.
        target_id: Target the event came from.
        session_id: Child CDP session (iframe, worker) if any.
    """

    kind: ClassVar[str] = "other"

    sequence: int = 0
    captured_at: int = 0
    target_id: str = ""
    session_id: str | None = None

    @property
    def category(self) -> str:
        return category_of(self.kind)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        data: dict[str, Any] = {"kind": self.kind, "category": self.category}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, StackFrame):
                value = value.to_dict()
            elif isinstance(value, dict):
                value = dict(value)
            elif isinstance(value, list):
                value = list(value)
            data[_camel(f.name)] = value
        return data


@dataclass(kw_only=True)
class ConsoleEvent(EventEnvelope):
    """Console API call (console.log, console.error, ...).

    Attributes:
        severity: Normalized level from SEVERITIES.
        text: Arguments rendered into one line, byte-bounded.
        source: Console API name, log entry source or "exception".
        args: Each argument rendered and truncated on its own.
        origin: Innermost stack frame, if the runtime gave one.
    """

    kind: ClassVar[str] = "console"

    severity: Severity = "info"
    text: str = ""
    source: str = ""
    args: list[str] = field(default_factory=list)
    origin: StackFrame | None = None


@dataclass(kw_only=True)
class ExceptionEvent(ConsoleEvent):
    """Uncaught exception reported by Runtime.exceptionThrown."""

    kind: ClassVar[str] = "exception"


@dataclass(kw_only=True)
class LogEvent(ConsoleEvent):
    """Browser log entry from Log.entryAdded (network errors, interventions...)."""

    kind: ClassVar[str] = "log"


@dataclass(kw_only=True)
class RequestEvent(EventEnvelope):
    kind: ClassVar[str] = "request"

    request_id: str = ""
    url: str = ""
    method: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    post_data_preview: str | None = None
    initiator: str = "other"
    resource_type: str = ""


@dataclass(kw_only=True)
class ResponseEvent(EventEnvelope):
    kind: ClassVar[str] = "response"

    request_id: str = ""
    url: str = ""
    status: int = 0
    status_text: str = ""
    mime_type: str = "unknown"
    from_disk_cache: bool = False
    from_service_worker: bool = False
    remote_address: str | None = None
    receive_headers_end: float | None = None


@dataclass(kw_only=True)
class LoadingFinishedEvent(EventEnvelope):
    kind: ClassVar[str] = "loadingFinished"

    request_id: str = ""
    encoded_data_length: int = 0


@dataclass(kw_only=True)
class LoadingFailedEvent(EventEnvelope):
    kind: ClassVar[str] = "loadingFailed"

    request_id: str = ""
    error_text: str = ""
    canceled: bool = False


__all__ = [
    "StackFrame",
    "EventEnvelope",
    "ConsoleEvent",
    "ExceptionEvent",
    "LogEvent",
    "RequestEvent",
    "ResponseEvent",
    "LoadingFinishedEvent",
    "LoadingFailedEvent",
    "CATEGORIES",
    "KINDS",
    "SEVERITIES",
    "category_of",
]
