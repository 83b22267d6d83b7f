"""Convert raw CDP event params into envelopes.

Each function takes the ``params`` of one CDP event and never raises on a
missing optional field; absent values fall back to '', False, 0 or {}.

PUBLIC API:
  - normalize: Dispatch by CDP method name
  - NORMALIZERS: CDP method -> normalizer function
  - METHOD_CATEGORIES: CDP method -> filter category
  - truncate_bytes: Byte-bounded truncation with marker
  - render_arg: Render one Runtime.RemoteObject as text
"""

import json
import time
from typing import Any, Callable

from cdptap.cdp.models import (
    SEVERITIES,
    ConsoleEvent,
    EventEnvelope,
    ExceptionEvent,
    LoadingFailedEvent,
    LoadingFinishedEvent,
    LogEvent,
    RequestEvent,
    ResponseEvent,
    StackFrame,
)

DEFAULT_MAX_BYTES = 64000
TRUNCATION_MARKER = "...[truncated]"

# Runtime.consoleAPICalled type -> severity
_CONSOLE_SEVERITY = {
    "log": "info",
    "info": "info",
    "warning": "warning",
    "error": "error",
    "assert": "error",
    "debug": "debug",
}

_LOG_LEVELS = set(SEVERITIES)


def truncate_bytes(text: str, max_bytes: int = DEFAULT_MAX_BYTES) -> str:
    """Truncate text to a UTF-8 byte budget, appending a marker when cut.

    Args:
        text: Text to bound.
        max_bytes: Byte budget for the kept prefix.

    Returns:
        Original text if it fits, else the longest valid prefix plus marker.
    """
    if not text:
        return text
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    # errors="ignore" drops a multi-byte character split by the cut
    return encoded[: max(max_bytes, 0)].decode("utf-8", errors="ignore") + TRUNCATION_MARKER


def _now_ms() -> int:
    return int(time.time() * 1000)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def render_arg(arg: Any) -> str:
    """Render one Runtime.RemoteObject into text.

    Strings verbatim, numbers and booleans stringified, null/undefined as
    literal tokens, everything else via description or compact JSON.
    """
    if not isinstance(arg, dict):
        return str(arg)

    arg_type = arg.get("type")
    if arg_type == "string":
        return str(arg.get("value", ""))
    if arg_type == "undefined":
        return "undefined"
    if arg_type == "object" and arg.get("subtype") == "null":
        return "null"
    if arg_type == "boolean":
        return "true" if arg.get("value") else "false"
    if arg_type in ("number", "bigint"):
        # NaN, Infinity, -0 and bigints only come as unserializableValue
        if "unserializableValue" in arg:
            return str(arg["unserializableValue"])
        if "value" in arg:
            return json.dumps(arg["value"])
    if arg.get("description"):
        return str(arg["description"])
    return json.dumps(arg, separators=(",", ":"), sort_keys=True, default=str)


def _innermost_frame(stack_trace: Any) -> StackFrame | None:
    frames = _as_dict(stack_trace).get("callFrames")
    if not frames or not isinstance(frames, list):
        return None
    frame = _as_dict(frames[0])
    return StackFrame(
        url=str(frame.get("url") or ""),
        line=_as_int(frame.get("lineNumber")),
        column=_as_int(frame.get("columnNumber")),
    )


def normalize_console(
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    captured_at: int | None = None,
) -> ConsoleEvent:
    """Runtime.consoleAPICalled -> ConsoleEvent."""
    params = _as_dict(params)
    api_type = str(params.get("type") or "log")
    args = params.get("args")
    if not isinstance(args, list):
        args = []

    rendered = [render_arg(arg) for arg in args]

    return ConsoleEvent(
        captured_at=captured_at if captured_at is not None else _now_ms(),
        target_id=target_id,
        session_id=session_id,
        severity=_CONSOLE_SEVERITY.get(api_type, "verbose"),
        text=truncate_bytes(" ".join(rendered), max_bytes),
        source=api_type,
        args=[truncate_bytes(text, max_bytes) for text in rendered],
        origin=_innermost_frame(params.get("stackTrace")),
    )


def normalize_exception(
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    captured_at: int | None = None,
) -> ExceptionEvent:
    """Runtime.exceptionThrown -> ExceptionEvent."""
    details = _as_dict(_as_dict(params).get("exceptionDetails"))
    exception = _as_dict(details.get("exception"))

    text = exception.get("description") or details.get("text") or ""

    origin = _innermost_frame(details.get("stackTrace"))
    if origin is None and details.get("url"):
        origin = StackFrame(
            url=str(details["url"]),
            line=_as_int(details.get("lineNumber")),
            column=_as_int(details.get("columnNumber")),
        )

    return ExceptionEvent(
        captured_at=captured_at if captured_at is not None else _now_ms(),
        target_id=target_id,
        session_id=session_id,
        severity="error",
        text=truncate_bytes(str(text), max_bytes),
        source="exception",
        origin=origin,
    )


def normalize_log(
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    captured_at: int | None = None,
) -> LogEvent:
    """Log.entryAdded -> LogEvent."""
    entry = _as_dict(_as_dict(params).get("entry"))
    level = entry.get("level")

    return LogEvent(
        captured_at=captured_at if captured_at is not None else _now_ms(),
        target_id=target_id,
        session_id=session_id,
        severity=level if level in _LOG_LEVELS else "verbose",
        text=truncate_bytes(str(entry.get("text") or ""), max_bytes),
        source=str(entry.get("source") or "other"),
        origin=_innermost_frame(entry.get("stackTrace")),
    )


def normalize_request(
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    captured_at: int | None = None,
) -> RequestEvent:
    """Network.requestWillBeSent -> RequestEvent."""
    params = _as_dict(params)
    request = _as_dict(params.get("request"))
    post_data = request.get("postData")

    return RequestEvent(
        captured_at=captured_at if captured_at is not None else _now_ms(),
        target_id=target_id,
        session_id=session_id,
        request_id=str(params.get("requestId") or ""),
        url=str(request.get("url") or ""),
        method=str(request.get("method") or ""),
        headers={str(k): str(v) for k, v in _as_dict(request.get("headers")).items()},
        post_data_preview=truncate_bytes(str(post_data), max_bytes) if post_data else None,
        initiator=str(_as_dict(params.get("initiator")).get("type") or "other"),
        resource_type=str(params.get("type") or ""),
    )


def normalize_response(
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    captured_at: int | None = None,
) -> ResponseEvent:
    """Network.responseReceived -> ResponseEvent."""
    params = _as_dict(params)
    response = _as_dict(params.get("response"))

    ip = response.get("remoteIPAddress")
    port = response.get("remotePort")
    timing = response.get("timing")

    return ResponseEvent(
        captured_at=captured_at if captured_at is not None else _now_ms(),
        target_id=target_id,
        session_id=session_id,
        request_id=str(params.get("requestId") or ""),
        url=str(response.get("url") or ""),
        status=_as_int(response.get("status")),
        status_text=str(response.get("statusText") or ""),
        mime_type=str(response.get("mimeType") or "unknown"),
        from_disk_cache=bool(response.get("fromDiskCache", False)),
        from_service_worker=bool(response.get("fromServiceWorker", False)),
        remote_address=f"{ip}:{port}" if ip and port else None,
        receive_headers_end=_as_dict(timing).get("receiveHeadersEnd") if timing else None,
    )


def normalize_loading_finished(
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    captured_at: int | None = None,
) -> LoadingFinishedEvent:
    """Network.loadingFinished -> LoadingFinishedEvent."""
    params = _as_dict(params)
    return LoadingFinishedEvent(
        captured_at=captured_at if captured_at is not None else _now_ms(),
        target_id=target_id,
        session_id=session_id,
        request_id=str(params.get("requestId") or ""),
        encoded_data_length=_as_int(params.get("encodedDataLength")),
    )


def normalize_loading_failed(
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    captured_at: int | None = None,
) -> LoadingFailedEvent:
    """Network.loadingFailed -> LoadingFailedEvent."""
    params = _as_dict(params)
    return LoadingFailedEvent(
        captured_at=captured_at if captured_at is not None else _now_ms(),
        target_id=target_id,
        session_id=session_id,
        request_id=str(params.get("requestId") or ""),
        error_text=truncate_bytes(str(params.get("errorText") or "Unknown error"), max_bytes),
        canceled=bool(params.get("canceled", False)),
    )


NORMALIZERS: dict[str, Callable[..., EventEnvelope]] = {
    "Runtime.consoleAPICalled": normalize_console,
    "Runtime.exceptionThrown": normalize_exception,
    "Log.entryAdded": normalize_log,
    "Network.requestWillBeSent": normalize_request,
    "Network.responseReceived": normalize_response,
    "Network.loadingFinished": normalize_loading_finished,
    "Network.loadingFailed": normalize_loading_failed,
}

METHOD_CATEGORIES = {
    "Runtime.consoleAPICalled": "console",
    "Runtime.exceptionThrown": "console",
    "Log.entryAdded": "log",
    "Network.requestWillBeSent": "network",
    "Network.responseReceived": "network",
    "Network.loadingFinished": "network",
    "Network.loadingFailed": "network",
}


def normalize(
    method: str,
    params: dict,
    target_id: str,
    session_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> EventEnvelope | None:
    """Normalize a CDP event by method name.

    Returns:
        Envelope, or None for methods we do not capture.
    """
    normalizer = NORMALIZERS.get(method)
    if normalizer is None:
        return None
    return normalizer(params, target_id, session_id=session_id, max_bytes=max_bytes)


__all__ = [
    "normalize",
    "NORMALIZERS",
    "METHOD_CATEGORIES",
    "truncate_bytes",
    "render_arg",
    "DEFAULT_MAX_BYTES",
    "TRUNCATION_MARKER",
]
