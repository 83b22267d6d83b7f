"""RPC method handlers - thin wrappers around SessionManager.

Handlers receive RPCContext and delegate to the session manager for state.
Anything that talks to a live target goes through ``require_handle`` so a
stopped session fails with SESSION_DETACHED rather than SESSION_NOT_FOUND.

Handler categories:
  - Discovery: targets
  - Lifecycle: observe, stop_observe, sessions
  - Events: read_events, clear_events, events (resource)
  - Filters: set_filters, get_filters
  - Live target: get_response_body, evaluate, navigate, reload

PUBLIC API:
  - register_handlers: Register all RPC handlers with framework
  - DEFAULT_READ_LIMIT: Page size for read_events and the events resource
  - resource_uri: Events resource URI for a target
"""

import base64 as b64
import logging
from typing import Annotated

from pydantic import Field

from cdptap.cdp.models import CATEGORIES, KINDS, EventEnvelope, ResponseEvent
from cdptap.cdp.session import TransportError
from cdptap.errors import BodyNotAvailable, ExecutionFailed, InvalidInput
from cdptap.filters import FilterConfig
from cdptap.rpc.framework import RPCContext, RPCFramework

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 200

__all__ = ["register_handlers", "DEFAULT_READ_LIMIT", "resource_uri"]

Port = Annotated[int, Field(ge=1, le=65535)]
Positive = Annotated[int, Field(ge=1)]


def resource_uri(target_id: str) -> str:
    return f"cdptap://events/{target_id}"


def register_handlers(rpc: RPCFramework) -> None:
    """Register all RPC handlers with the framework.

    Args:
        rpc: RPCFramework instance to register handlers with
    """
    rpc.method("targets")(targets)
    rpc.method("observe")(observe)
    rpc.method("stop_observe")(stop_observe)
    rpc.method("sessions")(sessions)

    rpc.method("read_events")(read_events)
    rpc.method("clear_events")(clear_events)
    rpc.method("events")(events)

    rpc.method("set_filters")(set_filters)
    rpc.method("get_filters")(get_filters)

    rpc.method("get_response_body")(get_response_body)
    rpc.method("evaluate")(evaluate)
    rpc.method("navigate")(navigate)
    rpc.method("reload")(reload)


# Discovery & lifecycle


def targets(
    ctx: RPCContext,
    host: str | None = None,
    port: Port | None = None,
    url_includes: str | None = None,
    types: list[str] | None = None,
) -> dict:
    """List debuggable targets.

    Args:
        host: Chrome host. Defaults to config.
        port: Chrome port. Defaults to config.
        url_includes: Keep targets whose URL contains this substring.
        types: Keep targets of these types (page, iframe, worker, ...).
    """
    found = ctx.manager.list_targets(host, port)
    if url_includes:
        found = [t for t in found if url_includes in t.url]
    if types:
        found = [t for t in found if t.kind in types]
    return {"targets": [t.to_dict() for t in found]}


def observe(
    ctx: RPCContext,
    target_id: str | None = None,
    url_includes: str | None = None,
    host: str | None = None,
    port: Port | None = None,
    buffer_size: Positive | None = None,
    ttl_sec: Annotated[float, Field(gt=0)] | None = None,
) -> dict:
    """Start capturing events from a target.

    Returns:
        Dict with 'targetId', 'resourceUri' and 'attached'.
    """
    session = ctx.manager.observe(
        target_id=target_id,
        url_includes=url_includes,
        host=host,
        port=port,
        buffer_size=buffer_size,
        ttl_sec=ttl_sec,
    )
    return {"targetId": session.target_id, "resourceUri": resource_uri(session.target_id), "attached": True}


def stop_observe(ctx: RPCContext, target_id: str, drop_buffer: bool = False) -> dict:
    """Stop capturing. The buffer stays readable unless drop_buffer."""
    ctx.manager.stop_observe(target_id, drop_buffer=drop_buffer)
    return {"stopped": True, "dropped": drop_buffer}


def sessions(ctx: RPCContext) -> dict:
    result = []
    for session in ctx.manager.sessions():
        with session.lock:
            result.append(session.summary())
    return {"sessions": result}


# Events


def _matches(event: EventEnvelope, kinds: list[str] | None, url_includes: str | None, method: str | None) -> bool:
    if kinds and event.kind not in kinds and event.category not in kinds:
        return False
    if url_includes:
        url = getattr(event, "url", None)
        if not url or url_includes not in url:
            return False
    if method:
        event_method = getattr(event, "method", None)
        if not event_method or event_method.upper() != method.upper():
            return False
    return True


def read_events(
    ctx: RPCContext,
    target_id: str,
    offset: Annotated[int, Field(ge=0)] = 0,
    limit: Positive = DEFAULT_READ_LIMIT,
    kinds: list[str] | None = None,
    url_includes: str | None = None,
    method: str | None = None,
    reverse: bool = False,
) -> dict:
    """Read a page of events by sequence cursor.

    Read-side filters apply to the page after slicing, so nextOffset always
    advances past what was scanned even if nothing matched.

    Args:
        target_id: Observed target.
        offset: Sequence to resume from.
        limit: Max events to scan.
        kinds: Keep these kinds or categories.
        url_includes: Keep events whose URL contains this substring.
        method: Keep requests with this HTTP method, compared case-insensitively
            ("post" matches "POST").
        reverse: Return the page newest-first.

    Returns:
        Dict with 'events', 'nextOffset', 'totalCount', 'filteredCount'.

    Raises:
        InvalidInput: If kinds names neither a kind nor a category.
    """
    unknown = [k for k in kinds or [] if k not in KINDS and k not in CATEGORIES]
    if unknown:
        raise InvalidInput(f"Unknown kinds: {', '.join(unknown)}")

    session = ctx.manager.get_session(target_id)
    with session.lock:
        page = session.buffer.slice_by_offset(offset, limit)
        total = session.buffer.size()

    matched = [e for e in page.events if _matches(e, kinds, url_includes, method)]
    if reverse:
        matched.reverse()

    return {
        "events": [e.to_dict() for e in matched],
        "nextOffset": page.next_offset,
        "totalCount": total,
        "filteredCount": len(matched),
    }


def clear_events(ctx: RPCContext, target_id: str) -> dict:
    ctx.manager.clear_events(target_id)
    return {"cleared": True}


def events(ctx: RPCContext, target_id: str) -> dict:
    """Resource view: the most recent events of one target."""
    session = ctx.manager.get_session(target_id)
    with session.lock:
        tail = session.buffer.get_tail(DEFAULT_READ_LIMIT)
    return {"events": [e.to_dict() for e in tail.events], "nextOffset": tail.next_offset}


# Filters


def set_filters(
    ctx: RPCContext,
    target_id: str,
    kinds: list[str] | None = None,
    url_allowlist: list[str] | None = None,
    url_blocklist: list[str] | None = None,
    max_body_bytes: Positive | None = None,
) -> dict:
    """Replace the target's capture filters. Omitted fields reset to defaults."""
    config = FilterConfig(
        kinds=kinds or [],
        url_allowlist=url_allowlist or [],
        url_blocklist=url_blocklist or [],
        max_body_bytes=max_body_bytes,
    )
    ctx.manager.set_filters(target_id, config)
    return {"updated": True, "filters": config.to_dict()}


def get_filters(ctx: RPCContext, target_id: str) -> dict:
    return {"filters": ctx.manager.get_filters(target_id).to_dict()}


# Live target


def get_response_body(ctx: RPCContext, target_id: str, request_id: str, base64: bool = False) -> dict:
    """Fetch a response body from the browser.

    Args:
        target_id: Observed target.
        request_id: CDP request ID from a network event.
        base64: Return the body base64-encoded.

    Returns:
        Dict with 'requestId', 'mimeType', 'encoded' and 'body'.

    Raises:
        BodyNotAvailable: If the browser no longer has the body.
    """
    handle = ctx.manager.require_handle(target_id)
    try:
        result = handle.get_response_body(request_id)
    except TransportError as e:
        raise BodyNotAvailable(f"Body for {request_id} not available: {e}") from e

    session = ctx.manager.get_session(target_id)
    with session.lock:
        response = session.buffer.find_last(
            lambda e: isinstance(e, ResponseEvent) and e.request_id == request_id
        )

    body = result.get("body", "")
    encoded = bool(result.get("base64Encoded", False))
    if base64 and not encoded:
        body = b64.b64encode(body.encode("utf-8")).decode("ascii")
        encoded = True

    return {
        "requestId": request_id,
        "mimeType": response.mime_type if response else "unknown",
        "encoded": encoded,
        "body": body,
    }


def evaluate(ctx: RPCContext, target_id: str, expression: str, await_promise: bool = False) -> dict:
    """Evaluate JavaScript in the target's main world.

    Raises:
        ExecutionFailed: If the script threw or the call failed.
    """
    handle = ctx.manager.require_handle(target_id)
    try:
        result = handle.evaluate_script(expression, await_promise=await_promise)
    except TransportError as e:
        raise ExecutionFailed(str(e)) from e

    if result.get("exceptionDetails"):
        details = result["exceptionDetails"]
        exception = details.get("exception") or {}
        raise ExecutionFailed(exception.get("description") or details.get("text") or "Script threw")

    remote = result.get("result", {})
    value = remote["value"] if "value" in remote else remote.get("description")
    return {"value": value, "type": remote.get("type", "undefined")}


def navigate(ctx: RPCContext, target_id: str, url: str) -> dict:
    handle = ctx.manager.require_handle(target_id)
    try:
        result = handle.navigate(url)
    except TransportError as e:
        raise ExecutionFailed(f"Navigation failed: {e}") from e

    if result.get("errorText"):
        raise ExecutionFailed(f"Navigation failed: {result['errorText']}")
    return {"navigated": True, "frameId": result.get("frameId")}


def reload(ctx: RPCContext, target_id: str, ignore_cache: bool = False) -> dict:
    handle = ctx.manager.require_handle(target_id)
    try:
        handle.reload(ignore_cache=ignore_cache)
    except TransportError as e:
        raise ExecutionFailed(f"Reload failed: {e}") from e
    return {"reloaded": True}
