"""Buffered event reading commands."""

from replkit2.types import ExecutionContext

from cdptap.app import app
from cdptap.commands._errors import error_response
from cdptap.commands._utils import build_info_response, build_table_response, event_summary, format_timestamp, truncate_string

# REPL mode keeps rows compact, MCP mode leaves room for the LLM
_REPL_SUMMARY_MAX = 80
_MCP_SUMMARY_MAX = 300

_HEADERS = ["Seq", "Time", "Kind", "Severity", "Summary"]


def _rows(events: list[dict], summary_max: int) -> list[dict]:
    return [
        {
            "Seq": str(e["sequence"]),
            "Time": format_timestamp(e["capturedAt"] / 1000),
            "Kind": e["kind"],
            "Severity": e.get("severity", ""),
            "Summary": truncate_string(event_summary(e), summary_max, mode="middle"),
        }
        for e in events
    ]


@app.command(
    display="markdown",
    fastmcp={"type": "resource", "mime_type": "text/markdown"},
)
def events(state, target: str, _ctx: ExecutionContext = None) -> dict:  # pyright: ignore[reportArgumentType]
    """Most recent events captured from a target.

    Args:
        target: Observed target ID

    Returns:
        Table of the last 200 events
    """
    result = state.rpc.call("events", target_id=target)
    if "error" in result:
        return error_response(result["error"])

    summary_max = _REPL_SUMMARY_MAX if _ctx and _ctx.is_repl() else _MCP_SUMMARY_MAX
    return build_table_response(
        title=f"Events: {target}",
        headers=_HEADERS,
        rows=_rows(result["events"], summary_max),
        summary=f"{len(result['events'])} events, resume with read(offset={result['nextOffset']})",
    )


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def read(
    state,
    target_id: str,
    offset: int = 0,
    limit: int = 200,
    kinds: list = None,  # pyright: ignore[reportArgumentType]
    url: str = None,  # pyright: ignore[reportArgumentType]
    method: str = None,  # pyright: ignore[reportArgumentType]
    reverse: bool = False,
    _ctx: ExecutionContext = None,  # pyright: ignore[reportArgumentType]
) -> dict:
    """Read events by sequence offset.

    Pass the returned next offset back in to continue where you left off.

    Args:
        target_id: Observed target
        offset: Sequence to start from (default: 0)
        limit: Max events scanned (default: 200)
        kinds: Only these kinds or categories, e.g. ["network"] or ["exception"]
        url: Only events whose URL contains this substring
        method: Only requests with this HTTP method
        reverse: Newest first

    Examples:
        read("9B2C...")
        read("9B2C...", offset=412)
        read("9B2C...", kinds=["console"], reverse=True)
    """
    result = state.rpc.call(
        "read_events",
        target_id=target_id,
        offset=offset,
        limit=limit,
        kinds=kinds,
        url_includes=url,
        method=method,
        reverse=reverse,
    )
    if "error" in result:
        return error_response(result["error"])

    summary_max = _REPL_SUMMARY_MAX if _ctx and _ctx.is_repl() else _MCP_SUMMARY_MAX
    return build_table_response(
        title=f"Events: {target_id}",
        headers=_HEADERS,
        rows=_rows(result["events"], summary_max),
        summary=(
            f"{result['filteredCount']} shown of {result['totalCount']} buffered, "
            f"next offset {result['nextOffset']}"
        ),
    )


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def clear(state, target_id: str) -> dict:
    """Empty a target's buffer. Offsets restart at 0."""
    result = state.rpc.call("clear_events", target_id=target_id)
    if "error" in result:
        return error_response(result["error"])
    return build_info_response(title="Cleared", fields={"Target": target_id, "Next offset": 0})
