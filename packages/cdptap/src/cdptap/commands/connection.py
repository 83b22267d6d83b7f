"""Target discovery and observation lifecycle commands."""

from cdptap.app import app
from cdptap.commands._errors import error_response
from cdptap.commands._utils import build_info_response, build_table_response, format_timestamp, truncate_string


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def targets(state, url: str = None, port: int = None) -> dict:  # pyright: ignore[reportArgumentType]
    """List debuggable Chrome targets.

    Args:
        url: Only targets whose URL contains this substring
        port: Chrome debug port (default from config)

    Examples:
        targets()                    # All targets
        targets(url="localhost")     # Filter by URL
    """
    result = state.rpc.call("targets", port=port, url_includes=url)
    if "error" in result:
        return error_response(result["error"])

    observed = {s.target_id for s in state.manager.sessions()}
    rows = [
        {
            "ID": t["id"],
            "Type": t["type"],
            "Title": truncate_string(t["title"], 40),
            "URL": truncate_string(t["url"], 60, mode="middle"),
            "Observed": "yes" if t["id"] in observed else "",
        }
        for t in result["targets"]
    ]
    return build_table_response(
        title="Chrome Targets",
        headers=["ID", "Type", "Title", "URL", "Observed"],
        rows=rows,
        summary=f"{len(rows)} targets",
    )


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def observe(
    state,
    target_id: str = None,  # pyright: ignore[reportArgumentType]
    url: str = None,  # pyright: ignore[reportArgumentType]
    buffer_size: int = None,  # pyright: ignore[reportArgumentType]
    ttl_sec: int = None,  # pyright: ignore[reportArgumentType]
) -> dict:
    """Start capturing console, log and network events from a target.

    Args:
        target_id: Target ID from targets()
        url: Or: first target whose URL contains this substring
        buffer_size: Max events kept (oldest evicted first)
        ttl_sec: Drop the session after this long without events

    Examples:
        observe("9B2C...")
        observe(url="localhost:3000")
    """
    result = state.rpc.call(
        "observe", target_id=target_id, url_includes=url, buffer_size=buffer_size, ttl_sec=ttl_sec
    )
    if "error" in result:
        return error_response(result["error"])

    return build_info_response(
        title="Observing",
        fields={"Target": result["targetId"], "Resource": f"`{result['resourceUri']}`"},
    )


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def unobserve(state, target_id: str, drop: bool = False) -> dict:
    """Stop capturing from a target.

    Args:
        target_id: Observed target
        drop: Also discard buffered events (default: keep them readable)
    """
    result = state.rpc.call("stop_observe", target_id=target_id, drop_buffer=drop)
    if "error" in result:
        return error_response(result["error"])

    return build_info_response(
        title="Stopped",
        fields={"Target": target_id, "Buffer": "dropped" if result["dropped"] else "kept"},
    )


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def sessions(state) -> dict:
    """Show observed targets and their buffers."""
    result = state.rpc.call("sessions")
    if "error" in result:
        return error_response(result["error"])

    rows = [
        {
            "Target": s["targetId"],
            "State": s["state"],
            "Events": f"{s['size']}/{s['capacity']}",
            "Offsets": f"{s['oldestOffset']}..{s['nextOffset']}",
            "TTL": s["ttlSec"] or state.config.default_ttl_sec,
            "Attached": format_timestamp(s["createdAt"]),
            "Last Activity": format_timestamp(s["lastActivityAt"]),
        }
        for s in result["sessions"]
    ]
    return build_table_response(
        title="Sessions",
        headers=["Target", "State", "Events", "Offsets", "TTL", "Attached", "Last Activity"],
        rows=rows,
        summary=f"{len(rows)} sessions",
    )
