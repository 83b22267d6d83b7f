"""Capture filter commands."""

from cdptap.app import app
from cdptap.commands._errors import error_response
from cdptap.commands._utils import build_info_response


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def filters(
    state,
    target_id: str,
    kinds: list = None,  # pyright: ignore[reportArgumentType]
    allow: list = None,  # pyright: ignore[reportArgumentType]
    block: list = None,  # pyright: ignore[reportArgumentType]
    max_body_bytes: int = None,  # pyright: ignore[reportArgumentType]
) -> dict:
    """Show or replace a target's capture filters.

    With no filter arguments the current filters are shown. Otherwise the whole
    filter set is replaced; anything not passed goes back to its default.
    Filters apply to events captured from now on, not to the buffer.

    Args:
        target_id: Observed target
        kinds: Categories to keep: "console", "log", "network"
        allow: URL substrings to keep (empty keeps all)
        block: URL substrings to drop, checked before allow
        max_body_bytes: Truncate long text beyond this many bytes

    Examples:
        filters("9B2C...")                                  # Show
        filters("9B2C...", kinds=["network"])               # Network only
        filters("9B2C...", block=["ads.", "analytics"])     # Drop noise
    """
    if kinds is None and allow is None and block is None and max_body_bytes is None:
        result = state.rpc.call("get_filters", target_id=target_id)
        title = "Filters"
    else:
        result = state.rpc.call(
            "set_filters",
            target_id=target_id,
            kinds=kinds,
            url_allowlist=allow,
            url_blocklist=block,
            max_body_bytes=max_body_bytes,
        )
        title = "Filters Updated"

    if "error" in result:
        return error_response(result["error"])

    f = result["filters"]
    return build_info_response(
        title=title,
        fields={
            "Target": target_id,
            "Kinds": ", ".join(f["kinds"]) or "all",
            "Allow": ", ".join(f["urlAllowlist"]) or "all",
            "Block": ", ".join(f["urlBlocklist"]) or "none",
            "Max body bytes": f["maxBodyBytes"] or f"{state.config.max_body_bytes} (default)",
        },
    )
