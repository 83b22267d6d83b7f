"""Page navigation commands."""

from cdptap.app import app
from cdptap.commands._errors import error_response
from cdptap.commands._utils import build_info_response


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def navigate(state, target_id: str, url: str) -> dict:
    """Navigate an observed target to a URL."""
    result = state.rpc.call("navigate", target_id=target_id, url=url)
    if "error" in result:
        return error_response(result["error"])
    return build_info_response(title="Navigated", fields={"URL": url, "Frame": result["frameId"]})


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def reload(state, target_id: str, ignore_cache: bool = False) -> dict:
    """Reload an observed target.

    Args:
        target_id: Observed (attached) target
        ignore_cache: Bypass the browser cache
    """
    result = state.rpc.call("reload", target_id=target_id, ignore_cache=ignore_cache)
    if "error" in result:
        return error_response(result["error"])
    return build_info_response(title="Reloaded", fields={"Target": target_id, "Cache": "bypassed" if ignore_cache else "used"})
