"""JavaScript execution in an observed target."""

import json

from cdptap.app import app
from cdptap.commands._errors import error_response
from cdptap.commands._utils import build_info_response


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def js(state, target_id: str, code: str, await_promise: bool = False) -> dict:
    """Evaluate a JavaScript expression in the page.

    Args:
        target_id: Observed (attached) target
        code: Expression to evaluate
        await_promise: Await a returned promise (default: False)

    Examples:
        js("9B2C...", "document.title")
        js("9B2C...", "fetch('/api').then(r => r.status)", await_promise=True)
    """
    result = state.rpc.call("evaluate", target_id=target_id, expression=code, await_promise=await_promise)
    if "error" in result:
        return error_response(result["error"])

    value = result["value"]
    rendered = value if isinstance(value, str) else json.dumps(value, indent=2, default=str)
    return build_info_response(
        title="Result",
        fields={"Type": result["type"]},
        code=rendered,
        language="" if isinstance(value, str) else "json",
    )
