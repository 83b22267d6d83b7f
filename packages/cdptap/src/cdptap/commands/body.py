"""Response body retrieval command."""

import json

from cdptap.app import app
from cdptap.commands._errors import error_response
from cdptap.commands._utils import build_info_response

_DISPLAY_MAX = 5000


@app.command(display="markdown", fastmcp={"type": "tool", "mime_type": "text/markdown"})
def body(state, target_id: str, request_id: str, base64: bool = False) -> dict:
    """Fetch a response body from the browser.

    Args:
        target_id: Observed (attached) target
        request_id: requestId from a network event
        base64: Return the body base64-encoded

    Examples:
        body("9B2C...", "1234.56")
    """
    result = state.rpc.call("get_response_body", target_id=target_id, request_id=request_id, base64=base64)
    if "error" in result:
        return error_response(result["error"])

    content = result["body"]
    language = ""
    if not result["encoded"] and "json" in result["mimeType"]:
        try:
            content = json.dumps(json.loads(content), indent=2)
            language = "json"
        except json.JSONDecodeError:
            pass
    elif not result["encoded"] and "html" in result["mimeType"]:
        language = "html"

    return build_info_response(
        title="Response Body",
        fields={
            "Request": request_id,
            "MIME type": result["mimeType"],
            "Encoding": "base64" if result["encoded"] else "text",
            "Size": f"{len(result['body'])} chars",
        },
        code=content[:_DISPLAY_MAX],
        language=language,
    )
