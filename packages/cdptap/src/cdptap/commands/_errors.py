"""Unified error handling for cdptap commands.

PUBLIC API:
  - error_response: Markdown alert for an RPC error result
"""

from replkit2.textkit import markdown

from cdptap.errors import ErrorCode

# Follow-up hints keyed by error code
_HELP = {
    ErrorCode.BROWSER_UNREACHABLE.value: [
        "Start Chrome with `--remote-debugging-port=9222`",
        "Or point `CDP_HOST` / `CDP_PORT` at a running instance",
    ],
    ErrorCode.SESSION_NOT_FOUND.value: ["Run `sessions()` to see observed targets"],
    ErrorCode.SESSION_DETACHED.value: ["Run `observe(target_id)` to reconnect"],
    ErrorCode.TARGET_NOT_FOUND.value: ["Run `targets()` to see available tabs"],
}


def error_response(error: dict) -> dict:
    """Build error response from an ``{"code", "message"}`` dict.

    Args:
        error: The ``error`` member of a failed RPC result.

    Returns:
        Markdown dict with error formatting.
    """
    code = error.get("code", ErrorCode.INTERNAL_ERROR.value)
    builder = markdown().element("alert", message=error.get("message", "Error occurred"), level="error")
    builder.text(f"_code: {code}_")

    if help_items := _HELP.get(code):
        builder.text("**How to fix:**")
        builder.list(help_items)

    return builder.build()
