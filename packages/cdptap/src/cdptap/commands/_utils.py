"""Shared formatting for cdptap command modules.

PUBLIC API:
  - truncate_string: Truncate strings with ellipsis
  - format_timestamp: Epoch seconds -> HH:MM:SS
  - event_summary: One-line description of an event dict
  - build_table_response: Build consistent table responses in markdown
  - build_info_response: Build info display responses in markdown
"""

from datetime import datetime

from replkit2.textkit import markdown


def truncate_string(text: str, max_length: int, mode: str = "end") -> str:
    """Truncate string with ellipsis for table display.

    Replaces newlines and tabs with spaces, then truncates if needed.

    Args:
        text: String to truncate.
        max_length: Maximum length including ellipsis.
        mode: "end" keeps the start, "middle" keeps both ends (URLs).

    Returns:
        Truncated string with ellipsis if needed.
    """
    if not text:
        return "-"

    text = text.replace("\n", " ").replace("\t", " ")
    if len(text) <= max_length:
        return text
    if max_length < 5:
        return text[:max_length]

    if mode == "middle":
        keep_start = (max_length - 3) // 2
        keep_end = max_length - 3 - keep_start
        return f"{text[:keep_start]}...{text[-keep_end:]}"
    return f"{text[: max_length - 3]}..."


def format_timestamp(epoch: float | None) -> str:
    if not epoch:
        return "-"
    return datetime.fromtimestamp(epoch).strftime("%H:%M:%S")


def event_summary(event: dict) -> str:
    """What happened, in one line, regardless of kind."""
    kind = event.get("kind")
    if kind in ("console", "exception", "log"):
        return event.get("text", "")
    if kind == "request":
        return f"{event.get('method', '')} {event.get('url', '')}"
    if kind == "response":
        return f"{event.get('status')} {event.get('mimeType', '')} {event.get('url', '')}"
    if kind == "loadingFinished":
        return f"{event.get('encodedDataLength', 0)} bytes"
    if kind == "loadingFailed":
        return event.get("errorText", "")
    return ""


def build_table_response(
    title: str, headers: list[str], rows: list[dict], summary: str | None = None, warnings: list[str] | None = None
) -> dict:
    """Build consistent table response in markdown format.

    Args:
        title: Table title.
        headers: Column headers.
        rows: Data rows as dicts.
        summary: Optional summary text.
        warnings: Optional warning messages.

    Returns:
        Markdown dict with formatted table.
    """
    builder = markdown().heading(title, level=2)

    for warning in warnings or []:
        builder.element("alert", message=warning, level="warning")

    if rows:
        builder.element("table", headers=headers, rows=rows)
    else:
        builder.text("_No data available_")

    if summary:
        builder.text(f"_{summary}_")

    return builder.build()


def build_info_response(title: str, fields: dict, code: str | None = None, language: str = "") -> dict:
    """Build info display response in markdown format.

    Args:
        title: Info display title.
        fields: Field names to values; None values are skipped.
        code: Optional block appended as a fenced code block.
        language: Code block language.
    """
    builder = markdown().heading(title, level=2)

    for key, value in fields.items():
        if value is not None:
            builder.text(f"**{key}:** {value}")

    if code is not None:
        builder.code_block(code, language=language)

    return builder.build()
