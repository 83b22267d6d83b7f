"""Target discovery over the Chrome /json HTTP endpoint.

PUBLIC API:
  - TargetInfo: One debuggable target
  - list_targets: Enumerate targets on a Chrome debug port
"""

import logging
from dataclasses import dataclass

import httpx

from cdptap.cdp.session import TransportError

logger = logging.getLogger(__name__)

__all__ = ["TargetInfo", "list_targets"]


@dataclass
class TargetInfo:
    """Debuggable target as reported by /json/list.

    Attributes:
        id: Chrome target ID.
        kind: Target type ("page", "iframe", "service_worker", ...).
        title: Page title.
        url: Current URL.
        attached: Whether another client is attached.
        ws_url: WebSocket debugger URL, empty if a client already holds it.
    """

    id: str
    kind: str = ""
    title: str = ""
    url: str = ""
    attached: bool = False
    ws_url: str = ""

    @classmethod
    def from_json(cls, data: dict) -> "TargetInfo":
        return cls(
            id=str(data.get("id", "")),
            kind=str(data.get("type", "")),
            title=str(data.get("title", "")),
            url=str(data.get("url", "")),
            attached=bool(data.get("attached", False)),
            ws_url=str(data.get("webSocketDebuggerUrl", "")),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.kind, "title": self.title, "url": self.url, "attached": self.attached}


def list_targets(host: str, port: int, timeout: float = 2.0) -> list[TargetInfo]:
    """List targets on a Chrome debugging port.

    Args:
        host: Chrome debugging host.
        port: Chrome debugging port.
        timeout: HTTP timeout in seconds.

    Returns:
        All targets, in the order Chrome reports them.

    Raises:
        TransportError: If Chrome is unreachable or answers garbage.
    """
    try:
        resp = httpx.get(f"http://{host}:{port}/json/list", timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise TransportError(f"Failed to list targets on {host}:{port}: {e}") from e

    if not isinstance(data, list):
        raise TransportError(f"Unexpected /json/list payload from {host}:{port}")

    return [TargetInfo.from_json(t) for t in data if isinstance(t, dict)]
