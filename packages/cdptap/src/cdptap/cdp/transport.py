"""Transport facade used by the session manager.

PUBLIC API:
  - CDPTransport: list_targets() and connect() against live Chrome
  - TargetMissing: connect() target is not live
"""

import logging

from cdptap.cdp.session import CDPSession, TransportError
from cdptap.cdp.targets import TargetInfo, list_targets

logger = logging.getLogger(__name__)

__all__ = ["CDPTransport", "TargetMissing"]


class TargetMissing(TransportError):
    """The requested target is not among the live targets."""


class CDPTransport:
    """Chrome DevTools transport over HTTP discovery and WebSocket.

    SessionManager only depends on the two methods below, so tests substitute
    an in-memory fake.
    """

    def __init__(self, timeout: float = 30):
        self.timeout = timeout

    def list_targets(self, host: str, port: int) -> list[TargetInfo]:
        return list_targets(host, port)

    def connect(self, host: str, port: int, target_id: str) -> CDPSession:
        """Open a connection with capture domains and auto-attach enabled.

        Raises:
            TargetMissing: If the target is not live.
            TransportError: If any setup step fails.
        """
        target = next((t for t in self.list_targets(host, port) if t.id == target_id), None)
        if target is None:
            raise TargetMissing(f"Target {target_id} not found on {host}:{port}")
        if not target.ws_url:
            raise TransportError(f"Target {target_id} has no debugger URL (another client attached?)")

        cdp = CDPSession(target_id, target.ws_url, timeout=self.timeout)
        cdp.connect()
        try:
            cdp.enable_capture()
        except TransportError:
            cdp.close()
            raise

        logger.info(f"Connected to {target_id} ({target.url})")
        return cdp
