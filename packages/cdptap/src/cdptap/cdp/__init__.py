"""Chrome DevTools Protocol layer: transport, envelopes, normalization.

Capture-first approach - normalize events as they arrive, keep them bounded.

PUBLIC API:
  - CDPSession: WebSocket connection to one target
  - CDPTransport: Target discovery and connection
  - TargetInfo: Debuggable target metadata
  - TransportError: Any failure talking to Chrome
  - normalize: Raw CDP event -> envelope
"""

from cdptap.cdp.session import CDPSession, TransportError
from cdptap.cdp.targets import TargetInfo, list_targets
from cdptap.cdp.transport import CDPTransport
from cdptap.cdp.normalize import normalize

__all__ = ["CDPSession", "CDPTransport", "TargetInfo", "TransportError", "list_targets", "normalize"]
