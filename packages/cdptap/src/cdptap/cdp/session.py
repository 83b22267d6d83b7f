"""Per-target CDP connection.

WebSocketApp handles the WebSocket on a daemon thread, we handle CDP protocol:
request/response futures plus per-method event callbacks.

PUBLIC API:
  - CDPSession: WebSocket connection to one target
  - TransportError: Any failure talking to Chrome
"""

import json
import logging
import threading
from collections import defaultdict
from concurrent.futures import Future, TimeoutError
from typing import Any, Callable

import websocket

logger = logging.getLogger(__name__)

__all__ = ["CDPSession", "TransportError", "EventCallback"]

type EventCallback = Callable[[dict, str | None], None]

# Domains enabled on the target and on every auto-attached child
_CAPTURE_DOMAINS = ["Runtime", "Log", "Network"]


class TransportError(RuntimeError):
    """Connection, protocol or timeout failure from Chrome."""


class CDPSession:
    """WebSocket connection to a single CDP target.

    Events are delivered on the WebSocket thread to callbacks registered with
    on(). Child targets (iframes, workers) are auto-attached with flatten=True,
    so their events arrive on this socket tagged with a sessionId.

    Attributes:
        target_id: Chrome target ID.
        ws_url: WebSocket debugger URL.
        timeout: Default timeout for execute().
    """

    def __init__(self, target_id: str, ws_url: str, timeout: float = 30):
        """Initialize CDP session.

        Args:
            target_id: Chrome target ID.
            ws_url: WebSocket debugger URL from /json/list.
            timeout: Default timeout for execute().
        """
        self.target_id = target_id
        self.ws_url = ws_url
        self.timeout = timeout

        self.ws_app: websocket.WebSocketApp | None = None
        self.ws_thread: threading.Thread | None = None
        self.connected = threading.Event()
        self._closing = False

        self._next_id = 1
        self._pending: dict[int, Future] = {}
        self._lock = threading.Lock()

        self._callbacks: dict[str, list[EventCallback]] = defaultdict(list)
        self._disconnect_callback: Callable[[int | None, str | None], None] | None = None

    def connect(self, connect_timeout: float = 5) -> None:
        """Open the WebSocket and wait for it to be ready.

        Raises:
            TransportError: If already connected or the socket does not open in time.
        """
        if self.ws_app:
            raise TransportError("Already connected")

        self.ws_app = websocket.WebSocketApp(
            self.ws_url,
            on_open=self._on_open,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
        )

        self.ws_thread = threading.Thread(
            target=self.ws_app.run_forever,
            kwargs={
                "ping_interval": 30,
                "ping_timeout": 10,
                "skip_utf8_validation": True,
                "suppress_origin": True,
            },
            name=f"cdp-{self.target_id[:8]}",
        )
        self.ws_thread.daemon = True
        self.ws_thread.start()

        if not self.connected.wait(timeout=connect_timeout):
            self.close()
            raise TransportError(f"Failed to connect to target {self.target_id}")

    def enable_capture(self) -> None:
        """Enable event domains and auto-attach for child contexts.

        Page is optional: workers and service workers have no Page domain.

        Raises:
            TransportError: If a capture domain fails to enable.
        """
        failures = {}
        for domain in _CAPTURE_DOMAINS:
            try:
                self.execute(f"{domain}.enable")
            except TransportError as e:
                failures[domain] = str(e)

        if failures:
            raise TransportError(f"Failed to enable domains: {failures}")

        try:
            self.execute("Page.enable")
        except TransportError as e:
            logger.debug(f"Page domain unavailable on {self.target_id}: {e}")

        self.execute(
            "Target.setAutoAttach",
            {"autoAttach": True, "flatten": True, "waitForDebuggerOnStart": False},
        )

    def close(self) -> None:
        """Close the WebSocket. Does not fire the disconnect callback."""
        self._closing = True
        with self._lock:
            ws_app = self.ws_app
            self.ws_app = None

        if ws_app:
            ws_app.close()

        if self.ws_thread and self.ws_thread.is_alive() and self.ws_thread is not threading.current_thread():
            self.ws_thread.join(timeout=2)
        self.ws_thread = None
        self.connected.clear()

    def on(self, method: str, callback: EventCallback) -> None:
        """Register callback(params, session_id) for a CDP event method."""
        self._callbacks[method].append(callback)

    def set_disconnect_callback(self, callback: Callable[[int | None, str | None], None]) -> None:
        """Called with (code, reason) when the socket closes without close()."""
        self._disconnect_callback = callback

    def send(self, method: str, params: dict | None = None, session_id: str | None = None) -> Future:
        """Send CDP command asynchronously.

        Returns:
            Future resolving to the 'result' field of the CDP response.
        """
        with self._lock:
            ws_app = self.ws_app
            if not ws_app:
                raise TransportError("Not connected")
            msg_id = self._next_id
            self._next_id += 1
            future: Future = Future()
            self._pending[msg_id] = future

        message: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            message["params"] = params
        if session_id:
            message["sessionId"] = session_id

        try:
            ws_app.send(json.dumps(message))
        except Exception as e:
            with self._lock:
                self._pending.pop(msg_id, None)
            raise TransportError(f"Failed to send {method}: {e}") from e

        return future

    def execute(self, method: str, params: dict | None = None, timeout: float | None = None) -> Any:
        """Send CDP command synchronously.

        Raises:
            TransportError: On CDP error, closed connection or timeout.
        """
        future = self.send(method, params)

        try:
            return future.result(timeout=timeout or self.timeout)
        except TimeoutError:
            with self._lock:
                for msg_id, f in list(self._pending.items()):
                    if f is future:
                        self._pending.pop(msg_id, None)
                        break
            raise TransportError(f"Command {method} timed out")

    def evaluate_script(self, expression: str, await_promise: bool = False) -> dict:
        """Run Runtime.evaluate and return the raw result.

        Returns:
            Dict with 'result' (RemoteObject) and optionally 'exceptionDetails'.
        """
        return self.execute(
            "Runtime.evaluate",
            {"expression": expression, "awaitPromise": await_promise, "returnByValue": True},
        )

    def navigate(self, url: str) -> dict:
        return self.execute("Page.navigate", {"url": url})

    def reload(self, ignore_cache: bool = False) -> dict:
        return self.execute("Page.reload", {"ignoreCache": ignore_cache})

    def get_response_body(self, request_id: str) -> dict:
        """Network.getResponseBody -> {'body', 'base64Encoded'}."""
        return self.execute("Network.getResponseBody", {"requestId": request_id})

    def _on_open(self, ws):
        logger.info(f"WebSocket connected to target {self.target_id}")
        self.connected.set()

    def _on_message(self, ws, message):
        """Resolve command futures and fan events out to callbacks."""
        try:
            data = json.loads(message)
        except ValueError as e:
            logger.warning(f"Dropping unparseable CDP message: {e}")
            return

        if "id" in data:
            with self._lock:
                future = self._pending.pop(data["id"], None)
            if future:
                if "error" in data:
                    future.set_exception(TransportError(str(data["error"])))
                else:
                    future.set_result(data.get("result", {}))
            return

        method = data.get("method")
        if not method:
            return

        params = data.get("params", {})
        session_id = data.get("sessionId")

        if method == "Target.attachedToTarget":
            self._enable_child(params)

        for callback in list(self._callbacks.get(method, ())):
            try:
                callback(params, session_id)
            except Exception as e:
                logger.error(f"Event callback for {method} failed: {e}")

    def _enable_child(self, params: dict) -> None:
        """Enable capture on an auto-attached child session. Fire-and-forget."""
        child_session = params.get("sessionId") if isinstance(params, dict) else None
        if not child_session:
            return
        try:
            for domain in _CAPTURE_DOMAINS:
                self.send(f"{domain}.enable", session_id=child_session)
            self.send("Runtime.runIfWaitingForDebugger", session_id=child_session)
        except TransportError as e:
            logger.debug(f"Could not enable child session {child_session}: {e}")

    def _on_error(self, ws, error):
        logger.error(f"WebSocket error on {self.target_id}: {error}")

    def _on_close(self, ws, code, reason):
        logger.info(f"WebSocket closed for {self.target_id}: {code} {reason}")
        self.connected.clear()

        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for future in pending:
            future.set_exception(TransportError("Connection closed"))

        if not self._closing and self._disconnect_callback:
            try:
                self._disconnect_callback(code, reason)
            except Exception as e:
                logger.error(f"Disconnect callback failed for {self.target_id}: {e}")
