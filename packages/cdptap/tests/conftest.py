"""Shared fixtures: an in-memory transport and a controllable clock."""

from collections import defaultdict

import pytest

from cdptap.cdp.session import TransportError
from cdptap.cdp.targets import TargetInfo
from cdptap.cdp.transport import TargetMissing
from cdptap.config import Config
from cdptap.rpc import create_rpc
from cdptap.services import SessionManager


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    """Stands in for CDPSession; tests drive events through emit()."""

    def __init__(self, target_id: str):
        self.target_id = target_id
        self.callbacks = defaultdict(list)
        self.disconnect_callback = None
        self.closed = False
        self.fail_close = False
        self.bodies: dict[str, dict] = {}
        self.eval_result: dict = {"result": {"type": "number", "value": 2}}
        self.calls: list[tuple] = []

    def on(self, method, callback):
        self.callbacks[method].append(callback)

    def set_disconnect_callback(self, callback):
        self.disconnect_callback = callback

    def emit(self, method, params, session_id=None):
        for callback in self.callbacks[method]:
            callback(params, session_id)

    def drop(self, code=1006, reason="abnormal closure"):
        self.disconnect_callback(code, reason)

    def close(self):
        self.closed = True
        if self.fail_close:
            raise RuntimeError("socket already gone")

    def get_response_body(self, request_id):
        if request_id not in self.bodies:
            raise TransportError("No resource with given identifier found")
        return self.bodies[request_id]

    def evaluate_script(self, expression, await_promise=False):
        self.calls.append(("evaluate", expression, await_promise))
        return self.eval_result

    def navigate(self, url):
        self.calls.append(("navigate", url))
        return {"frameId": "F1", "loaderId": "L1"}

    def reload(self, ignore_cache=False):
        self.calls.append(("reload", ignore_cache))
        return {}


class FakeTransport:
    def __init__(self, targets=None):
        self.targets = targets or [
            TargetInfo(id="T1", kind="page", title="App", url="http://localhost:3000/"),
            TargetInfo(id="T2", kind="page", title="Docs", url="https://docs.example.com/"),
            TargetInfo(id="W1", kind="service_worker", title="sw", url="http://localhost:3000/sw.js"),
        ]
        self.handles: dict[str, FakeHandle] = {}
        self.unreachable = False
        self.refuse: set[str] = set()

    def list_targets(self, host, port):
        if self.unreachable:
            raise TransportError(f"Cannot reach Chrome at {host}:{port}")
        return list(self.targets)

    def connect(self, host, port, target_id):
        if target_id not in {t.id for t in self.targets}:
            raise TargetMissing(f"Target {target_id} not found on {host}:{port}")
        if target_id in self.refuse:
            raise TransportError("WebSocket handshake failed")
        handle = FakeHandle(target_id)
        self.handles[target_id] = handle
        return handle


def console_params(text: str, level: str = "log") -> dict:
    return {"type": level, "args": [{"type": "string", "value": text}], "timestamp": 1}


def request_params(request_id: str, url: str, method: str = "GET") -> dict:
    return {"requestId": request_id, "request": {"url": url, "method": method, "headers": {}}, "type": "Fetch"}


def response_params(request_id: str, url: str, mime_type: str = "application/json") -> dict:
    return {"requestId": request_id, "response": {"url": url, "status": 200, "statusText": "OK", "mimeType": mime_type}}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def manager(config, transport, clock):
    manager = SessionManager(config, transport, clock=clock)
    yield manager
    manager.close_all()


@pytest.fixture
def rpc(manager):
    return create_rpc(manager)
