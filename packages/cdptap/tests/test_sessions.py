import threading

import pytest
from conftest import FakeHandle, console_params, request_params

from cdptap.cdp.normalize import NORMALIZERS, TRUNCATION_MARKER
from cdptap.errors import (
    AlreadyObserving,
    BrowserUnreachable,
    ConnectionFailed,
    InvalidInput,
    NotObserving,
    SessionDetached,
    SessionNotFound,
    TargetNotFound,
)
from cdptap.filters import FilterConfig
from cdptap.services import SessionState, SessionSweeper


def test_observe_by_url_substring(manager):
    session = manager.observe(url_includes="docs.example")
    assert session.target_id == "T2"
    assert session.state == SessionState.ATTACHED
    assert session.buffer.capacity == manager.config.default_buffer_size


def test_observe_requires_a_selector(manager):
    with pytest.raises(InvalidInput):
        manager.observe()


def test_observe_unknown_url(manager):
    with pytest.raises(TargetNotFound):
        manager.observe(url_includes="nowhere")


def test_observe_browser_unreachable(manager, transport):
    transport.unreachable = True
    with pytest.raises(BrowserUnreachable):
        manager.observe(url_includes="localhost")


def test_observe_connect_failure_leaves_no_session(manager, transport):
    transport.refuse.add("T1")
    with pytest.raises(ConnectionFailed):
        manager.observe("T1")
    assert manager.find_session("T1") is None
    # the reservation is released, so a retry can succeed
    transport.refuse.clear()
    assert manager.observe("T1").attached


def test_observe_twice_fails(manager):
    manager.observe("T1")
    with pytest.raises(AlreadyObserving):
        manager.observe("T1")


def test_wildcard_host_blocked(manager):
    with pytest.raises(InvalidInput):
        manager.observe("T1", host="0.0.0.0")


def test_events_flow_into_buffer(manager, transport):
    manager.observe("T1", buffer_size=3)
    handle = transport.handles["T1"]

    for i in range(5):
        handle.emit("Runtime.consoleAPICalled", console_params(f"m{i}"))

    session = manager.get_session("T1")
    events = session.buffer.slice_by_offset(0, 10).events
    assert [e.text for e in events] == ["m2", "m3", "m4"]
    assert [e.sequence for e in events] == [2, 3, 4]


def test_child_session_id_is_kept(manager, transport):
    manager.observe("T1")
    transport.handles["T1"].emit("Runtime.consoleAPICalled", console_params("from iframe"), session_id="S9")
    event = manager.get_session("T1").buffer.get_tail(1).events[0]
    assert event.session_id == "S9"


def test_capture_filters_apply_at_admission(manager, transport):
    manager.observe("T1")
    manager.set_filters("T1", FilterConfig(kinds=["network"], url_blocklist=["ads."]))
    handle = transport.handles["T1"]

    handle.emit("Runtime.consoleAPICalled", console_params("dropped"))
    handle.emit("Network.requestWillBeSent", request_params("r1", "https://ads.example.com/pixel"))
    handle.emit("Network.requestWillBeSent", request_params("r2", "https://app.example.com/api"))

    events = manager.get_session("T1").buffer.slice_by_offset(0, 10).events
    assert [e.request_id for e in events] == ["r2"]
    assert events[0].sequence == 0


def test_body_budget_and_empty_params(manager, transport):
    manager.observe("T1")
    manager.set_filters("T1", FilterConfig(max_body_bytes=5))
    handle = transport.handles["T1"]

    handle.emit("Runtime.consoleAPICalled", None)
    handle.emit("Runtime.consoleAPICalled", console_params("kept but truncated"))

    events = manager.get_session("T1").buffer.slice_by_offset(0, 10).events
    assert [e.text for e in events] == ["", "kept " + TRUNCATION_MARKER]


def test_stop_keeps_buffer_readable(manager, transport):
    manager.observe("T1")
    handle = transport.handles["T1"]
    handle.emit("Runtime.consoleAPICalled", console_params("boom", "error"))

    manager.stop_observe("T1")

    assert handle.closed
    session = manager.get_session("T1")
    assert session.state == SessionState.DETACHED
    assert [e.text for e in session.buffer.slice_by_offset(0, 10).events] == ["boom"]

    with pytest.raises(NotObserving):
        manager.stop_observe("T1")
    with pytest.raises(SessionDetached):
        manager.require_handle("T1")


def test_stop_with_drop_removes_session(manager, transport):
    session = manager.observe("T1")
    manager.stop_observe("T1", drop_buffer=True)

    assert session.state == SessionState.REMOVED
    with pytest.raises(SessionNotFound):
        manager.get_session("T1")

    # late events for a removed session are ignored
    transport.handles["T1"].emit("Runtime.consoleAPICalled", console_params("late"))
    assert session.buffer.size() == 0


def test_detached_session_can_be_dropped_and_reobserved(manager):
    manager.observe("T1")
    manager.stop_observe("T1")
    with pytest.raises(AlreadyObserving):
        manager.observe("T1")

    manager.stop_observe("T1", drop_buffer=True)
    assert manager.observe("T1").attached


def test_stop_unknown_target(manager):
    with pytest.raises(NotObserving):
        manager.stop_observe("nope")


def test_unexpected_disconnect_detaches(manager, transport):
    manager.observe("T1")
    transport.handles["T1"].emit("Runtime.consoleAPICalled", console_params("before"))
    transport.handles["T1"].drop()

    session = manager.get_session("T1")
    assert session.state == SessionState.DETACHED
    assert session.buffer.size() == 1
    with pytest.raises(SessionDetached):
        manager.require_handle("T1")


def test_clear_restarts_sequence(manager, transport):
    manager.observe("T1")
    handle = transport.handles["T1"]
    handle.emit("Runtime.consoleAPICalled", console_params("a"))
    handle.emit("Runtime.consoleAPICalled", console_params("b"))

    manager.clear_events("T1")
    manager.clear_events("T1")
    handle.emit("Runtime.consoleAPICalled", console_params("c"))

    events = manager.get_session("T1").buffer.slice_by_offset(0, 10).events
    assert [(e.sequence, e.text) for e in events] == [(0, "c")]


def test_gc_removes_idle_sessions(manager, transport, clock):
    manager.observe("T1")
    manager.observe("T2", ttl_sec=10)
    transport.handles["T1"].fail_close = True

    clock.advance(11)
    assert manager.gc() == ["T2"]
    assert transport.handles["T2"].closed

    transport.handles["T1"].emit("Runtime.consoleAPICalled", console_params("keepalive"))
    clock.advance(manager.config.default_ttl_sec)
    assert manager.gc() == []

    # close failure is swallowed
    assert manager.gc(now=clock.now + 1) == ["T1"]
    assert manager.sessions() == []


def test_gc_reclaims_detached_sessions(manager, clock):
    manager.observe("T1", ttl_sec=5)
    manager.stop_observe("T1")
    assert manager.gc(now=clock.now + 6) == ["T1"]


def test_concurrent_pushes_keep_sequences_dense(manager, transport):
    manager.observe("T1", buffer_size=1000)
    handle = transport.handles["T1"]

    def produce(tag):
        for i in range(100):
            handle.emit("Runtime.consoleAPICalled", console_params(f"{tag}{i}"))

    threads = [threading.Thread(target=produce, args=(t,)) for t in "abcd"]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    events = manager.get_session("T1").buffer.slice_by_offset(0, 1000).events
    assert [e.sequence for e in events] == list(range(400))


def test_sweeper_runs_gc(manager, clock):
    manager.observe("T1", ttl_sec=1)
    clock.advance(5)
    sweeper = SessionSweeper(manager, interval=3600)
    assert sweeper.sweep() == ["T1"]


def test_sweeper_start_stop(manager):
    sweeper = SessionSweeper(manager, interval=0.01)
    sweeper.start()
    assert sweeper.running
    sweeper.stop()
    assert not sweeper.running


def test_failing_normalizer_drops_only_that_event(manager, transport, monkeypatch):
    original = NORMALIZERS["Runtime.consoleAPICalled"]

    def picky(params, *args, **kwargs):
        if params.get("poison"):
            raise KeyError("poison")
        return original(params, *args, **kwargs)

    monkeypatch.setitem(NORMALIZERS, "Runtime.consoleAPICalled", picky)
    manager.observe("T1")
    handle = transport.handles["T1"]

    handle.emit("Runtime.consoleAPICalled", {"poison": True})
    handle.emit("Runtime.consoleAPICalled", console_params("good"))

    session = manager.get_session("T1")
    events = session.buffer.slice_by_offset(0, 10).events
    assert [(e.sequence, e.text) for e in events] == [(0, "good")]
    assert session.state == SessionState.ATTACHED


def test_observe_missing_target_id(manager):
    with pytest.raises(TargetNotFound):
        manager.observe("GONE")
    assert manager.find_session("GONE") is None


def test_subscribe_failure_closes_handle(manager, transport, monkeypatch):
    def broken_on(self, method, callback):
        raise RuntimeError("subscription refused")

    monkeypatch.setattr(FakeHandle, "on", broken_on)
    with pytest.raises(RuntimeError):
        manager.observe("T1")

    assert transport.handles["T1"].closed
    assert manager.find_session("T1") is None

    monkeypatch.undo()
    assert manager.observe("T1").attached


def test_summary_reports_attach_time(manager, clock):
    session = manager.observe("T1")
    clock.advance(30)
    with session.lock:
        summary = session.summary()
    assert summary["createdAt"] == 1000.0
    assert summary["state"] == "attached"
