import base64

from conftest import console_params, request_params, response_params


def _observe(rpc, transport, target="T1"):
    result = rpc.call("observe", target_id=target)
    assert result == {"targetId": target, "resourceUri": f"cdptap://events/{target}", "attached": True}
    return transport.handles[target]


def test_observe_read_stop_scenario(rpc, transport):
    handle = _observe(rpc, transport)
    handle.emit("Runtime.consoleAPICalled", console_params("boom", "error"))

    result = rpc.call("read_events", target_id="T1")
    assert result["totalCount"] == 1
    assert result["nextOffset"] == 1
    [event] = result["events"]
    assert (event["sequence"], event["severity"], event["text"]) == (0, "error", "boom")

    assert rpc.call("stop_observe", target_id="T1") == {"stopped": True, "dropped": False}
    assert rpc.call("read_events", target_id="T1")["events"][0]["text"] == "boom"

    again = rpc.call("stop_observe", target_id="T1")
    assert again["error"]["code"] == "NOT_OBSERVING"


def test_targets_filters(rpc):
    result = rpc.call("targets", url_includes="localhost", types=["page"])
    assert [t["id"] for t in result["targets"]] == ["T1"]


def test_targets_unreachable(rpc, transport):
    transport.unreachable = True
    assert rpc.call("targets")["error"]["code"] == "BROWSER_UNREACHABLE"


def test_read_side_filters_do_not_stall_cursor(rpc, transport):
    handle = _observe(rpc, transport)
    handle.emit("Runtime.consoleAPICalled", console_params("a"))
    handle.emit("Network.requestWillBeSent", request_params("r1", "https://app/api"))
    handle.emit("Network.requestWillBeSent", request_params("r2", "https://app/api", method="POST"))
    handle.emit("Network.responseReceived", response_params("r1", "https://app/api"))

    result = rpc.call("read_events", target_id="T1", kinds=["network"], method="post")
    assert [e["requestId"] for e in result["events"]] == ["r2"]
    assert result["filteredCount"] == 1
    assert result["totalCount"] == 4
    assert result["nextOffset"] == 4

    empty = rpc.call("read_events", target_id="T1", offset=0, limit=1, kinds=["request"])
    assert empty["events"] == []
    assert empty["nextOffset"] == 1


def test_read_reverse_and_url_filter(rpc, transport):
    handle = _observe(rpc, transport)
    for i in range(3):
        handle.emit("Network.requestWillBeSent", request_params(f"r{i}", f"https://app/{i}"))
    handle.emit("Network.requestWillBeSent", request_params("x", "https://cdn/lib.js"))

    result = rpc.call("read_events", target_id="T1", url_includes="app/", reverse=True)
    assert [e["requestId"] for e in result["events"]] == ["r2", "r1", "r0"]


def test_events_resource_returns_tail(rpc, transport):
    handle = _observe(rpc, transport)
    for i in range(3):
        handle.emit("Runtime.consoleAPICalled", console_params(str(i)))
    result = rpc.call("events", target_id="T1")
    assert [e["text"] for e in result["events"]] == ["0", "1", "2"]
    assert result["nextOffset"] == 3


def test_clear_events(rpc, transport):
    handle = _observe(rpc, transport)
    handle.emit("Runtime.consoleAPICalled", console_params("a"))
    assert rpc.call("clear_events", target_id="T1") == {"cleared": True}
    assert rpc.call("read_events", target_id="T1")["totalCount"] == 0


def test_filters_set_and_get(rpc, transport):
    _observe(rpc, transport)
    result = rpc.call("set_filters", target_id="T1", kinds=["network"], url_blocklist=["ads."])
    assert result["updated"] is True
    assert rpc.call("get_filters", target_id="T1")["filters"] == {
        "kinds": ["network"],
        "urlAllowlist": [],
        "urlBlocklist": ["ads."],
        "maxBodyBytes": None,
    }

    bad = rpc.call("set_filters", target_id="T1", kinds=["dom"])
    assert bad["error"]["code"] == "INVALID_INPUT"


def test_response_body_with_mime_type(rpc, transport):
    handle = _observe(rpc, transport)
    handle.emit("Network.responseReceived", response_params("r1", "https://app/api"))
    handle.bodies["r1"] = {"body": '{"ok": true}', "base64Encoded": False}

    result = rpc.call("get_response_body", target_id="T1", request_id="r1")
    assert result == {"requestId": "r1", "mimeType": "application/json", "encoded": False, "body": '{"ok": true}'}

    encoded = rpc.call("get_response_body", target_id="T1", request_id="r1", base64=True)
    assert encoded["encoded"] is True
    assert base64.b64decode(encoded["body"]).decode() == '{"ok": true}'


def test_response_body_unknown(rpc, transport):
    _observe(rpc, transport)
    result = rpc.call("get_response_body", target_id="T1", request_id="gone")
    assert result["error"]["code"] == "BODY_NOT_AVAILABLE"


def test_live_commands_on_detached_session(rpc, transport):
    _observe(rpc, transport)
    rpc.call("stop_observe", target_id="T1")
    for method, params in [
        ("get_response_body", {"request_id": "r1"}),
        ("evaluate", {"expression": "1"}),
        ("navigate", {"url": "about:blank"}),
        ("reload", {}),
    ]:
        assert rpc.call(method, target_id="T1", **params)["error"]["code"] == "SESSION_DETACHED"

    assert rpc.call("evaluate", target_id="T9", expression="1")["error"]["code"] == "SESSION_NOT_FOUND"


def test_evaluate(rpc, transport):
    handle = _observe(rpc, transport)
    assert rpc.call("evaluate", target_id="T1", expression="1 + 1") == {"value": 2, "type": "number"}
    assert handle.calls[-1] == ("evaluate", "1 + 1", False)

    handle.eval_result = {
        "result": {"type": "object"},
        "exceptionDetails": {"text": "Uncaught", "exception": {"description": "ReferenceError: x is not defined"}},
    }
    failed = rpc.call("evaluate", target_id="T1", expression="x")
    assert failed["error"] == {"code": "EXECUTION_FAILED", "message": "ReferenceError: x is not defined"}


def test_navigate_and_reload(rpc, transport):
    handle = _observe(rpc, transport)
    assert rpc.call("navigate", target_id="T1", url="https://example.com") == {"navigated": True, "frameId": "F1"}
    assert rpc.call("reload", target_id="T1", ignore_cache=True) == {"reloaded": True}
    assert handle.calls[-1] == ("reload", True)


def test_sessions_listing(rpc, transport):
    _observe(rpc, transport)
    [summary] = rpc.call("sessions")["sessions"]
    assert summary["targetId"] == "T1"
    assert summary["state"] == "attached"
    assert summary["size"] == 0
    assert summary["createdAt"] == 1000.0


def test_invalid_input(rpc, transport):
    _observe(rpc, transport)
    assert rpc.call("read_events", target_id="T1", offset=-1)["error"]["code"] == "INVALID_INPUT"
    assert rpc.call("read_events")["error"]["code"] == "INVALID_INPUT"
    assert rpc.call("observe")["error"]["code"] == "INVALID_INPUT"
    assert rpc.call("no_such_method")["error"]["code"] == "INVALID_INPUT"
    assert rpc.call("read_events", target_id="T1", bogus=1)["error"]["code"] == "INVALID_INPUT"


def test_unexpected_error_is_internal(rpc, manager, monkeypatch):
    def boom():
        raise RuntimeError("kaput")

    monkeypatch.setattr(manager, "sessions", boom)
    assert rpc.call("sessions")["error"] == {"code": "INTERNAL_ERROR", "message": "kaput"}


def test_read_rejects_unknown_kinds(rpc, transport):
    _observe(rpc, transport)
    result = rpc.call("read_events", target_id="T1", kinds=["dom"])
    assert result["error"]["code"] == "INVALID_INPUT"


def test_observe_missing_target_reports_not_found(rpc):
    assert rpc.call("observe", target_id="GONE")["error"]["code"] == "TARGET_NOT_FOUND"
