import json
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from nrschub.network.base import (
    Handler,
    RequestError,
    Sender,
    WsConnection,
    WsServer,
    connect,
)


class FakeTransport:
    _CLOSED = object()

    def __init__(self):
        self.sent = []
        self.incoming = queue.Queue()
        self.closed = False

    def send(self, message):
        self.sent.append(message)

    def recv(self):
        item = self.incoming.get()
        if item is self._CLOSED:
            raise ConnectionError("closed")
        return item

    def close(self):
        self.closed = True
        self.incoming.put(self._CLOSED)

    def frames(self):
        return [json.loads(m) for m in self.sent]


class RecordingHandler(Handler):
    def __init__(self):
        self.messages = []
        self.message_seen = threading.Event()
        self.closed = threading.Event()

    def on_message(self, conn, subject, body):
        self.messages.append((subject, body))
        self.message_seen.set()

    def on_request(self, conn, command, params):
        if command == "echo":
            return params
        if command == "nothing":
            return None
        raise ValueError(f"bad command {command}")

    def on_close(self, conn):
        self.closed.set()


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met")
        time.sleep(0.01)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def conn(transport, handler):
    return WsConnection(transport, handler, "peer:1", request_timeout=5.0)


def test_send_just_saying_wire_format(conn, transport):
    assert conn.send_just_saying("version", {"alt": "1"}) is None
    assert transport.frames() == [
        ["justsaying", {"subject": "version", "body": {"alt": "1"}}]
    ]


def test_send_error_and_info_use_subjects(conn, transport):
    assert conn.send_error("bad") is None
    assert conn.send_info("ok") is None
    assert [f[1]["subject"] for f in transport.frames()] == ["error", "info"]


def test_send_error_result(conn, transport):
    assert conn.send_error_result("u1", "oops") is None
    assert transport.frames() == [
        [
            "justsaying",
            {
                "subject": "result",
                "body": {"unit": "u1", "result": "error", "error": "oops"},
            },
        ]
    ]


def test_send_response_omits_null(conn, transport):
    assert conn.send_response("7", None) is None
    assert conn.send_response("8", [1, 2]) is None
    assert transport.frames() == [
        ["response", {"tag": "7"}],
        ["response", {"tag": "8", "response": [1, 2]}],
    ]


def test_send_error_response(conn, transport):
    assert conn.send_error_response("3", "boom") is None
    assert transport.frames() == [["response", {"tag": "3", "response": {"error": "boom"}}]]


def test_send_json_is_compact(conn, transport):
    assert conn.send_json({"a": [1, 2]}) is None
    assert transport.sent == ['{"a":[1,2]}']


def test_sender_base_requires_send_json():
    with pytest.raises(NotImplementedError):
        Sender().send_info("x")


def test_send_request_round_trip(conn, transport):
    with ThreadPoolExecutor(1) as pool:
        future = pool.submit(conn.send_request, "get_peers", "hub")
        _wait_for(lambda: transport.sent)
        kind, request = transport.frames()[0]
        assert kind == "request"
        assert request["command"] == "get_peers"
        assert request["params"] == "hub"
        conn.handle_text(json.dumps(["response", {"tag": request["tag"], "response": ["a", "b"]}]))
        assert future.result(5) == ["a", "b"]


def test_send_request_without_params(conn, transport):
    with ThreadPoolExecutor(1) as pool:
        future = pool.submit(conn.send_request, "heartbeat")
        _wait_for(lambda: transport.sent)
        request = transport.frames()[0][1]
        assert "params" not in request
        conn.handle_text(json.dumps(["response", {"tag": request["tag"]}]))
        assert future.result(5) is None


def test_request_tags_are_distinct(conn, transport):
    with ThreadPoolExecutor(2) as pool:
        first = pool.submit(conn.send_request, "a")
        second = pool.submit(conn.send_request, "b")
        _wait_for(lambda: len(transport.sent) == 2)
        requests = [f[1] for f in transport.frames()]
        assert requests[0]["tag"] != requests[1]["tag"]
        for request in requests:
            conn.handle_text(
                json.dumps(["response", {"tag": request["tag"], "response": request["command"]}])
            )
        assert (first.result(5), second.result(5)) == ("a", "b")


def test_error_response_raises(conn, transport):
    with ThreadPoolExecutor(1) as pool:
        future = pool.submit(conn.send_request, "get_joint", "u")
        _wait_for(lambda: transport.sent)
        tag = transport.frames()[0][1]["tag"]
        conn.handle_text(json.dumps(["response", {"tag": tag, "response": {"error": "nope"}}]))
        with pytest.raises(RequestError, match="get_joint"):
            future.result(5)


def test_request_timeout(transport, handler):
    conn = WsConnection(transport, handler, request_timeout=0.05)
    with pytest.raises(TimeoutError):
        conn.send_request("heartbeat")


def test_close_cancels_pending_request(conn, transport):
    with ThreadPoolExecutor(1) as pool:
        future = pool.submit(conn.send_request, "heartbeat")
        _wait_for(lambda: transport.sent)
        conn.close()
        with pytest.raises(ConnectionError):
            future.result(5)
    assert transport.closed and conn.closed


def test_incoming_request_is_answered(conn, transport):
    thread = conn.handle_text(json.dumps(["request", {"command": "echo", "tag": "5", "params": {"x": 1}}]))
    thread.join(5)
    assert not thread.is_alive()
    assert transport.frames() == [["response", {"tag": "5", "response": {"x": 1}}]]


def test_incoming_request_null_result(conn, transport):
    thread = conn.handle_text(json.dumps(["request", {"command": "nothing", "tag": "9"}]))
    thread.join(5)
    assert not thread.is_alive()
    assert transport.frames() == [["response", {"tag": "9"}]]


def test_incoming_request_failure_becomes_error_response(conn, transport):
    thread = conn.handle_text(json.dumps(["request", {"command": "zap", "tag": "2"}]))
    thread.join(5)
    assert not thread.is_alive()
    assert transport.frames() == [["response", {"tag": "2", "response": {"error": "bad command zap"}}]]


def test_default_handler_rejects_commands(transport):
    conn = WsConnection(transport, Handler())
    thread = conn.handle_text(json.dumps(["request", {"command": "x", "tag": "1"}]))
    thread.join(5)
    response = transport.frames()[0][1]["response"]
    assert "unknown command" in response["error"]


def test_just_saying_dispatched_with_default_body(conn, handler):
    thread = conn.handle_text(json.dumps(["justsaying", {"subject": "refresh"}]))
    thread.join(5)
    assert not thread.is_alive()
    assert handler.messages == [("refresh", None)]


def test_invalid_frames_are_ignored(conn, transport, handler):
    assert conn.handle_text("not json") is None
    assert conn.handle_text(json.dumps({"a": 1})) is None
    assert conn.handle_text(json.dumps(["weird", {}])) is None
    assert conn.handle_text(json.dumps(["response", {"tag": "abc"}])) is None
    assert transport.sent == []
    assert handler.messages == []


def test_handle_text_updates_last_recv(conn):
    before = conn.last_recv
    time.sleep(0.01)
    conn.handle_text(json.dumps(["response", {"tag": "0"}]))
    assert conn.last_recv > before


def test_reader_dispatches_and_reports_close(conn, transport, handler):
    reader = conn.start()
    transport.incoming.put(json.dumps(["justsaying", {"subject": "info", "body": 1}]))
    assert handler.message_seen.wait(5)
    conn.close()
    reader.join(5)
    assert not reader.is_alive()
    assert handler.closed.is_set()
    assert handler.messages == [("info", 1)]


def test_start_twice_fails(conn):
    conn.start()
    with pytest.raises(RuntimeError):
        conn.start()
    conn.close()


def test_server_and_client_round_trip():
    server_handler = RecordingHandler()
    accepted = []
    server = WsServer(0, server_handler, accepted.append, host="127.0.0.1")
    server.start()
    try:
        client = connect(f"ws://127.0.0.1:{server.port}", RecordingHandler(), 5.0)
        try:
            assert client.send_request("echo", {"a": [1, 2]}) == {"a": [1, 2]}
            with pytest.raises(RequestError):
                client.send_request("zap")
            client.send_just_saying("hello", "there")
            assert server_handler.message_seen.wait(5)
            assert server_handler.messages == [("hello", "there")]
            assert len(accepted) == 1
        finally:
            client.close()
        assert server_handler.closed.wait(5)
    finally:
        server.stop()