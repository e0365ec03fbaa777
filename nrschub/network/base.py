"""JSON-over-WebSocket connections speaking the justsaying/request/response protocol."""

from __future__ import annotations

import itertools
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from websockets.sync.client import connect as _ws_connect
from websockets.sync.server import serve as _ws_serve

log = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 10.0
_LOG_LIMIT = 1000


class RequestError(Exception):
    """Raised when a peer answers a request with an error or a malformed response."""


class Transport(Protocol):
    """The part of a WebSocket connection this module relies on."""

    def send(self, message: str) -> None: ...

    def recv(self) -> Any: ...

    def close(self) -> None: ...


class Handler:
    """Serves incoming messages and requests of a connection.

    Subclasses override what they support; the defaults reject every
    subject and command.
    """

    def on_message(self, conn: "WsConnection", subject: str, body: Any) -> None:
        raise ValueError(f"on_message unknown subject: {subject} body {json.dumps(body)}")

    def on_request(self, conn: "WsConnection", command: str, params: Any) -> Any:
        raise ValueError(f"on_request unknown command: {command}")

    def on_close(self, conn: "WsConnection") -> None:
        """Called once the connection stops reading."""


class Sender:
    """Message builders on top of :meth:`send_json`."""

    def send_json(self, value: Any) -> None:
        raise NotImplementedError

    def send_message(self, kind: str, content: Any) -> None:
        self.send_json([kind, content])

    def send_just_saying(self, subject: str, body: Any) -> None:
        self.send_message("justsaying", {"subject": subject, "body": body})

    def send_error(self, error: Any) -> None:
        self.send_just_saying("error", error)

    def send_info(self, info: Any) -> None:
        self.send_just_saying("info", info)

    def send_result(self, result: Any) -> None:
        self.send_just_saying("result", result)

    def send_error_result(self, unit: str, error: str) -> None:
        self.send_result({"unit": unit, "result": "error", "error": error})

    def send_response(self, tag: str, response: Any) -> None:
        if response is None:
            self.send_message("response", {"tag": tag})
        else:
            self.send_message("response", {"tag": tag, "response": response})

    def send_error_response(self, tag: str, error: Any) -> None:
        self.send_response(tag, {"error": error})


class _Waiter:
    def __init__(self) -> None:
        self.event = threading.Event()
        self.value: Any = None
        self.cancelled = False

    def resolve(self, value: Any) -> None:
        self.value = value
        self.event.set()

    def cancel(self) -> None:
        self.cancelled = True
        self.event.set()


def _short(text: str) -> str:
    return text if len(text) < _LOG_LIMIT else "huge message"


def _format_peer(address: Any) -> str:
    if isinstance(address, (tuple, list)) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return "unknown peer"


class WsConnection(Sender):
    """One peer connection: sends messages, matches responses, dispatches incoming traffic."""

    def __init__(
        self,
        transport: Transport,
        handler: Handler,
        peer_addr: str = "unknown peer",
        *,
        data: Any = None,
        request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._handler = handler
        self.peer_addr = peer_addr
        self.data = data
        self.request_timeout = request_timeout
        self.last_recv = time.monotonic()
        self._send_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending: Dict[int, _Waiter] = {}
        self._tags = itertools.count()
        self._reader: Optional[threading.Thread] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"WsConnection(peer_addr={self.peer_addr!r})"

    @property
    def closed(self) -> bool:
        return self._closed

    def send_json(self, value: Any) -> None:
        message = json.dumps(value, separators=(",", ":"))
        log.debug("SENDING to %s: %s", self.peer_addr, _short(message))
        with self._send_lock:
            self._transport.send(message)

    def send_request(self, command: str, params: Any = None) -> Any:
        """Send a request and block until its response arrives.

        Returns the response value (``None`` if the peer sent none).
        Raises :class:`RequestError` on an error response,
        :class:`TimeoutError` when no answer comes in time and
        :class:`ConnectionError` when the connection closes meanwhile.
        """
        request: Dict[str, Any] = {"command": command}
        if params is not None:
            request["params"] = params
        tag = next(self._tags)
        request["tag"] = str(tag)

        waiter = _Waiter()
        with self._pending_lock:
            self._pending[tag] = waiter
        try:
            self.send_message("request", request)
            if not waiter.event.wait(self.request_timeout):
                raise TimeoutError(f"request {command} timed out")
        finally:
            with self._pending_lock:
                self._pending.pop(tag, None)

        if waiter.cancelled:
            raise ConnectionError(f"connection to {self.peer_addr} closed")

        content = waiter.value[1] if len(waiter.value) > 1 else None
        if not isinstance(content, dict) or not isinstance(content.get("tag"), str):
            raise RequestError(f"{command}: malformed response")
        response = content.get("response")
        if isinstance(response, dict) and response.get("error") is not None:
            raise RequestError(f"{command} err: {json.dumps(response['error'])}")
        return response

    def handle_text(self, text: str) -> Optional[threading.Thread]:
        """Process one incoming text frame.

        Messages and requests are served in a background thread, which is
        returned; other frames are handled in place and ``None`` returned.
        """
        try:
            value = json.loads(text)
        except ValueError as exc:
            log.error("invalid JSON from %s: %s", self.peer_addr, exc)
            return None
        if not isinstance(value, list) or not value or not isinstance(value[0], str):
            log.error("no msg type from %s", self.peer_addr)
            return None
        kind = value[0]
        content = value[1] if len(value) > 1 else None

        log.debug("RECV from %s: %s", self.peer_addr, _short(text))
        self.last_recv = time.monotonic()

        if kind == "justsaying":
            if not isinstance(content, dict) or not isinstance(content.get("subject"), str):
                log.error("malformed justsaying from %s", self.peer_addr)
                return None
            return self._spawn(self._serve_message, content["subject"], content.get("body"))

        if kind == "request":
            if (
                not isinstance(content, dict)
                or not isinstance(content.get("command"), str)
                or not isinstance(content.get("tag"), str)
            ):
                log.error("malformed request from %s", self.peer_addr)
                return None
            return self._spawn(
                self._serve_request, content["command"], content["tag"], content.get("params")
            )

        if kind == "response":
            tag_text = content.get("tag") if isinstance(content, dict) else None
            if not isinstance(tag_text, str):
                log.error("tag is not found for response")
                return None
            try:
                tag = int(tag_text)
            except ValueError:
                log.error("tag %r is not an integer", tag_text)
                return None
            with self._pending_lock:
                waiter = self._pending.get(tag)
            if waiter is not None:
                waiter.resolve(value)
            return None

        log.error("unknown msg type: %s", kind)
        return None

    def start(self) -> threading.Thread:
        """Start reading from the transport in a background thread."""
        if self._reader is not None:
            raise RuntimeError("connection already started")
        self._reader = threading.Thread(target=self._read_loop, daemon=True)
        self._reader.start()
        return self._reader

    def close(self) -> None:
        """Close the transport and fail every request still waiting."""
        self._closed = True
        self._cancel_all()
        try:
            self._transport.close()
        except Exception as exc:  # noqa: BLE001 - closing is best effort
            log.debug("close of %s failed: %s", self.peer_addr, exc)

    def _spawn(self, target: Callable[..., None], *args: Any) -> threading.Thread:
        thread = threading.Thread(target=target, args=args, daemon=True)
        thread.start()
        return thread

    def _serve_message(self, subject: str, body: Any) -> None:
        try:
            self._handler.on_message(self, subject, body)
        except Exception as exc:  # noqa: BLE001
            log.error("%s", exc)

    def _serve_request(self, command: str, tag: str, params: Any) -> None:
        try:
            response = self._handler.on_request(self, command, params)
        except Exception as exc:  # noqa: BLE001
            log.error("on request err=%s", exc)
            self._try_send(self.send_error_response, tag, str(exc))
        else:
            self._try_send(self.send_response, tag, response)

    def _try_send(self, send: Callable[..., None], *args: Any) -> None:
        try:
            send(*args)
        except Exception as exc:  # noqa: BLE001
            log.error("failed to send to %s: %s", self.peer_addr, exc)

    def _cancel_all(self) -> None:
        with self._pending_lock:
            waiters = list(self._pending.values())
        for waiter in waiters:
            waiter.cancel()

    def _read_loop(self) -> None:
        while True:
            try:
                message = self._transport.recv()
            except Exception as exc:  # noqa: BLE001
                log.warning("read_message failed, err=%s", exc)
                self._cancel_all()
                break
            if not isinstance(message, str):
                log.error("only text ws packets are supported")
                continue
            self.handle_text(message)
        try:
            self._handler.on_close(self)
        except Exception as exc:  # noqa: BLE001
            log.error("on_close failed: %s", exc)


class WsServer:
    """Accepts WebSocket connections and serves them with one handler."""

    def __init__(
        self,
        port: int,
        handler: Handler,
        on_connect: Optional[Callable[[WsConnection], None]] = None,
        *,
        host: str = "0.0.0.0",
        data_factory: Optional[Callable[[], Any]] = None,
        request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._host = host
        self._port = port
        self._handler = handler
        self._on_connect = on_connect
        self._data_factory = data_factory
        self._request_timeout = request_timeout
        self._server: Any = None
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        """The bound host and port; the real port once started."""
        if self._server is not None:
            host, port = self._server.socket.getsockname()[:2]
            return host, port
        return self._host, self._port

    @property
    def port(self) -> int:
        return self.address[1]

    def start(self) -> threading.Thread:
        """Bind and serve in a background thread."""
        if self._server is not None:
            raise RuntimeError("server already started")
        try:
            self._server = _ws_serve(self._serve, self._host, self._port)
        except OSError as exc:
            raise OSError(f"can't bind to address {self._host}:{self._port}, err={exc}") from exc
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        if self._thread is not None:
            self._thread.join()
        self._server = None
        self._thread = None

    def _serve(self, websocket: Any) -> None:
        conn = WsConnection(
            websocket,
            self._handler,
            _format_peer(getattr(websocket, "remote_address", None)),
            data=self._data_factory() if self._data_factory else None,
            request_timeout=self._request_timeout,
        )
        if self._on_connect is not None:
            self._on_connect(conn)
        conn._read_loop()


def connect(
    url: str,
    handler: Handler,
    request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
) -> WsConnection:
    """Open a client connection to ``url`` and start reading from it."""
    websocket = _ws_connect(url)
    conn = WsConnection(
        websocket,
        handler,
        _format_peer(getattr(websocket, "remote_address", None)),
        request_timeout=request_timeout,
    )
    conn.start()
    return conn