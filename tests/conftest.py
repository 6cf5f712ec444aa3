from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterator
from typing import Any

import pytest

Handler = Callable[[dict[str, Any]], Any]


class DaemonError(Exception):
    """Raised by a fake handler to answer with an error frame."""

    def __init__(self, error: str, message: str = "") -> None:
        super().__init__(message)
        self.error = error
        self.message = message


class FakeDaemon:
    """In-process WebSocket peer that answers BiDi-shaped commands.

    ``handlers`` maps a method to ``fn(params) -> result``. A handler may
    return ``None`` to never answer (the command hangs) or raise
    ``DaemonError`` to send an error frame. Unknown methods answer ``{}``.
    """

    Error = DaemonError

    def __init__(self) -> None:
        from websockets.sync.server import serve

        self.handlers: dict[str, Handler] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()
        self._conns: list[Any] = []
        self.connected = threading.Event()
        self._server = serve(self._handle, "127.0.0.1", 0)
        self.port = int(self._server.socket.getsockname()[1])
        self.url = f"ws://127.0.0.1:{self.port}"
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def methods(self) -> list[str]:
        with self._lock:
            return [m for m, _ in self.calls]

    def params_for(self, method: str) -> list[dict[str, Any]]:
        with self._lock:
            return [p for m, p in self.calls if m == method]

    def push(self, method: str, params: dict[str, Any]) -> None:
        """Send an event frame to every connected client."""
        frame = json.dumps({"type": "event", "method": method, "params": params})
        with self._lock:
            conns = list(self._conns)
        for conn in conns:
            conn.send(frame)

    def drop(self) -> None:
        """Close every client connection from the daemon side."""
        with self._lock:
            conns = list(self._conns)
        for conn in conns:
            conn.close()

    def _handle(self, conn: Any) -> None:
        from websockets.exceptions import ConnectionClosed

        with self._lock:
            self._conns.append(conn)
        self.connected.set()
        try:
            for raw in conn:
                msg = json.loads(raw)
                method = msg.get("method", "")
                params = msg.get("params") or {}
                with self._lock:
                    self.calls.append((method, params))
                handler = self.handlers.get(method)
                try:
                    result = handler(params) if handler is not None else {}
                except DaemonError as exc:
                    conn.send(json.dumps({"id": msg["id"], "type": "error", "error": exc.error, "message": exc.message}))
                    continue
                if result is None:
                    continue
                conn.send(json.dumps({"id": msg["id"], "type": "success", "result": result}))
        except ConnectionClosed:
            pass
        finally:
            with self._lock:
                if conn in self._conns:
                    self._conns.remove(conn)

    def close(self) -> None:
        self.drop()
        self._server.shutdown()
        self._thread.join(timeout=5)


@pytest.fixture
def daemon() -> Iterator[FakeDaemon]:
    try:
        import websockets  # noqa: F401
    except Exception:  # noqa: BLE001
        pytest.skip("websockets not installed")
    fake = FakeDaemon()
    try:
        yield fake
    finally:
        fake.close()
