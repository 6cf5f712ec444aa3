"""WebDriver BiDi transport.

One WebSocket is shared by any number of threads. Each ``send`` parks a
``Future`` in the pending table keyed by its command id; a single receive
thread routes response frames back by id. Frames that match no waiter are
events: they are handed to registered listeners (on a dispatch worker, never
on the receive thread) or dropped.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import suppress
from typing import Any

import websocket

from . import debug
from .context import Context, ensure
from .errors import BiDiError, ConnectionClosedError, ConnectionFailedError, DeadlineExceededError, WaitTimeoutError

logger = logging.getLogger("vibium.bidi")

EventListener = Callable[[dict[str, Any]], None]

# Upper bound on how long a waiter blocks before re-checking its Context.
_WAIT_SLICE = 0.05


class BiDiClient:
    """Multiplexed request/response channel over a single WebSocket."""

    def __init__(self, ws: Any, url: str = "") -> None:
        self._ws = ws
        self.url = url
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._pending: dict[int, Future] = {}
        self._next_id = 1
        self._closed = False
        self._listeners: list[EventListener] = []
        self._dispatcher: ThreadPoolExecutor | None = None
        self._thread = threading.Thread(target=self._recv_loop, name="vibium-bidi-recv", daemon=True)
        self._thread.start()

    @classmethod
    def connect(cls, url: str, *, timeout: float = 10.0) -> BiDiClient:
        """Dial ``url`` and start the receive loop."""
        try:
            ws = websocket.create_connection(url, timeout=timeout, enable_multithread=True)
        except Exception as exc:  # noqa: BLE001
            raise ConnectionFailedError(url, exc) from exc
        # Reads block until a frame arrives or the socket is torn down.
        ws.settimeout(None)
        debug.debug("connected", url=url)
        return cls(ws, url)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    # ─────────────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────────────

    def send(self, method: str, params: dict[str, Any] | None = None, *, ctx: Context | None = None) -> dict[str, Any]:
        """Send a command and block until its response, cancellation, or close.

        Returns the response's ``result`` payload.
        """
        ctx = ensure(ctx)
        ctx.raise_if_done()

        fut: Future = Future()
        with self._lock:
            if self._closed:
                raise ConnectionClosedError()
            msg_id = self._next_id
            self._next_id += 1
            self._pending[msg_id] = fut

        try:
            frame = json.dumps({"id": msg_id, "method": method, "params": params or {}})
            debug.debug("send", id=msg_id, method=method)
            with self._write_lock:
                try:
                    self._ws.send(frame)
                except Exception as exc:  # noqa: BLE001
                    raise ConnectionClosedError(f"connection closed: send failed: {exc}") from exc
            return self._wait(fut, ctx)
        finally:
            with self._lock:
                self._pending.pop(msg_id, None)

    def _wait(self, fut: Future, ctx: Context) -> dict[str, Any]:
        while True:
            err = ctx.error()
            if err is not None:
                raise err
            remaining = ctx.remaining()
            timeout = _WAIT_SLICE if remaining is None else min(_WAIT_SLICE, remaining)
            try:
                return fut.result(timeout=timeout)
            except FutureTimeoutError:
                continue

    # ─────────────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────────────

    def add_event_listener(self, listener: EventListener) -> None:
        with self._lock:
            if self._closed:
                raise ConnectionClosedError()
            self._listeners.append(listener)
            if self._dispatcher is None:
                self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vibium-bidi-events")

    def remove_event_listener(self, listener: EventListener) -> None:
        with self._lock, suppress(ValueError):
            self._listeners.remove(listener)

    def _emit(self, event: dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("event listener failed for %s", event.get("method"))

    # ─────────────────────────────────────────────────────────────────────────
    # Receive side
    # ─────────────────────────────────────────────────────────────────────────

    def _recv_loop(self) -> None:
        while True:
            try:
                raw = self._ws.recv()
            except Exception as exc:  # noqa: BLE001
                if not self.closed:
                    logger.debug("bidi read failed: %s", exc)
                break
            if raw is None or raw == "":
                # websocket-client returns "" once a close frame arrives.
                break
            self._dispatch(raw)
        self.close()

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("dropping malformed frame")
            return
        if not isinstance(data, dict):
            return

        msg_id = data.get("id")
        fut: Future | None = None
        if isinstance(msg_id, int) and not isinstance(msg_id, bool):
            with self._lock:
                fut = self._pending.get(msg_id)

        if fut is None:
            self._dispatch_event(data)
            return

        debug.debug("recv", id=msg_id, type=data.get("type"))
        if data.get("type") == "error" or data.get("error"):
            err = BiDiError(str(data.get("error") or "unknown error"), str(data.get("message") or ""))
            with suppress(Exception):
                fut.set_exception(err)
            return
        result = data.get("result")
        with suppress(Exception):
            fut.set_result(result if isinstance(result, dict) else {} if result is None else {"value": result})

    def _dispatch_event(self, data: dict[str, Any]) -> None:
        if not isinstance(data.get("method"), str):
            return
        with self._lock:
            dispatcher = self._dispatcher if self._listeners else None
        if dispatcher is None:
            return
        with suppress(RuntimeError):
            dispatcher.submit(self._emit, data)

    # ─────────────────────────────────────────────────────────────────────────
    # Shutdown
    # ─────────────────────────────────────────────────────────────────────────

    def close(self) -> None:
        """Idempotent: fail every outstanding waiter, then tear down the socket."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending = list(self._pending.values())
            self._pending.clear()
            dispatcher = self._dispatcher
            self._dispatcher = None
            self._listeners.clear()

        for fut in pending:
            with suppress(Exception):
                if not fut.done():
                    fut.set_exception(ConnectionClosedError())

        if dispatcher is not None:
            dispatcher.shutdown(wait=False, cancel_futures=True)

        with suppress(Exception):
            self._ws.send_close()
        # Shutting the raw socket down unblocks the receive thread's recv().
        with suppress(Exception):
            self._ws.abort()
        with suppress(Exception):
            self._ws.shutdown()
        debug.debug("closed", url=self.url)


def send_timed(
    client: BiDiClient,
    method: str,
    params: dict[str, Any],
    *,
    timeout: float,
    selector: str,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Send under a child deadline of ``timeout`` seconds.

    Expiry of that child deadline surfaces as ``WaitTimeoutError``; the
    caller's own cancellation propagates unchanged.
    """
    parent = ensure(ctx)
    child = parent.with_timeout(timeout)
    try:
        return client.send(method, params, ctx=child)
    except DeadlineExceededError:
        if parent.error() is not None:
            raise
        raise WaitTimeoutError(selector, timeout, f"{method} did not complete") from None
