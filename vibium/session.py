"""Page-level control of a browser driven through the clicker daemon.

``launch()`` starts the daemon, connects the transport and returns a
``Session`` bound to the default browsing context::

    with launch(LaunchOptions(headless=True)) as vibe:
        vibe.go("https://example.com")
        vibe.find("a").click()

Sessions for other pages, frames or user contexts share the same transport;
only the session that created the transport shuts it down.
"""

from __future__ import annotations

import base64
import fnmatch
import json
import logging
import re
import threading
from collections.abc import Callable
from contextlib import suppress
from typing import Any

from . import debug
from .bidi import BiDiClient, EventListener, send_timed
from .browser_context import BrowserContext
from .clicker import ClickerProcess, find_clicker
from .clock import Clock
from .config import VibiumConfig
from .context import Context, ensure
from .element import Element
from .errors import (
    BiDiError,
    ConnectionClosedError,
    DeadlineExceededError,
    ElementNotFoundError,
    VibiumError,
    WaitTimeoutError,
)
from .events import (
    CONSOLE_EVENTS,
    DIALOG_EVENTS,
    DOWNLOAD_EVENTS,
    REQUEST_EVENTS,
    RESPONSE_EVENTS,
    ROUTE_EVENTS,
    ConsoleMessage,
    Dialog,
    Download,
    Request,
    Response,
    Route,
    context_listener,
)
from .input import Keyboard, Mouse, Touch
from .types import (
    ElementInfo,
    EmulateMediaOptions,
    FindOptions,
    FrameInfo,
    Geolocation,
    LaunchOptions,
    PDFOptions,
    SetWindowOptions,
    Viewport,
    WindowState,
    _ms,
    _timeout_or_default,
)

logger = logging.getLogger("vibium.session")

NAVIGATION_POLL_INTERVAL = 0.1

# Serialized in the page so the array survives BiDi's remote-value encoding.
_FIND_ALL_FN = """(selector) => {
    const elements = document.querySelectorAll(selector);
    const result = Array.from(elements).map((el, index) => {
        const rect = el.getBoundingClientRect();
        return {
            index: index,
            tag: el.tagName.toLowerCase(),
            text: (el.textContent || '').trim().substring(0, 100),
            box: { x: rect.x, y: rect.y, width: rect.width, height: rect.height }
        };
    });
    return JSON.stringify(result);
}"""


def _route_matches(pattern: str, url: str) -> bool:
    if fnmatch.fnmatchcase(url, pattern):
        return True
    try:
        return re.search(pattern, url) is not None
    except re.error:
        return False


class Session:
    """A browsing context plus the transport (and, for launched sessions, the daemon)."""

    def __init__(
        self,
        client: BiDiClient,
        process: ClickerProcess | None = None,
        *,
        browsing_context: str = "",
        owner: bool = False,
    ) -> None:
        self._client = client
        self._process = process
        self._owner = owner
        self._lock = threading.Lock()
        self._closed = False
        self._context_id = browsing_context
        self._keyboard: Keyboard | None = None
        self._mouse: Mouse | None = None
        self._touch: Touch | None = None
        self._clock: Clock | None = None
        self._routes: dict[str, EventListener] = {}

    # ─────────────────────────────────────────────────────────────────────────
    # Construction / teardown
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def launch(cls, options: LaunchOptions | None = None, *, ctx: Context | None = None) -> Session:
        """Find and start the daemon, then connect to it."""
        options = options or LaunchOptions()
        config = VibiumConfig.from_env()
        ensure(ctx).raise_if_done()

        path = find_clicker(options.executable_path or config.clicker_path)
        process = ClickerProcess.start(
            path,
            port=options.port or config.port,
            headless=options.headless or config.headless,
            startup_timeout=options.startup_timeout or config.startup_timeout,
            ctx=ctx,
        )
        try:
            client = BiDiClient.connect(process.url, timeout=config.connect_timeout)
        except BaseException:
            process.stop()
            raise
        debug.debug("launched", url=process.url, pid=process.pid)
        return cls(client, process, owner=True)

    @classmethod
    def connect(cls, url: str, *, timeout: float = 10.0) -> Session:
        """Attach to an already running daemon; ``quit()`` will not stop it."""
        return cls(BiDiClient.connect(url, timeout=timeout), owner=True)

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc: object) -> None:
        self.quit()

    def __repr__(self) -> str:
        return f"Session(context={self._context_id!r}, closed={self.closed})"

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def client(self) -> BiDiClient:
        return self._client

    def quit(self) -> None:
        """Close the transport and stop the daemon. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if not self._owner:
            return
        self._client.close()
        if self._process is not None:
            self._process.stop()
        debug.debug("quit")

    def _derive(self, browsing_context: str) -> Session:
        return Session(self._client, self._process, browsing_context=browsing_context)

    def _check_open(self) -> None:
        if self.closed:
            raise ConnectionClosedError()

    def context_id(self, *, ctx: Context | None = None) -> str:
        """The browsing context id, fetched from the tree on first use."""
        self._check_open()
        with self._lock:
            if self._context_id:
                return self._context_id
        try:
            result = self._client.send("browsingContext.getTree", {}, ctx=ctx)
        except BiDiError as exc:
            raise VibiumError(f"failed to get browsing context: {exc}") from exc
        contexts = result.get("contexts") or []
        if not contexts:
            raise VibiumError("no browsing context available")
        with self._lock:
            if not self._context_id:
                self._context_id = str(contexts[0].get("context") or "")
            return self._context_id

    def _send(self, method: str, ctx: Context | None = None, **params: Any) -> dict[str, Any]:
        browsing_context = self.context_id(ctx=ctx)
        return self._client.send(method, {"context": browsing_context, **params}, ctx=ctx)

    def _send_timed(
        self, method: str, timeout: float | None, label: str, ctx: Context | None = None, **params: Any
    ) -> dict[str, Any]:
        effective = _timeout_or_default(timeout)
        browsing_context = self.context_id(ctx=ctx)
        params = {"context": browsing_context, **params, "timeout": _ms(effective)}
        return send_timed(self._client, method, params, timeout=effective, selector=label, ctx=ctx)

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def go(self, url: str, *, ctx: Context | None = None) -> None:
        debug.debug("navigating", url=url)
        self._send("browsingContext.navigate", ctx, url=url, wait="complete")
        debug.debug("navigation complete", url=url)

    def reload(self, *, ctx: Context | None = None) -> None:
        self._send("browsingContext.reload", ctx, wait="complete")

    def back(self, *, ctx: Context | None = None) -> None:
        self._send("browsingContext.traverseHistory", ctx, delta=-1)

    def forward(self, *, ctx: Context | None = None) -> None:
        self._send("browsingContext.traverseHistory", ctx, delta=1)

    def wait_for_navigation(self, timeout: float | None = None, *, ctx: Context | None = None) -> None:
        """Poll ``document.readyState`` until it reports ``complete``."""
        self._check_open()
        effective = _timeout_or_default(timeout)
        parent = ensure(ctx)
        deadline = parent.with_timeout(effective)
        while True:
            parent.raise_if_done()
            if deadline.done():
                raise WaitTimeoutError("navigation", effective, "navigation did not complete")
            try:
                if self.evaluate("return document.readyState", ctx=deadline) == "complete":
                    return
            except (BiDiError, DeadlineExceededError):
                pass
            with suppress(DeadlineExceededError):
                deadline.sleep(NAVIGATION_POLL_INTERVAL)

    def wait_for_url(self, pattern: str, timeout: float | None = None, *, ctx: Context | None = None) -> None:
        self._send_timed("vibium:page.waitForURL", timeout, pattern, ctx, pattern=pattern)

    def wait_for_load(self, state: str = "load", timeout: float | None = None, *, ctx: Context | None = None) -> None:
        """Wait for ``load``, ``domcontentloaded`` or ``networkidle``."""
        self._send_timed("vibium:page.waitForLoad", timeout, state, ctx, state=state)

    def wait_for_function(self, fn: str, timeout: float | None = None, *, ctx: Context | None = None) -> None:
        self._send_timed("vibium:page.waitForFunction", timeout, fn, ctx, fn=fn)

    # ─────────────────────────────────────────────────────────────────────────
    # Content and scripting
    # ─────────────────────────────────────────────────────────────────────────

    def evaluate(self, source: str, *, ctx: Context | None = None) -> Any:
        """Run ``source`` as a function body in the page and return its value."""
        params = {
            "functionDeclaration": f"() => {{ {source} }}",
            "target": {"context": self.context_id(ctx=ctx)},
            "arguments": [],
            "awaitPromise": True,
            "resultOwnership": "root",
        }
        result = self._client.send("script.callFunction", params, ctx=ctx)
        if result.get("type") == "exception":
            details = result.get("exceptionDetails") or {}
            raise BiDiError("javascript error", str(details.get("text") or "script threw"))
        return (result.get("result") or {}).get("value")

    def title(self, *, ctx: Context | None = None) -> str:
        value = self.evaluate("return document.title", ctx=ctx)
        return value if isinstance(value, str) else ""

    def url(self, *, ctx: Context | None = None) -> str:
        value = self.evaluate("return window.location.href", ctx=ctx)
        return value if isinstance(value, str) else ""

    def content(self, *, ctx: Context | None = None) -> str:
        return str(self._send("vibium:page.content", ctx).get("content") or "")

    def set_content(self, html: str, *, ctx: Context | None = None) -> None:
        self._send("vibium:page.setContent", ctx, html=html)

    def screenshot(self, *, ctx: Context | None = None) -> bytes:
        """PNG bytes of the viewport."""
        result = self._send("browsingContext.captureScreenshot", ctx)
        return base64.b64decode(result.get("data") or "")

    def pdf(self, options: PDFOptions | None = None, *, ctx: Context | None = None) -> bytes:
        params = options.to_params() if options else {}
        result = self._send("vibium:page.pdf", ctx, **params)
        data = base64.b64decode(result.get("data") or "")
        if options is not None and options.path:
            with open(options.path, "wb") as fh:
                fh.write(data)
        return data

    def add_script(self, source: str, *, ctx: Context | None = None) -> None:
        self._send("vibium:page.addScript", ctx, source=source)

    def add_style(self, source: str, *, ctx: Context | None = None) -> None:
        self._send("vibium:page.addStyle", ctx, source=source)

    def expose(self, name: str, *, ctx: Context | None = None) -> None:
        """Expose ``window[name]`` to the page; calls arrive as events."""
        self._send("vibium:page.expose", ctx, name=name)

    def accessibility_tree(self, *, ctx: Context | None = None) -> dict[str, Any]:
        return self._send("vibium:page.a11yTree", ctx)

    # ─────────────────────────────────────────────────────────────────────────
    # Viewport, window, emulation
    # ─────────────────────────────────────────────────────────────────────────

    def viewport(self, *, ctx: Context | None = None) -> Viewport:
        return Viewport.from_dict(self._send("vibium:page.viewport", ctx))

    def set_viewport(self, viewport: Viewport, *, ctx: Context | None = None) -> None:
        self._send("vibium:page.setViewport", ctx, width=viewport.width, height=viewport.height)

    def window(self, *, ctx: Context | None = None) -> WindowState:
        return WindowState.from_dict(self._send("vibium:page.window", ctx))

    def set_window(self, options: SetWindowOptions, *, ctx: Context | None = None) -> None:
        self._send("vibium:page.setWindow", ctx, **options.to_params())

    def emulate_media(self, options: EmulateMediaOptions, *, ctx: Context | None = None) -> None:
        self._send("vibium:page.emulateMedia", ctx, **options.to_params())

    def set_geolocation(self, coords: Geolocation, *, ctx: Context | None = None) -> None:
        params: dict[str, Any] = {"latitude": coords.latitude, "longitude": coords.longitude}
        if coords.accuracy:
            params["accuracy"] = coords.accuracy
        self._send("vibium:page.setGeolocation", ctx, **params)

    # ─────────────────────────────────────────────────────────────────────────
    # Pages, frames, contexts
    # ─────────────────────────────────────────────────────────────────────────

    def frames(self, *, ctx: Context | None = None) -> list[FrameInfo]:
        result = self._send("vibium:page.frames", ctx)
        return [
            FrameInfo(url=str(f.get("url") or ""), name=str(f.get("name") or ""))
            for f in result.get("frames") or []
            if isinstance(f, dict)
        ]

    def frame(self, name_or_url: str, *, ctx: Context | None = None) -> Session:
        result = self._send("vibium:page.frame", ctx, nameOrURL=name_or_url)
        return self._derive(str(result.get("context") or ""))

    def new_page(self, *, ctx: Context | None = None) -> Session:
        self._check_open()
        result = self._client.send("browsingContext.create", {"type": "tab"}, ctx=ctx)
        return self._derive(str(result.get("context") or ""))

    def pages(self, *, ctx: Context | None = None) -> list[Session]:
        self._check_open()
        result = self._client.send("browsingContext.getTree", {}, ctx=ctx)
        return [self._derive(str(c.get("context") or "")) for c in result.get("contexts") or [] if isinstance(c, dict)]

    def new_context(self, *, ctx: Context | None = None) -> BrowserContext:
        """Create an isolated user context (separate cookies and storage)."""
        self._check_open()
        result = self._client.send("browser.createUserContext", {}, ctx=ctx)
        return BrowserContext(self._client, str(result.get("userContext") or ""))

    def bring_to_front(self, *, ctx: Context | None = None) -> None:
        self._send("browsingContext.activate", ctx)

    def close(self, *, ctx: Context | None = None) -> None:
        """Close this page; the browser keeps running."""
        if self.closed:
            return
        self._send("browsingContext.close", ctx)

    def browser_version(self, *, ctx: Context | None = None) -> str:
        self._check_open()
        return str(self._client.send("browser.getUserContexts", {}, ctx=ctx).get("version") or "")

    # ─────────────────────────────────────────────────────────────────────────
    # Finding elements
    # ─────────────────────────────────────────────────────────────────────────

    def find(self, selector: str, options: FindOptions | None = None, *, ctx: Context | None = None) -> Element:
        """Wait for ``selector`` (plus any semantic filters) and return a handle to it."""
        options = options or FindOptions()
        debug.debug("finding element", selector=selector)
        extra = options.semantic_params()
        try:
            result = self._send_timed("vibium:find", options.timeout, selector, ctx, selector=selector, **extra)
        except BiDiError as exc:
            raise ElementNotFoundError(selector) from exc
        info = ElementInfo.from_dict(result)
        debug.debug("element found", selector=selector, tag=info.tag)
        return Element(self._client, self.context_id(ctx=ctx), selector, info)

    def find_all(self, selector: str, *, ctx: Context | None = None) -> list[Element]:
        """Every match, in document order, each addressed by an ``:nth-of-type`` selector."""
        browsing_context = self.context_id(ctx=ctx)
        params = {
            "functionDeclaration": _FIND_ALL_FN,
            "target": {"context": browsing_context},
            "arguments": [{"type": "string", "value": selector}],
            "awaitPromise": False,
            "resultOwnership": "root",
        }
        result = self._client.send("script.callFunction", params, ctx=ctx)
        raw = (result.get("result") or {}).get("value") or "[]"
        try:
            items = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise VibiumError(f"failed to parse elements: {exc}") from exc
        elements = [
            Element(
                self._client,
                browsing_context,
                f"{selector}:nth-of-type({int(item.get('index') or 0) + 1})",
                ElementInfo.from_dict(item),
            )
            for item in items
            if isinstance(item, dict)
        ]
        debug.debug("elements found", selector=selector, count=len(elements))
        return elements

    def must_find(self, selector: str, *, ctx: Context | None = None) -> Element:
        """``find`` for scripts and examples; library code should call ``find``."""
        return self.find(selector, ctx=ctx)

    # ─────────────────────────────────────────────────────────────────────────
    # Input devices and clock
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def keyboard(self) -> Keyboard:
        if self._keyboard is None:
            self._keyboard = Keyboard(self._client, self.context_id())
        return self._keyboard

    @property
    def mouse(self) -> Mouse:
        if self._mouse is None:
            self._mouse = Mouse(self._client, self.context_id())
        return self._mouse

    @property
    def touch(self) -> Touch:
        if self._touch is None:
            self._touch = Touch(self._client, self.context_id())
        return self._touch

    @property
    def clock(self) -> Clock:
        if self._clock is None:
            self._clock = Clock(self._client, self.context_id())
        return self._clock

    # ─────────────────────────────────────────────────────────────────────────
    # Network and events
    # ─────────────────────────────────────────────────────────────────────────

    def _listen(self, methods: frozenset[str], callback: Callable[[dict[str, Any]], None]) -> EventListener:
        listener = context_listener(self.context_id(), methods, callback)
        self._client.add_event_listener(listener)
        return listener

    def route(
        self, pattern: str, handler: Callable[[Route], None] | None = None, *, ctx: Context | None = None
    ) -> None:
        """Intercept requests whose URL matches ``pattern`` (glob or regex).

        Each intercepted request must be fulfilled, continued or aborted by
        ``handler``; without a handler the daemon applies its default.
        """
        self._send("vibium:network.route", ctx, pattern=pattern)
        if handler is None:
            return
        browsing_context = self.context_id(ctx=ctx)

        def on_routed(params: dict[str, Any]) -> None:
            if params.get("isBlocked") is False:
                return
            route = Route.from_params(self._client, browsing_context, params)
            if _route_matches(pattern, route.request.url):
                handler(route)

        previous = self._routes.pop(pattern, None)
        if previous is not None:
            self._client.remove_event_listener(previous)
        self._routes[pattern] = self._listen(ROUTE_EVENTS, on_routed)

    def unroute(self, pattern: str, *, ctx: Context | None = None) -> None:
        listener = self._routes.pop(pattern, None)
        if listener is not None:
            self._client.remove_event_listener(listener)
        self._send("vibium:network.unroute", ctx, pattern=pattern)

    def set_extra_http_headers(self, headers: dict[str, str], *, ctx: Context | None = None) -> None:
        self._send("vibium:network.setHeaders", ctx, headers=dict(headers))

    def on_request(self, handler: Callable[[Request], None] | None = None, *, ctx: Context | None = None) -> None:
        self._send("vibium:network.onRequest", ctx)
        if handler is not None:
            self._listen(REQUEST_EVENTS, lambda params: handler(Request.from_params(params)))

    def on_response(self, handler: Callable[[Response], None] | None = None, *, ctx: Context | None = None) -> None:
        self._send("vibium:network.onResponse", ctx)
        if handler is not None:
            self._listen(RESPONSE_EVENTS, lambda params: handler(Response.from_params(params)))

    def on_console(
        self, handler: Callable[[ConsoleMessage], None] | None = None, *, ctx: Context | None = None
    ) -> None:
        self._send("vibium:console.on", ctx)
        if handler is not None:
            self._listen(CONSOLE_EVENTS, lambda params: handler(ConsoleMessage.from_params(params)))

    def on_dialog(self, handler: Callable[[Dialog], None] | None = None, *, ctx: Context | None = None) -> None:
        """Handle alert/confirm/prompt dialogs; the handler must accept or dismiss."""
        self._send("vibium:dialog.on", ctx)
        if handler is not None:
            browsing_context = self.context_id(ctx=ctx)
            self._listen(
                DIALOG_EVENTS,
                lambda params: handler(Dialog.from_params(self._client, browsing_context, params)),
            )

    def on_download(self, handler: Callable[[Download], None] | None = None, *, ctx: Context | None = None) -> None:
        self._send("vibium:download.on", ctx)
        if handler is not None:
            browsing_context = self.context_id(ctx=ctx)
            self._listen(
                DOWNLOAD_EVENTS,
                lambda params: handler(Download.from_params(self._client, browsing_context, params)),
            )


def launch(options: LaunchOptions | None = None, *, ctx: Context | None = None) -> Session:
    """Start a browser and return a Session on its first page."""
    return Session.launch(options, ctx=ctx)

