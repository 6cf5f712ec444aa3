"""Selector-scoped element handles.

An ``Element`` is a plain value: the browsing context, the selector and the
info captured when it was found. No node reference is held, so every call
re-resolves the selector on the daemon side, which also runs the
actionability checks (visible, stable, receives events, enabled, editable)
before input operations.
"""

from __future__ import annotations

import base64
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from .bidi import send_timed
from .context import Context, ensure
from .errors import BiDiError, DeadlineExceededError, WaitTimeoutError
from .types import ActionOptions, BoundingBox, ElementInfo, SelectOptionValues, _ms, _timeout_or_default

if TYPE_CHECKING:
    from .bidi import BiDiClient

POLL_INTERVAL = 0.1

_PRESENCE_FN = "(selector) => document.querySelector(selector) !== null"


class Element:
    def __init__(self, client: BiDiClient, context: str, selector: str, info: ElementInfo | None = None) -> None:
        self._client = client
        self.context = context
        self.selector = selector
        self.info = info or ElementInfo()

    def __repr__(self) -> str:
        return f"Element(selector={self.selector!r}, tag={self.info.tag!r})"

    def center(self) -> tuple[float, float]:
        """Midpoint of the box captured at find time (no round trip)."""
        box = self.info.box
        return box.x + box.width / 2, box.y + box.height / 2

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _base(self) -> dict[str, Any]:
        return {"context": self.context, "selector": self.selector}

    def _action(
        self,
        method: str,
        opts: ActionOptions | None,
        extra: dict[str, Any] | None = None,
        *,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        timeout = (opts or ActionOptions()).effective_timeout
        params = self._base()
        if extra:
            params.update(extra)
        params["timeout"] = _ms(timeout)
        return send_timed(self._client, method, params, timeout=timeout, selector=self.selector, ctx=ctx)

    def _query(self, method: str, extra: dict[str, Any] | None = None, *, ctx: Context | None = None) -> dict[str, Any]:
        params = self._base()
        if extra:
            params.update(extra)
        return self._client.send(method, params, ctx=ctx)

    # ─────────────────────────────────────────────────────────────────────────
    # Actions
    # ─────────────────────────────────────────────────────────────────────────

    def click(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:click", opts, ctx=ctx)

    def dblclick(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:dblclick", opts, ctx=ctx)

    def type(self, text: str, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        """Type ``text`` key by key into the element."""
        self._action("vibium:type", opts, {"text": text}, ctx=ctx)

    def fill(self, value: str, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        """Clear the element and set its value in one step."""
        self._action("vibium:fill", opts, {"value": value}, ctx=ctx)

    def press(self, key: str, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:press", opts, {"key": key}, ctx=ctx)

    def clear(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:clear", opts, ctx=ctx)

    def check(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:check", opts, ctx=ctx)

    def uncheck(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:uncheck", opts, ctx=ctx)

    def select_option(
        self, values: SelectOptionValues, opts: ActionOptions | None = None, *, ctx: Context | None = None
    ) -> None:
        self._action("vibium:selectOption", opts, values.to_params(), ctx=ctx)

    def focus(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:focus", opts, ctx=ctx)

    def hover(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:hover", opts, ctx=ctx)

    def scroll_into_view(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:scrollIntoView", opts, ctx=ctx)

    def tap(self, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:tap", opts, ctx=ctx)

    def drag_to(self, target: Element, opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        self._action("vibium:dragTo", opts, {"targetSelector": target.selector}, ctx=ctx)

    def set_files(self, files: list[str], opts: ActionOptions | None = None, *, ctx: Context | None = None) -> None:
        """Set the files of an ``<input type=file>``."""
        self._action("vibium:el.setFiles", opts, {"files": list(files)}, ctx=ctx)

    def dispatch_event(
        self, event_type: str, event_init: dict[str, Any] | None = None, *, ctx: Context | None = None
    ) -> None:
        extra: dict[str, Any] = {"eventType": event_type}
        if event_init is not None:
            extra["eventInit"] = event_init
        self._query("vibium:dispatchEvent", extra, ctx=ctx)

    def screenshot(self, *, ctx: Context | None = None) -> bytes:
        result = self._query("vibium:el.screenshot", ctx=ctx)
        return base64.b64decode(result.get("data") or "")

    def wait_until(self, state: str, timeout: float | None = None, *, ctx: Context | None = None) -> None:
        """Wait for ``state`` (attached, detached, visible, hidden) on the daemon side."""
        effective = _timeout_or_default(timeout)
        params = {**self._base(), "state": state, "timeout": _ms(effective)}
        send_timed(self._client, "vibium:el.waitFor", params, timeout=effective, selector=self.selector, ctx=ctx)

    def eval(self, fn: str, *args: Any, ctx: Context | None = None) -> Any:
        """Run ``fn`` with the element as its first argument."""
        extra: dict[str, Any] = {"fn": fn}
        if args:
            extra["args"] = list(args)
        return self._query("vibium:el.eval", extra, ctx=ctx).get("value")

    def wait_for(self, timeout: float | None = None, *, ctx: Context | None = None) -> None:
        """Poll every 100ms until the selector matches something."""
        effective = _timeout_or_default(timeout)
        parent = ensure(ctx)
        deadline = parent.with_timeout(effective)
        params = {
            "functionDeclaration": _PRESENCE_FN,
            "target": {"context": self.context},
            "arguments": [{"type": "string", "value": self.selector}],
            "awaitPromise": False,
            "resultOwnership": "root",
        }
        while True:
            parent.raise_if_done()
            if deadline.done():
                raise WaitTimeoutError(self.selector, effective, "element did not appear")
            try:
                result = self._client.send("script.callFunction", params, ctx=deadline)
                if (result.get("result") or {}).get("value") is True:
                    return
            except (BiDiError, DeadlineExceededError):
                pass
            with suppress(DeadlineExceededError):
                deadline.sleep(POLL_INTERVAL)

    # ─────────────────────────────────────────────────────────────────────────
    # State queries
    # ─────────────────────────────────────────────────────────────────────────

    def text(self, *, ctx: Context | None = None) -> str:
        return str(self._query("vibium:el.text", ctx=ctx).get("text") or "").strip()

    def get_attribute(self, name: str, *, ctx: Context | None = None) -> str:
        value = self._query("vibium:el.attr", {"name": name}, ctx=ctx).get("value")
        return "" if value is None else str(value)

    def bounding_box(self, *, ctx: Context | None = None) -> BoundingBox:
        return BoundingBox.from_dict(self._query("vibium:el.bounds", ctx=ctx))

    def value(self, *, ctx: Context | None = None) -> str:
        return str(self._query("vibium:el.value", ctx=ctx).get("value") or "")

    def inner_html(self, *, ctx: Context | None = None) -> str:
        return str(self._query("vibium:el.html", ctx=ctx).get("html") or "")

    def inner_text(self, *, ctx: Context | None = None) -> str:
        return str(self._query("vibium:el.innerText", ctx=ctx).get("text") or "")

    def is_visible(self, *, ctx: Context | None = None) -> bool:
        return bool(self._query("vibium:el.isVisible", ctx=ctx).get("visible"))

    def is_hidden(self, *, ctx: Context | None = None) -> bool:
        return bool(self._query("vibium:el.isHidden", ctx=ctx).get("hidden"))

    def is_enabled(self, *, ctx: Context | None = None) -> bool:
        return bool(self._query("vibium:el.isEnabled", ctx=ctx).get("enabled"))

    def is_checked(self, *, ctx: Context | None = None) -> bool:
        return bool(self._query("vibium:el.isChecked", ctx=ctx).get("checked"))

    def is_editable(self, *, ctx: Context | None = None) -> bool:
        return bool(self._query("vibium:el.isEditable", ctx=ctx).get("editable"))

    def role(self, *, ctx: Context | None = None) -> str:
        return str(self._query("vibium:el.role", ctx=ctx).get("role") or "")

    def label(self, *, ctx: Context | None = None) -> str:
        return str(self._query("vibium:el.label", ctx=ctx).get("label") or "")
