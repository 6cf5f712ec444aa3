"""Page-level input devices bound to a browsing context."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .types import ClickOptions

if TYPE_CHECKING:
    from .bidi import BiDiClient
    from .context import Context


class _Device:
    def __init__(self, client: BiDiClient, context: str) -> None:
        self._client = client
        self.context = context

    def _send(self, method: str, ctx: Context | None = None, **params: Any) -> None:
        self._client.send(method, {"context": self.context, **params}, ctx=ctx)


class Keyboard(_Device):
    def press(self, key: str, *, ctx: Context | None = None) -> None:
        """Press and release ``key`` (e.g. ``"Enter"``, ``"Control+a"``)."""
        self._send("vibium:keyboard.press", ctx, key=key)

    def down(self, key: str, *, ctx: Context | None = None) -> None:
        self._send("vibium:keyboard.down", ctx, key=key)

    def up(self, key: str, *, ctx: Context | None = None) -> None:
        self._send("vibium:keyboard.up", ctx, key=key)

    def type(self, text: str, *, ctx: Context | None = None) -> None:
        self._send("vibium:keyboard.type", ctx, text=text)

    def insert_text(self, text: str, *, ctx: Context | None = None) -> None:
        """Insert ``text`` without emitting key events."""
        self._send("vibium:keyboard.insertText", ctx, text=text)


class Mouse(_Device):
    def click(self, x: float, y: float, opts: ClickOptions | None = None, *, ctx: Context | None = None) -> None:
        extra = opts.to_params() if opts else {}
        self._send("vibium:mouse.click", ctx, x=x, y=y, **extra)

    def dblclick(self, x: float, y: float, opts: ClickOptions | None = None, *, ctx: Context | None = None) -> None:
        extra = opts.to_params() if opts else {}
        extra["clickCount"] = 2
        self._send("vibium:mouse.click", ctx, x=x, y=y, **extra)

    def move(self, x: float, y: float, *, ctx: Context | None = None) -> None:
        self._send("vibium:mouse.move", ctx, x=x, y=y)

    def down(self, button: str = "", *, ctx: Context | None = None) -> None:
        extra = {"button": button} if button else {}
        self._send("vibium:mouse.down", ctx, **extra)

    def up(self, button: str = "", *, ctx: Context | None = None) -> None:
        extra = {"button": button} if button else {}
        self._send("vibium:mouse.up", ctx, **extra)

    def wheel(self, delta_x: float, delta_y: float, *, ctx: Context | None = None) -> None:
        self._send("vibium:mouse.wheel", ctx, deltaX=delta_x, deltaY=delta_y)


class Touch(_Device):
    def tap(self, x: float, y: float, *, ctx: Context | None = None) -> None:
        self._send("vibium:touch.tap", ctx, x=x, y=y)

    def swipe(self, start_x: float, start_y: float, end_x: float, end_y: float, *, ctx: Context | None = None) -> None:
        self._send("vibium:touch.swipe", ctx, startX=start_x, startY=start_y, endX=end_x, endY=end_y)

    def pinch(self, x: float, y: float, scale: float, *, ctx: Context | None = None) -> None:
        """Pinch around ``(x, y)``; ``scale`` < 1 zooms out, > 1 zooms in."""
        self._send("vibium:touch.pinch", ctx, x=x, y=y, scale=scale)
