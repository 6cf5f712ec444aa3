"""Fake timers installed into the page."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .bidi import BiDiClient
    from .context import Context

TimeLike = datetime | int | float


def to_epoch_ms(value: TimeLike) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return int(value)


class Clock:
    def __init__(self, client: BiDiClient, context: str) -> None:
        self._client = client
        self.context = context

    def _send(self, method: str, ctx: Context | None = None, **params: Any) -> None:
        self._client.send(method, {"context": self.context, **params}, ctx=ctx)

    def install(self, time: TimeLike | None = None, *, ctx: Context | None = None) -> None:
        """Replace the page's timers; optionally start at ``time``."""
        extra = {"time": to_epoch_ms(time)} if time is not None else {}
        self._send("vibium:clock.install", ctx, **extra)

    def fast_forward(self, ticks: int, *, ctx: Context | None = None) -> None:
        """Jump ahead ``ticks`` ms, firing due timers at most once."""
        self._send("vibium:clock.fastForward", ctx, ticks=int(ticks))

    def run_for(self, ticks: int, *, ctx: Context | None = None) -> None:
        """Advance ``ticks`` ms, firing every timer that falls due."""
        self._send("vibium:clock.runFor", ctx, ticks=int(ticks))

    def pause_at(self, time: TimeLike, *, ctx: Context | None = None) -> None:
        self._send("vibium:clock.pauseAt", ctx, time=to_epoch_ms(time))

    def resume(self, *, ctx: Context | None = None) -> None:
        self._send("vibium:clock.resume", ctx)

    def set_fixed_time(self, time: TimeLike, *, ctx: Context | None = None) -> None:
        self._send("vibium:clock.setFixedTime", ctx, time=to_epoch_ms(time))

    def set_system_time(self, time: TimeLike, *, ctx: Context | None = None) -> None:
        self._send("vibium:clock.setSystemTime", ctx, time=to_epoch_ms(time))

    def set_timezone(self, timezone: str, *, ctx: Context | None = None) -> None:
        self._send("vibium:clock.setTimezone", ctx, timezone=timezone)
