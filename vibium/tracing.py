from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

from .types import TracingStartOptions

if TYPE_CHECKING:
    from .bidi import BiDiClient
    from .context import Context


class Tracing:
    """Trace recording scoped to one user context."""

    def __init__(self, client: BiDiClient, user_context: str) -> None:
        self._client = client
        self.user_context = user_context

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {"userContext": self.user_context}
        params.update({key: value for key, value in extra.items() if value})
        return params

    def start(self, opts: TracingStartOptions | None = None, *, ctx: Context | None = None) -> None:
        params = self._params(**(opts.to_params() if opts else {}))
        self._client.send("vibium:tracing.start", params, ctx=ctx)

    def stop(self, path: str = "", *, ctx: Context | None = None) -> bytes:
        """Stop tracing and return the trace archive (also written to ``path`` when set)."""
        result = self._client.send("vibium:tracing.stop", self._params(path=path), ctx=ctx)
        return base64.b64decode(result.get("data") or "")

    def start_chunk(self, name: str = "", title: str = "", *, ctx: Context | None = None) -> None:
        self._client.send("vibium:tracing.startChunk", self._params(name=name, title=title), ctx=ctx)

    def stop_chunk(self, name: str = "", title: str = "", *, ctx: Context | None = None) -> bytes:
        result = self._client.send("vibium:tracing.stopChunk", self._params(name=name, title=title), ctx=ctx)
        return base64.b64decode(result.get("data") or "")

    def start_group(self, name: str, location: str = "", *, ctx: Context | None = None) -> None:
        self._client.send("vibium:tracing.startGroup", self._params(name=name, location=location), ctx=ctx)

    def stop_group(self, *, ctx: Context | None = None) -> None:
        self._client.send("vibium:tracing.stopGroup", self._params(), ctx=ctx)
