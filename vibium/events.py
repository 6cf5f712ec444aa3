"""Event payloads and the handles attached to them (dialogs, routes, downloads).

Events arrive on the transport as frames without a command id. A Session
subscription registers a listener that filters frames by method and browsing
context, converts the params into one of the records below and invokes the
user handler on the transport's event worker.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .types import ContinueOptions, FulfillOptions

if TYPE_CHECKING:
    from .bidi import BiDiClient
    from .context import Context

# Method names that carry each event kind. Standard BiDi names first, then the
# daemon's own relayed names.
CONSOLE_EVENTS = frozenset({"log.entryAdded", "vibium:console"})
DIALOG_EVENTS = frozenset({"browsingContext.userPromptOpened", "vibium:dialog"})
DOWNLOAD_EVENTS = frozenset({"browsingContext.downloadWillBegin", "vibium:download"})
REQUEST_EVENTS = frozenset({"network.beforeRequestSent", "vibium:network.request"})
RESPONSE_EVENTS = frozenset({"network.responseCompleted", "vibium:network.response"})
ROUTE_EVENTS = frozenset({"network.beforeRequestSent", "vibium:network.routed"})


def _headers(raw: Any) -> dict[str, str]:
    """Normalize BiDi header lists (``[{name, value: {value}}]``) and plain dicts."""
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    headers: dict[str, str] = {}
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            value = item.get("value")
            if isinstance(value, dict):
                value = value.get("value")
            headers[str(item.get("name") or "")] = "" if value is None else str(value)
    return headers


def _b64(body: bytes | str) -> str:
    data = body.encode() if isinstance(body, str) else body
    return base64.b64encode(data).decode("ascii")


@dataclass
class Request:
    url: str = ""
    method: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    post_data: str = ""
    resource_type: str = ""
    is_navigation_request: bool = False

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> Request:
        req = params.get("request") if isinstance(params.get("request"), dict) else params
        return cls(
            url=str(req.get("url") or ""),
            method=str(req.get("method") or ""),
            headers=_headers(req.get("headers")),
            post_data=str(req.get("postData") or ""),
            resource_type=str(req.get("resourceType") or ""),
            is_navigation_request=bool(params.get("navigation") or req.get("isNavigationRequest")),
        )


@dataclass
class Response:
    url: str = ""
    status: int = 0
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> Response:
        resp = params.get("response") if isinstance(params.get("response"), dict) else params
        return cls(
            url=str(resp.get("url") or ""),
            status=int(resp.get("status") or 0),
            status_text=str(resp.get("statusText") or ""),
            headers=_headers(resp.get("headers")),
        )


@dataclass
class ConsoleMessage:
    type: str = ""
    text: str = ""
    args: list[str] = field(default_factory=list)
    url: str = ""
    line: int = 0

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> ConsoleMessage:
        source = params.get("stackTrace") or {}
        frames = source.get("callFrames") if isinstance(source, dict) else None
        first = frames[0] if isinstance(frames, list) and frames and isinstance(frames[0], dict) else {}
        args = [
            str(a.get("value")) if isinstance(a, dict) else str(a)
            for a in params.get("args") or []
        ]
        return cls(
            type=str(params.get("method") or params.get("level") or params.get("type") or ""),
            text=str(params.get("text") or ""),
            args=args,
            url=str(params.get("url") or first.get("url") or ""),
            line=int(params.get("line") or first.get("lineNumber") or 0),
        )


class Dialog:
    """An open alert/confirm/prompt/beforeunload dialog."""

    def __init__(self, client: BiDiClient, context: str, dialog_id: str, type: str, message: str, default: str = ""):
        self._client = client
        self.context = context
        self.id = dialog_id
        self.type = type
        self.message = message
        self.default = default

    @classmethod
    def from_params(cls, client: BiDiClient, context: str, params: dict[str, Any]) -> Dialog:
        return cls(
            client,
            str(params.get("context") or context),
            str(params.get("id") or ""),
            str(params.get("type") or ""),
            str(params.get("message") or ""),
            str(params.get("defaultValue") or ""),
        )

    def accept(self, prompt_text: str = "", *, ctx: Context | None = None) -> None:
        params: dict[str, Any] = {"context": self.context, "id": self.id, "accept": True}
        if prompt_text:
            params["userText"] = prompt_text
        self._client.send("vibium:dialog.handle", params, ctx=ctx)

    def dismiss(self, *, ctx: Context | None = None) -> None:
        self._client.send("vibium:dialog.handle", {"context": self.context, "id": self.id, "accept": False}, ctx=ctx)


class Route:
    """An intercepted request waiting for fulfill/continue/abort."""

    def __init__(self, client: BiDiClient, context: str, intercept: str, request: Request) -> None:
        self._client = client
        self.context = context
        self.intercept = intercept
        self.request = request

    @classmethod
    def from_params(cls, client: BiDiClient, context: str, params: dict[str, Any]) -> Route:
        intercept = params.get("intercept")
        if not intercept and isinstance(params.get("request"), dict):
            intercept = params["request"].get("request")
        return cls(client, str(params.get("context") or context), str(intercept or ""), Request.from_params(params))

    def _params(self) -> dict[str, Any]:
        return {"context": self.context, "intercept": self.intercept}

    def fulfill(self, opts: FulfillOptions, *, ctx: Context | None = None) -> None:
        params = self._params()
        if opts.status:
            params["status"] = opts.status
        if opts.headers is not None:
            params["headers"] = dict(opts.headers)
        if opts.content_type:
            params["contentType"] = opts.content_type
        if opts.body is not None:
            params["body"] = _b64(opts.body)
        if opts.path:
            params["path"] = opts.path
        self._client.send("vibium:network.fulfill", params, ctx=ctx)

    def continue_(self, opts: ContinueOptions | None = None, *, ctx: Context | None = None) -> None:
        params = self._params()
        if opts is not None:
            if opts.url:
                params["url"] = opts.url
            if opts.method:
                params["method"] = opts.method
            if opts.headers is not None:
                params["headers"] = dict(opts.headers)
            if opts.post_data:
                params["postData"] = opts.post_data
        self._client.send("vibium:network.continue", params, ctx=ctx)

    def abort(self, *, ctx: Context | None = None) -> None:
        self._client.send("vibium:network.abort", self._params(), ctx=ctx)


class Download:
    def __init__(self, client: BiDiClient, context: str, download_id: str, url: str = "", name: str = "") -> None:
        self._client = client
        self.context = context
        self.id = download_id
        self.url = url
        self.suggested_filename = name

    @classmethod
    def from_params(cls, client: BiDiClient, context: str, params: dict[str, Any]) -> Download:
        return cls(
            client,
            str(params.get("context") or context),
            str(params.get("id") or params.get("navigation") or ""),
            str(params.get("url") or ""),
            str(params.get("suggestedFilename") or ""),
        )

    def _params(self, **extra: Any) -> dict[str, Any]:
        return {"context": self.context, "id": self.id, **extra}

    def path(self, *, ctx: Context | None = None) -> str:
        """Local path of the finished download."""
        return str(self._client.send("vibium:download.path", self._params(), ctx=ctx).get("path") or "")

    def save_as(self, path: str, *, ctx: Context | None = None) -> None:
        self._client.send("vibium:download.saveAs", self._params(path=path), ctx=ctx)

    def cancel(self, *, ctx: Context | None = None) -> None:
        self._client.send("vibium:download.cancel", self._params(), ctx=ctx)

    def failure(self, *, ctx: Context | None = None) -> str:
        """Failure reason, or ``""`` if the download succeeded."""
        return str(self._client.send("vibium:download.failure", self._params(), ctx=ctx).get("failure") or "")


def context_listener(
    context: str,
    methods: frozenset[str],
    callback: Callable[[dict[str, Any]], None],
) -> Callable[[dict[str, Any]], None]:
    """Build a transport listener passing matching event params to ``callback``.

    Events that name a different browsing context are ignored; events without
    a context are delivered.
    """

    def listener(event: dict[str, Any]) -> None:
        if event.get("method") not in methods:
            return
        params = event.get("params")
        if not isinstance(params, dict):
            params = {}
        source = params.get("context") or (params.get("source") or {}).get("context")
        if source and source != context:
            return
        callback(params)

    return listener
