"""HTTP activities built on urllib."""

from __future__ import annotations

import json
import os
import ssl
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import HTTPSHandler, Request, build_opener

from ...context import Context
from ...errors import VibiumError
from .base import Activity, Environment, get_bool, get_map, get_string_default, get_timeout, require_string

USER_AGENT = "vibium-rpa/1.0"

_JSON_CONTENT_TYPES = frozenset({"application/json", "application/json; charset=utf-8", "text/json"})


class HttpActivityError(VibiumError):
    pass


def _is_json(content_type: str) -> bool:
    return content_type.strip().lower() in _JSON_CONTENT_TYPES


def _open(req: Request, timeout: float):  # noqa: ANN202
    """Open ``req``; 4xx/5xx come back as responses rather than exceptions."""
    opener = build_opener(HTTPSHandler(context=ssl.create_default_context()))
    try:
        return opener.open(req, timeout=timeout)
    except HTTPError as exc:
        return exc
    except (TimeoutError, URLError) as exc:
        raise HttpActivityError(f"request failed: {exc}") from exc


def _request(url: str, params: dict[str, Any], *, method: str = "GET", data: bytes | None = None) -> Request:
    req = Request(url, data=data, method=method, headers={"User-Agent": USER_AGENT})
    for key, value in get_map(params, "headers").items():
        if isinstance(value, str):
            req.add_header(key, value)
    return req


def _response_dict(resp: Any, body: bytes, want_json: bool) -> dict[str, Any]:
    status = int(getattr(resp, "status", None) or resp.getcode())
    reason = getattr(resp, "reason", "") or ""
    headers = {key: value for key, value in resp.headers.items()}
    result: dict[str, Any] = {
        "status": status,
        "statusText": f"{status} {reason}".strip(),
        "headers": headers,
    }
    if want_json or _is_json(resp.headers.get("Content-Type", "")):
        try:
            result["body"] = json.loads(body)
            return result
        except ValueError:
            pass
    result["body"] = body.decode("utf-8", errors="replace")
    return result


def _bounded_timeout(ctx: Context, timeout: float) -> float:
    remaining = ctx.remaining()
    return timeout if remaining is None else max(0.001, min(timeout, remaining))


class Get(Activity):
    name = "http.get"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        url = require_string(params, "url")
        ctx.raise_if_done()
        timeout = _bounded_timeout(ctx, get_timeout(params))
        with _open(_request(url, params), timeout) as resp:
            body = resp.read()
            return _response_dict(resp, body, get_bool(params, "json"))


class Post(Activity):
    """POST ``body``; non-string bodies are sent as JSON."""

    name = "http.post"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        url = require_string(params, "url")
        content_type = get_string_default(params, "contentType", "application/json")
        body = params.get("body")
        data: bytes | None = None
        if isinstance(body, str):
            data = body.encode("utf-8")
        elif isinstance(body, bytes):
            data = body
        elif body is not None:
            data = json.dumps(body).encode("utf-8")
            content_type = "application/json"

        ctx.raise_if_done()
        req = _request(url, params, method="POST", data=data)
        req.add_header("Content-Type", content_type)
        timeout = _bounded_timeout(ctx, get_timeout(params))
        with _open(req, timeout) as resp:
            return _response_dict(resp, resp.read(), get_bool(params, "json"))


class Download(Activity):
    name = "http.download"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        url = require_string(params, "url")
        path = env.resolve_path(require_string(params, "path"))
        ctx.raise_if_done()
        timeout = _bounded_timeout(ctx, get_timeout(params, default_ms=60000))
        with _open(_request(url, params), timeout) as resp:
            status = int(getattr(resp, "status", None) or resp.getcode())
            if status >= 400:
                raise HttpActivityError(f"download failed: HTTP {status}")
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            written = 0
            with open(path, "wb") as fh:
                while chunk := resp.read(64 * 1024):
                    fh.write(chunk)
                    written += len(chunk)
        return {"path": path, "bytes": written}


ACTIVITIES: tuple[Activity, ...] = (Get(), Post(), Download())
