"""Local filesystem activities. Relative paths are taken from the run's work dir."""

from __future__ import annotations

import json
import os
from typing import Any

from ...context import Context
from ..variables import stringify
from .base import Activity, Environment, get_bool, get_int_default, get_string_default, require_string


class Read(Activity):
    name = "file.read"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        path = env.resolve_path(require_string(params, "path"))
        with open(path, encoding="utf-8") as fh:
            data = fh.read()
        if get_bool(params, "json"):
            return json.loads(data)
        return data


class Write(Activity):
    """Write ``content`` as text or indented JSON, creating parent directories."""

    name = "file.write"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        path = env.resolve_path(require_string(params, "path"))
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

        content = params.get("content")
        if get_string_default(params, "format", "text") == "json":
            data = json.dumps(content, indent=2)
        elif content is None:
            data = ""
        else:
            data = stringify(content)

        encoded = data.encode("utf-8")
        flags = os.O_WRONLY | os.O_CREAT | (os.O_APPEND if get_bool(params, "append") else os.O_TRUNC)
        fd = os.open(path, flags, get_int_default(params, "mode", 0o644))
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        return {"path": path, "bytes": len(encoded)}


class Exists(Activity):
    name = "file.exists"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        path = env.resolve_path(require_string(params, "path"))
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return {"exists": False, "isDir": False, "size": 0}
        return {"exists": True, "isDir": os.path.isdir(path), "size": st.st_size}


class Delete(Activity):
    name = "file.delete"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        path = env.resolve_path(require_string(params, "path"))
        try:
            os.remove(path)
        except FileNotFoundError as exc:
            if get_bool(params, "ignoreNotExist"):
                return None
            raise FileNotFoundError(f"file not found: {path}") from exc
        return None


ACTIVITIES: tuple[Activity, ...] = (Read(), Write(), Exists(), Delete())
