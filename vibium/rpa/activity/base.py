"""Activity contract, execution environment and parameter helpers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ...context import Context

if TYPE_CHECKING:
    from ...session import Session

DEFAULT_TIMEOUT_MS = 30000


class Activity:
    """A named unit of work a workflow step can invoke.

    Subclasses set ``name`` and implement ``execute``. Failures are raised;
    the interpreter wraps them with the activity name.
    """

    name: str = ""

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        raise NotImplementedError

    def store_name(self, params: dict[str, Any]) -> str | None:
        """Variable the interpreter should store this activity's output under, if any."""
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


@dataclass
class Environment:
    """State shared by every activity of one workflow run.

    ``variables`` is the live variable map; only the interpreter writes to it.
    """

    session: Session | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    work_dir: str = field(default_factory=os.getcwd)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("vibium.rpa"))
    headless: bool = False

    def require_session(self) -> Session:
        if self.session is None:
            raise RuntimeError("no browser session available")
        return self.session

    def resolve_path(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.join(self.work_dir, path)


# ─────────────────────────────────────────────────────────────────────────────
# Parameter helpers. Wrong types fall back to the default rather than raising.
# ─────────────────────────────────────────────────────────────────────────────


def get_string(params: dict[str, Any], key: str) -> str:
    value = params.get(key)
    return value if isinstance(value, str) else ""


def get_string_default(params: dict[str, Any], key: str, default: str) -> str:
    value = params.get(key)
    return value if isinstance(value, str) else default


def get_bool(params: dict[str, Any], key: str) -> bool:
    value = params.get(key)
    return value if isinstance(value, bool) else False


def get_int_default(params: dict[str, Any], key: str, default: int) -> int:
    value = params.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    return default


def get_int(params: dict[str, Any], key: str) -> int:
    return get_int_default(params, key, 0)


def get_float(params: dict[str, Any], key: str) -> float:
    value = params.get(key)
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def get_string_list(params: dict[str, Any], key: str) -> list[str]:
    value = params.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def get_map(params: dict[str, Any], key: str) -> dict[str, Any]:
    value = params.get(key)
    return value if isinstance(value, dict) else {}


def get_timeout(params: dict[str, Any], key: str = "timeout", default_ms: int = DEFAULT_TIMEOUT_MS) -> float:
    """Millisecond ``timeout`` param as seconds."""
    return get_int_default(params, key, default_ms) / 1000.0


def require_string(params: dict[str, Any], key: str) -> str:
    value = get_string(params, key)
    if not value:
        raise ValueError(f"{key} parameter is required")
    return value
