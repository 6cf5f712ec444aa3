from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

PRODUCT = "vibium"
CLICKER_PATH_ENV = "VIBIUM_CLICKER_PATH"
TIMEOUT_ENV = "VIBIUM_TIMEOUT"
DEBUG_ENV = "VIBIUM_DEBUG"

DEFAULT_TIMEOUT = 30.0
DEFAULT_STARTUP_TIMEOUT = 30.0
DEFAULT_STOP_TIMEOUT = 5.0


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def clicker_binary_name() -> str:
    return "clicker.exe" if sys.platform == "win32" else "clicker"


def cache_dir() -> Path:
    """Platform cache directory for downloaded vibium binaries."""
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Caches" / PRODUCT
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        if local:
            return Path(local) / PRODUCT
        return home / "AppData" / "Local" / PRODUCT
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / PRODUCT
    return home / ".cache" / PRODUCT


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name) or default)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name) or default)
    except ValueError:
        return default


def default_timeout() -> float:
    """Seconds from ``VIBIUM_TIMEOUT``, or ``DEFAULT_TIMEOUT`` when unset or not positive."""
    value = _env_float(TIMEOUT_ENV, DEFAULT_TIMEOUT)
    return value if value > 0 else DEFAULT_TIMEOUT


def debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "").strip().lower() in {"1", "true"}


@dataclass
class VibiumConfig:
    clicker_path: str | None = None
    headless: bool = False
    port: int = 0
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = 10.0
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT
    debug: bool = False

    @classmethod
    def from_env(cls) -> VibiumConfig:
        raw_path = os.environ.get(CLICKER_PATH_ENV)
        return cls(
            clicker_path=expand_path(raw_path) if raw_path else None,
            headless=_env_bool("VIBIUM_HEADLESS"),
            port=_env_int("VIBIUM_PORT", 0),
            timeout=default_timeout(),
            connect_timeout=_env_float("VIBIUM_CONNECT_TIMEOUT", 10.0),
            startup_timeout=_env_float("VIBIUM_STARTUP_TIMEOUT", DEFAULT_STARTUP_TIMEOUT),
            debug=debug_enabled(),
        )
