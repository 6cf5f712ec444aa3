"""Supervisor for the external clicker daemon."""

from __future__ import annotations

import contextlib
import logging
import os
import queue
import re
import shutil
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path

from . import debug
from .config import (
    CLICKER_PATH_ENV,
    DEFAULT_STARTUP_TIMEOUT,
    DEFAULT_STOP_TIMEOUT,
    cache_dir,
    clicker_binary_name,
)
from .context import Context, ensure
from .errors import BrowserCrashedError, ClickerNotFoundError, ClickerStartTimeoutError, VibiumError

logger = logging.getLogger("vibium.clicker")

BANNER_MARKER = "Server listening on"
_WS_URL = re.compile(r"ws://[^:\s]+:(\d+)")
START_POLL_INTERVAL = 0.1

DEV_RELATIVE_PATHS = (
    Path("clicker") / "bin" / "clicker",
    Path("..") / ".." / "clicker" / "bin" / "clicker",
)


def _is_file(path: str | Path) -> bool:
    try:
        return Path(path).is_file()
    except OSError:
        return False


def find_clicker(custom_path: str | None = None) -> str:
    """Locate the clicker binary.

    Order: explicit path, ``VIBIUM_CLICKER_PATH``, PATH lookup, the platform
    cache directory, then two development checkout locations.
    """
    if custom_path and _is_file(custom_path):
        return str(custom_path)

    env_path = os.environ.get(CLICKER_PATH_ENV)
    if env_path and _is_file(env_path):
        return env_path

    on_path = shutil.which("clicker")
    if on_path:
        return on_path

    cached = cache_dir() / clicker_binary_name()
    if _is_file(cached):
        return str(cached)

    for rel in DEV_RELATIVE_PATHS:
        if _is_file(rel):
            return str(rel.resolve())

    raise ClickerNotFoundError()


def parse_banner(line: str) -> tuple[str, int] | None:
    """Return ``(ws_url, port)`` if ``line`` is the listening banner."""
    if BANNER_MARKER not in line:
        return None
    match = _WS_URL.search(line)
    if match is None:
        return None
    return match.group(0), int(match.group(1))


def build_command(path: str, *, port: int = 0, headless: bool = False) -> list[str]:
    cmd = [path, "serve"]
    if port > 0:
        cmd.extend(["--port", str(port)])
    if headless:
        cmd.append("--headless")
    return cmd


class ClickerProcess:
    """A running clicker daemon owned by this process."""

    def __init__(self, process: subprocess.Popen, url: str, port: int) -> None:
        self.process = process
        self.url = url
        self.port = port
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def running(self) -> bool:
        return self.process.poll() is None

    @classmethod
    def start(
        cls,
        path: str,
        *,
        port: int = 0,
        headless: bool = False,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        ctx: Context | None = None,
    ) -> ClickerProcess:
        """Launch ``path serve`` and wait for the listening banner on stdout.

        The process is killed if ``ctx`` ends before the banner arrives.
        """
        ctx = ensure(ctx)
        ctx.raise_if_done()
        cmd = build_command(path, port=port, headless=headless)
        logger.info("starting clicker: %s", " ".join(cmd))
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=None,
            stdin=subprocess.DEVNULL,
            text=True,
            bufsize=1,
        )
        lines: queue.Queue[str | None] = queue.Queue()
        scanned = threading.Event()
        reader = threading.Thread(
            target=_pump_stdout, args=(proc, lines, scanned), name="vibium-clicker-stdout", daemon=True
        )
        reader.start()

        seen: list[str] = []
        deadline = time.monotonic() + max(0.0, float(startup_timeout))
        while True:
            err = ctx.error()
            if err is not None:
                _kill(proc)
                raise err
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                _kill(proc)
                raise ClickerStartTimeoutError()
            try:
                line = lines.get(timeout=min(remaining, START_POLL_INTERVAL))
            except queue.Empty:
                continue
            if line is None:
                # stdout closed before the banner: the daemon died during startup.
                code = _kill(proc)
                raise BrowserCrashedError(code if code is not None else -1, "".join(seen))
            seen.append(line)
            parsed = parse_banner(line)
            if parsed is None:
                if BANNER_MARKER in line:
                    _kill(proc)
                    raise VibiumError(f"failed to parse clicker URL from: {line.strip()}")
                continue
            scanned.set()
            url, bound_port = parsed
            debug.debug("clicker started", pid=proc.pid, port=bound_port, url=url)
            logger.info("clicker listening on %s (pid=%s)", url, proc.pid)
            return cls(proc, url, bound_port)

    def stop(self, timeout: float = DEFAULT_STOP_TIMEOUT) -> None:
        """Interrupt, wait up to ``timeout`` seconds, then kill. Safe to call twice."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True

        proc = self.process
        if proc.poll() is not None:
            return

        with contextlib.suppress(Exception):
            if sys.platform == "win32":
                proc.terminate()
            else:
                proc.send_signal(signal.SIGINT)

        deadline = time.monotonic() + max(0.1, float(timeout))
        while time.monotonic() < deadline:
            if proc.poll() is not None:
                debug.debug("clicker stopped", pid=proc.pid)
                return
            time.sleep(0.05)

        logger.warning("clicker did not exit after %.1fs, killing pid=%s", timeout, proc.pid)
        _kill(proc)


def _pump_stdout(proc: subprocess.Popen, lines: queue.Queue, scanned: threading.Event) -> None:
    """Forward stdout lines until the banner is found, then discard the rest."""
    stream = proc.stdout
    if stream is None:
        lines.put(None)
        return
    with contextlib.suppress(Exception):
        for line in stream:
            if not scanned.is_set():
                lines.put(line)
    lines.put(None)


def _kill(proc: subprocess.Popen) -> int | None:
    with contextlib.suppress(Exception):
        proc.kill()
    with contextlib.suppress(Exception):
        return proc.wait(timeout=5.0)
    return proc.poll()
