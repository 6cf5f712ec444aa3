from __future__ import annotations

import os
import stat
import sys
import threading
import time
from pathlib import Path

import pytest

from vibium import clicker
from vibium.clicker import ClickerProcess, build_command, find_clicker, parse_banner
from vibium.context import Context
from vibium.errors import (
    BrowserCrashedError,
    ClickerNotFoundError,
    ClickerStartTimeoutError,
    ContextCancelledError,
    DeadlineExceededError,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="stub daemon is a shell script")


def _stub(tmp_path: Path, body: str) -> str:
    path = tmp_path / "clicker"
    path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def test_parse_banner_extracts_url_and_port() -> None:
    assert parse_banner("Server listening on ws://localhost:9515\n") == ("ws://localhost:9515", 9515)
    assert parse_banner("Server listening on ws://127.0.0.1:41234/session") == ("ws://127.0.0.1:41234", 41234)
    assert parse_banner("Server listening on ws://127.0.0.1:9515.") == ("ws://127.0.0.1:9515", 9515)
    assert parse_banner("starting chrome...") is None
    assert parse_banner("Server listening on nowhere") is None


def test_build_command_flags() -> None:
    assert build_command("/bin/clicker") == ["/bin/clicker", "serve"]
    assert build_command("/bin/clicker", port=9000, headless=True) == [
        "/bin/clicker",
        "serve",
        "--port",
        "9000",
        "--headless",
    ]


def test_find_clicker_prefers_explicit_path_then_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    explicit = tmp_path / "explicit"
    explicit.write_text("")
    from_env = tmp_path / "from_env"
    from_env.write_text("")
    monkeypatch.setenv("VIBIUM_CLICKER_PATH", str(from_env))
    monkeypatch.setattr(clicker.shutil, "which", lambda name: None)

    assert find_clicker(str(explicit)) == str(explicit)
    assert find_clicker(str(tmp_path / "missing")) == str(from_env)
    assert find_clicker() == str(from_env)


def test_find_clicker_falls_back_to_path_then_cache(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VIBIUM_CLICKER_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    cache = tmp_path / "cache"
    cache.mkdir()
    monkeypatch.setattr(clicker, "cache_dir", lambda: cache)

    monkeypatch.setattr(clicker.shutil, "which", lambda name: "/usr/local/bin/clicker")
    assert find_clicker() == "/usr/local/bin/clicker"

    monkeypatch.setattr(clicker.shutil, "which", lambda name: None)
    with pytest.raises(ClickerNotFoundError):
        find_clicker()

    cached = cache / clicker.clicker_binary_name()
    cached.write_text("")
    assert find_clicker() == str(cached)


@posix_only
def test_start_reads_banner_and_stop_terminates(tmp_path: Path) -> None:
    path = _stub(tmp_path, 'echo "launching"\necho "Server listening on ws://127.0.0.1:9515"\nexec sleep 30')
    proc = ClickerProcess.start(path, startup_timeout=5)
    try:
        assert proc.url == "ws://127.0.0.1:9515"
        assert proc.port == 9515
        assert proc.running
    finally:
        proc.stop(timeout=2)
    assert not proc.running
    proc.stop()  # second stop is a no-op


@posix_only
def test_start_passes_flags(tmp_path: Path) -> None:
    out = tmp_path / "args"
    path = _stub(tmp_path, f'echo "$@" > {out}\necho "Server listening on ws://127.0.0.1:$3"\nexec sleep 30')
    proc = ClickerProcess.start(path, port=9222, headless=True, startup_timeout=5)
    try:
        assert proc.port == 9222
        assert out.read_text().split() == ["serve", "--port", "9222", "--headless"]
    finally:
        proc.stop(timeout=2)


@posix_only
def test_start_times_out_without_banner(tmp_path: Path) -> None:
    path = _stub(tmp_path, "exec sleep 30")
    with pytest.raises(ClickerStartTimeoutError):
        ClickerProcess.start(path, startup_timeout=0.3)


@posix_only
def test_start_reports_early_exit(tmp_path: Path) -> None:
    path = _stub(tmp_path, 'echo "chrome not found"\nexit 3')
    with pytest.raises(BrowserCrashedError) as info:
        ClickerProcess.start(path, startup_timeout=5)
    assert info.value.exit_code == 3
    assert "chrome not found" in info.value.output
    assert str(info.value) == "browser crashed with exit code 3"


def test_env_var_name() -> None:
    assert clicker.CLICKER_PATH_ENV == "VIBIUM_CLICKER_PATH"
    assert os.path.basename(clicker.clicker_binary_name()).startswith("clicker")


@posix_only
def test_start_stops_at_context_deadline(tmp_path: Path) -> None:
    path = _stub(tmp_path, "exec sleep 30")
    ctx = Context.background().with_timeout(0.3)
    started = time.monotonic()
    with pytest.raises(DeadlineExceededError):
        ClickerProcess.start(path, startup_timeout=30, ctx=ctx)
    assert time.monotonic() - started < 5


@posix_only
def test_start_stops_when_context_is_cancelled(tmp_path: Path) -> None:
    path = _stub(tmp_path, "exec sleep 30")
    ctx = Context.background().with_cancel()
    threading.Timer(0.2, ctx.cancel).start()
    with pytest.raises(ContextCancelledError):
        ClickerProcess.start(path, startup_timeout=30, ctx=ctx)


def test_start_with_finished_context_does_not_spawn(tmp_path: Path) -> None:
    ctx = Context.background().with_cancel()
    ctx.cancel()
    with pytest.raises(ContextCancelledError):
        ClickerProcess.start(str(tmp_path / "never-run"), ctx=ctx)
