from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from vibium import debug
from vibium.config import DEFAULT_TIMEOUT, VibiumConfig, cache_dir, default_timeout
from vibium.rpa.executor import Executor, ExecutorConfig
from vibium.types import ActionOptions, _timeout_or_default


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "VIBIUM_CLICKER_PATH",
        "VIBIUM_HEADLESS",
        "VIBIUM_PORT",
        "VIBIUM_TIMEOUT",
        "VIBIUM_CONNECT_TIMEOUT",
        "VIBIUM_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    cfg = VibiumConfig.from_env()
    assert cfg.clicker_path is None
    assert cfg.headless is False
    assert cfg.port == 0
    assert cfg.timeout == DEFAULT_TIMEOUT


def test_from_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", "/home/ada")
    monkeypatch.setenv("VIBIUM_CLICKER_PATH", "~/bin/clicker")
    monkeypatch.setenv("VIBIUM_HEADLESS", "True")
    monkeypatch.setenv("VIBIUM_PORT", "9515")
    monkeypatch.setenv("VIBIUM_TIMEOUT", "not-a-number")
    monkeypatch.setenv("VIBIUM_DEBUG", "1")
    cfg = VibiumConfig.from_env()
    if sys.platform != "win32":
        assert cfg.clicker_path == "/home/ada/bin/clicker"
    assert cfg.headless is True
    assert cfg.port == 9515
    assert cfg.timeout == DEFAULT_TIMEOUT
    assert cfg.debug is True


@pytest.mark.skipif(sys.platform in ("darwin", "win32"), reason="XDG layout")
def test_cache_dir_follows_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    assert cache_dir() == tmp_path / "vibium"
    monkeypatch.delenv("XDG_CACHE_HOME")
    assert cache_dir() == Path.home() / ".cache" / "vibium"


@pytest.fixture
def fresh_debug():  # noqa: ANN201
    debug.reset()
    yield
    debug.reset()


def test_debug_logger_writes_json(monkeypatch: pytest.MonkeyPatch, capsys, fresh_debug) -> None:  # noqa: ANN001
    monkeypatch.setenv("VIBIUM_DEBUG", "TRUE")
    debug.debug("send", id=7, method="browsingContext.navigate")

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["msg"] == "send"
    assert record["id"] == 7
    assert record["method"] == "browsingContext.navigate"
    assert record["logger"] == "vibium.debug"


def test_debug_logger_is_silent_by_default(monkeypatch: pytest.MonkeyPatch, capsys, fresh_debug) -> None:  # noqa: ANN001
    monkeypatch.delenv("VIBIUM_DEBUG", raising=False)
    debug.debug("send", id=1)
    assert capsys.readouterr().err == ""


def test_timeout_env_drives_default_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VIBIUM_TIMEOUT", "5")
    assert default_timeout() == 5.0
    assert VibiumConfig.from_env().timeout == 5.0
    assert _timeout_or_default(None) == 5.0
    assert ActionOptions(timeout=2).effective_timeout == 2.0
    assert Executor().config.default_timeout == 5.0
    assert Executor(ExecutorConfig(default_timeout=0)).config.default_timeout == 5.0
    assert Executor(ExecutorConfig(default_timeout=7)).config.default_timeout == 7.0

    monkeypatch.setenv("VIBIUM_TIMEOUT", "-1")
    assert default_timeout() == DEFAULT_TIMEOUT
    assert ActionOptions().effective_timeout == DEFAULT_TIMEOUT


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("TRUE", True), ("yes", False), ("", False)])
def test_debug_flag_is_shared(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("VIBIUM_DEBUG", raw)
    assert VibiumConfig.from_env().debug is expected
    assert debug.is_enabled() is expected
