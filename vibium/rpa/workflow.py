"""Workflow definitions: browser config, variables, steps and error handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..durations import parse_duration

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRIES = 3


class Status(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (Status.SUCCESS, Status.FAILURE, Status.SKIPPED)


def _scalar_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _duration(value: Any, where: str) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ValueError(f"{where}: {exc}") from exc


def _check_keys(data: dict[str, Any], allowed: frozenset[str], where: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"unknown field {unknown[0]!r} in {where or 'workflow'}")


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be a mapping")
    return value


def _steps(value: Any, where: str, strict: bool) -> list[Step]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{where} must be a list")
    return [Step.from_dict(item, strict=strict, where=f"{where}[{i}]") for i, item in enumerate(value)]


@dataclass
class ViewportConfig:
    width: int = 0
    height: int = 0


@dataclass
class BrowserConfig:
    headless: bool = False
    timeout: float = 0.0
    viewport: ViewportConfig | None = None
    user_agent: str = ""
    ignore_https_errors: bool = False

    _KEYS = frozenset({"headless", "timeout", "viewport", "userAgent", "ignoreHTTPSErrors"})

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = False) -> BrowserConfig:
        data = _mapping(data, "browser")
        if strict:
            _check_keys(data, cls._KEYS, "browser")
        viewport = None
        if data.get("viewport"):
            raw = _mapping(data["viewport"], "browser.viewport")
            viewport = ViewportConfig(width=int(raw.get("width") or 0), height=int(raw.get("height") or 0))
        return cls(
            headless=bool(data.get("headless")),
            timeout=_duration(data.get("timeout"), "browser.timeout"),
            viewport=viewport,
            user_agent=str(data.get("userAgent") or ""),
            ignore_https_errors=bool(data.get("ignoreHTTPSErrors")),
        )


@dataclass
class RetryConfig:
    max_attempts: int = 0
    delay: float = 0.0  # seconds
    backoff_multiplier: float = 0.0

    @classmethod
    def from_dict(cls, data: Any, *, where: str = "retry") -> RetryConfig:
        data = _mapping(data, where)
        return cls(
            max_attempts=int(data.get("maxAttempts") or 0),
            delay=_duration(data.get("delay"), f"{where}.delay"),
            backoff_multiplier=float(data.get("backoffMultiplier") or 0),
        )


@dataclass
class ForEachConfig:
    items: str = ""
    variable: str = ""
    steps: list[Step] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = False, where: str = "forEach") -> ForEachConfig:
        data = _mapping(data, where)
        if strict:
            _check_keys(data, frozenset({"items", "as", "steps"}), where)
        return cls(
            items=_scalar_str(data.get("items")),
            variable=_scalar_str(data.get("as")),
            steps=_steps(data.get("steps"), f"{where}.steps", strict),
        )


@dataclass
class ErrorHandler:
    screenshot: bool = False
    steps: list[Step] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = False) -> ErrorHandler:
        data = _mapping(data, "onError")
        if strict:
            _check_keys(data, frozenset({"screenshot", "steps"}), "onError")
        return cls(screenshot=bool(data.get("screenshot")), steps=_steps(data.get("steps"), "onError.steps", strict))


@dataclass
class Step:
    """One unit of work: an activity call, a forEach loop, or both guarded by ``if``."""

    id: str = ""
    name: str = ""
    activity: str = ""
    params: dict[str, Any] = field(default_factory=dict)
    condition: str = ""
    for_each: ForEachConfig | None = None
    store: str = ""
    continue_on_error: bool = False
    retry: RetryConfig | None = None
    timeout: float = 0.0
    steps: list[Step] = field(default_factory=list)

    _KEYS = frozenset(
        {"id", "name", "activity", "params", "if", "forEach", "store", "continueOnError", "retry", "timeout", "steps"}
    )

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = False, where: str = "step") -> Step:
        data = _mapping(data, where)
        if strict:
            _check_keys(data, cls._KEYS, where)
        for_each = None
        if data.get("forEach") is not None:
            for_each = ForEachConfig.from_dict(data["forEach"], strict=strict, where=f"{where}.forEach")
        retry = None
        if data.get("retry") is not None:
            if strict:
                _check_keys(
                    _mapping(data["retry"], f"{where}.retry"),
                    frozenset({"maxAttempts", "delay", "backoffMultiplier"}),
                    f"{where}.retry",
                )
            retry = RetryConfig.from_dict(data["retry"], where=f"{where}.retry")
        return cls(
            id=_scalar_str(data.get("id")),
            name=_scalar_str(data.get("name")),
            activity=_scalar_str(data.get("activity")),
            params=dict(_mapping(data.get("params"), f"{where}.params")),
            condition=_scalar_str(data.get("if")),
            for_each=for_each,
            store=_scalar_str(data.get("store")),
            continue_on_error=bool(data.get("continueOnError")),
            retry=retry,
            timeout=_duration(data.get("timeout"), f"{where}.timeout"),
            steps=_steps(data.get("steps"), f"{where}.steps", strict),
        )

    def get_id(self) -> str:
        """Explicit id, else name, else activity."""
        return self.id or self.name or self.activity

    def get_timeout(self, default: float) -> float:
        return self.timeout if self.timeout > 0 else default

    @property
    def has_condition(self) -> bool:
        return bool(self.condition)

    @property
    def has_for_each(self) -> bool:
        return self.for_each is not None

    @property
    def has_retry(self) -> bool:
        return self.retry is not None and self.retry.max_attempts > 0


@dataclass
class Workflow:
    name: str = ""
    description: str = ""
    version: str = ""
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    variables: dict[str, str] = field(default_factory=dict)
    steps: list[Step] = field(default_factory=list)
    on_error: ErrorHandler | None = None

    _KEYS = frozenset({"name", "description", "version", "browser", "variables", "steps", "onError"})

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = False) -> Workflow:
        """Build a workflow from decoded YAML/JSON; ``strict`` rejects unknown fields."""
        if not isinstance(data, dict):
            raise ValueError("workflow must be a mapping")
        if strict:
            _check_keys(data, cls._KEYS, "")
        variables = {str(k): _scalar_str(v) for k, v in _mapping(data.get("variables"), "variables").items()}
        on_error = None
        if data.get("onError") is not None:
            on_error = ErrorHandler.from_dict(data["onError"], strict=strict)
        return cls(
            name=_scalar_str(data.get("name")),
            description=_scalar_str(data.get("description")),
            version=_scalar_str(data.get("version")),
            browser=BrowserConfig.from_dict(data.get("browser"), strict=strict),
            variables=variables,
            steps=_steps(data.get("steps"), "steps", strict),
            on_error=on_error,
        )
