"""Automation script format.

A script is a flat list of browser actions read from YAML or JSON::

    name: Login smoke test
    headless: true
    variables:
      user: alice
    steps:
      - action: navigate
        url: https://example.com/login
      - action: fill
        selector: "#user"
        value: ${user}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..durations import parse_duration
from ..errors import ValidationIssue, WorkflowValidationError

ACTIONS = (
    # navigation
    "navigate", "go", "back", "forward", "reload",
    # interaction
    "click", "dblclick", "type", "fill", "clear", "press",
    # form controls
    "check", "uncheck", "select", "setFiles",
    # element
    "hover", "focus", "scrollIntoView", "dragTo", "tap",
    # capture
    "screenshot", "pdf",
    "eval",
    # waiting
    "wait", "waitForSelector", "waitForUrl", "waitForLoad",
    # pages
    "setViewport", "newPage", "closePage",
    "keyboardPress", "keyboardType",
    "mouseClick", "mouseMove",
    # assertions
    "assertText", "assertElement", "assertValue", "assertVisible", "assertHidden",
    "assertUrl", "assertTitle", "assertAttribute", "assertAccessibility",
    # extraction
    "getText", "getValue", "getAttribute", "getUrl", "getTitle",
)  # fmt: skip


def _str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _seconds(value: Any, where: str) -> float:
    if value in (None, ""):
        return 0.0
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ValueError(f"{where}: {exc}") from exc


@dataclass
class A11yOptions:
    standard: str = "wcag22aa"
    include: str = ""
    exclude: str = ""
    rules: list[str] = field(default_factory=list)
    disabled_rules: list[str] = field(default_factory=list)
    report_file: str = ""
    fail_on: str = "serious"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> A11yOptions:
        return cls(
            standard=_str(data.get("standard")) or "wcag22aa",
            include=_str(data.get("include")),
            exclude=_str(data.get("exclude")),
            rules=[_str(r) for r in data.get("rules") or []],
            disabled_rules=[_str(r) for r in data.get("disabledRules") or []],
            report_file=_str(data.get("reportFile")),
            fail_on=_str(data.get("failOn")) or "serious",
        )


@dataclass
class ScriptStep:
    action: str = ""
    id: str = ""
    name: str = ""
    selector: str = ""
    url: str = ""
    value: str = ""
    text: str = ""
    key: str = ""
    script: str = ""
    file: str = ""
    files: list[str] = field(default_factory=list)
    timeout: float = 0.0  # seconds
    duration: float = 0.0  # seconds
    full_page: bool = False
    target: str = ""
    x: float = 0.0
    y: float = 0.0
    width: int = 0
    height: int = 0
    state: str = ""
    pattern: str = ""
    load_state: str = ""
    expected: str = ""
    attribute: str = ""
    store: str = ""
    continue_on_error: bool = False
    a11y: A11yOptions | None = None

    @classmethod
    def from_dict(cls, data: Any, where: str = "step") -> ScriptStep:
        if not isinstance(data, dict):
            raise ValueError(f"{where}: expected a mapping, got {type(data).__name__}")
        a11y = data.get("a11y")
        return cls(
            action=_str(data.get("action")),
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            selector=_str(data.get("selector")),
            url=_str(data.get("url")),
            value=_str(data.get("value")),
            text=_str(data.get("text")),
            key=_str(data.get("key")),
            script=_str(data.get("script")),
            file=_str(data.get("file")),
            files=[_str(f) for f in data.get("files") or []],
            timeout=_seconds(data.get("timeout"), f"{where}.timeout"),
            duration=_seconds(data.get("duration"), f"{where}.duration"),
            full_page=bool(data.get("fullPage")),
            target=_str(data.get("target")),
            x=float(data.get("x") or 0),
            y=float(data.get("y") or 0),
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            state=_str(data.get("state")),
            pattern=_str(data.get("pattern")),
            load_state=_str(data.get("loadState")),
            expected=_str(data.get("expected")),
            attribute=_str(data.get("attribute")),
            store=_str(data.get("store")),
            continue_on_error=bool(data.get("continueOnError")),
            a11y=A11yOptions.from_dict(a11y) if isinstance(a11y, dict) else None,
        )

    def describe(self) -> str:
        """Short label used in logs when the step has no name."""
        if self.action in ("navigate", "go"):
            return f"navigate {self.url}"
        if self.action == "press":
            return f"press {self.key} on {self.selector}"
        if self.action in ("screenshot", "pdf"):
            return f"{self.action} {self.file}"
        if self.action == "eval":
            return "eval javascript"
        if self.action == "wait":
            return f"wait {self.duration or self.timeout:g}s"
        if self.action == "waitForUrl":
            return f"waitForUrl {self.pattern}"
        if self.action == "waitForLoad":
            return f"waitForLoad {self.load_state or 'load'}"
        if self.action in ("assertUrl", "assertTitle"):
            return f"{self.action} {self.expected or self.pattern}"
        if self.action == "assertAccessibility":
            return f"assertAccessibility ({self.a11y.standard if self.a11y else 'wcag22aa'})"
        if self.selector:
            return f"{self.action} {self.selector}"
        return self.action


@dataclass
class Script:
    name: str = ""
    description: str = ""
    version: int = 1
    headless: bool = False
    base_url: str = ""
    timeout: float = 0.0  # default per-step timeout, seconds
    variables: dict[str, str] = field(default_factory=dict)
    steps: list[ScriptStep] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Script:
        if not isinstance(data, dict):
            raise ValueError("script must be a mapping")
        steps = data.get("steps") or []
        if not isinstance(steps, list):
            raise ValueError("steps: expected a list")
        variables = data.get("variables") or {}
        if not isinstance(variables, dict):
            raise ValueError("variables: expected a mapping")
        return cls(
            name=_str(data.get("name")),
            description=_str(data.get("description")),
            version=int(data.get("version") or 1),
            headless=bool(data.get("headless")),
            base_url=_str(data.get("baseUrl")),
            timeout=_seconds(data.get("timeout"), "timeout"),
            variables={str(k): _str(v) for k, v in variables.items()},
            steps=[ScriptStep.from_dict(s, f"steps[{i}]") for i, s in enumerate(steps)],
        )


def validate_script(script: Script) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not script.steps:
        issues.append(ValidationIssue(field="steps", message="script must have at least one step"))
    for i, step in enumerate(script.steps):
        path = f"steps[{i}]"
        if not step.action:
            issues.append(ValidationIssue(path=path, field="action", message="action is required"))
        elif step.action not in ACTIONS:
            issues.append(ValidationIssue(path=path, field="action", message=f"unknown action: {step.action}"))
    return issues


def parse_script(data: bytes | str, *, fmt: str = "") -> Script:
    """Decode a script; ``fmt`` is ``"json"``, ``"yaml"`` or empty to sniff."""
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    if not fmt:
        fmt = "json" if text.lstrip()[:1] == "{" else "yaml"
    try:
        raw = json.loads(text) if fmt == "json" else yaml.safe_load(text)
        script = Script.from_dict(raw if raw is not None else {})
    except (ValueError, yaml.YAMLError) as exc:
        raise ValueError(f"failed to parse {fmt.upper()} script: {exc}") from exc
    issues = validate_script(script)
    if issues:
        raise WorkflowValidationError(issues)
    return script


def load_script(path: str | Path) -> Script:
    path = Path(path)
    fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    return parse_script(path.read_bytes(), fmt=fmt)
