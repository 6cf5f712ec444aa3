"""Sequential runner for automation scripts."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin, urlparse

from ..context import Context, ensure
from ..errors import AssertionFailedError, ElementNotFoundError, VibiumError, WaitTimeoutError
from ..rpa.variables import Resolver
from ..types import ActionOptions, FindOptions, SelectOptionValues, Viewport
from .types import Script, ScriptStep

if TYPE_CHECKING:
    from ..element import Element
    from ..session import Session

DEFAULT_SCRIPT_TIMEOUT = 300.0  # whole run, seconds

# Step fields that accept ${var} references.
_SUBSTITUTED = ("url", "selector", "value", "text", "expected", "pattern", "file", "script", "target")


@dataclass(eq=False)
class ScriptStepError(VibiumError):
    index: int  # 1-based
    name: str
    cause: BaseException

    def __str__(self) -> str:
        return f"step {self.index} ({self.name}) failed: {self.cause}"


@dataclass
class ScriptResult:
    name: str = ""
    completed: int = 0
    warnings: list[str] = field(default_factory=list)


def _write_private(path: str, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)


class ScriptRunner:
    """Run a ``Script`` against a session, one step at a time.

    ``newPage`` pushes a tab that later steps act on; ``closePage`` closes it
    and returns to the previous one.
    """

    def __init__(
        self,
        session: Session,
        *,
        variables: dict[str, str] | None = None,
        logger: logging.Logger | None = None,
        verbose: bool = False,
    ) -> None:
        self._pages: list[Session] = [session]
        self._overrides = dict(variables or {})
        self.logger = logger or logging.getLogger("vibium.script")
        self.verbose = verbose
        self.resolver = Resolver()

    @property
    def session(self) -> Session:
        return self._pages[-1]

    def run(self, script: Script, ctx: Context | None = None, *, timeout: float = DEFAULT_SCRIPT_TIMEOUT) -> ScriptResult:
        ctx = ensure(ctx).with_timeout(timeout)
        variables: dict[str, Any] = dict(script.variables)
        if script.base_url:
            variables.setdefault("baseUrl", script.base_url)
        variables.update(self._overrides)
        self.resolver = Resolver(variables)

        result = ScriptResult(name=script.name)
        if script.name:
            self.logger.info("running script %s", script.name)

        for index, raw in enumerate(script.steps, start=1):
            label = raw.name or raw.describe()
            if self.verbose:
                self.logger.info("[%d] %s", index, label)
            step = self.substitute(raw)
            try:
                ctx.raise_if_done()
                self.execute_step(step, script, ctx)
            except Exception as exc:
                if step.continue_on_error:
                    warning = f"[{index}] {exc}"
                    self.logger.warning("[%d] %s (continuing)", index, exc)
                    result.warnings.append(warning)
                    continue
                raise ScriptStepError(index, label, exc) from exc
            result.completed += 1

        self.logger.info("completed %d steps", len(script.steps))
        return result

    def substitute(self, step: ScriptStep) -> ScriptStep:
        changes = {name: self.resolver.resolve(getattr(step, name)) for name in _SUBSTITUTED}
        return replace(step, **changes)

    def _find_options(self, step: ScriptStep, script: Script) -> FindOptions:
        return FindOptions(timeout=step.timeout or script.timeout or None)

    def _find(self, step: ScriptStep, script: Script, ctx: Context) -> Element:
        return self.session.find(step.selector, self._find_options(step, script), ctx=ctx)

    def _store(self, step: ScriptStep, value: Any) -> None:
        if step.store:
            self.resolver.set(step.store, value)

    def _absolute(self, url: str, script: Script) -> str:
        if script.base_url and not urlparse(url).scheme:
            return urljoin(script.base_url, url)
        return url

    def execute_step(self, step: ScriptStep, script: Script, ctx: Context) -> None:  # noqa: C901
        session = self.session
        opts = ActionOptions(timeout=step.timeout or script.timeout or None)
        action = step.action

        if action in ("navigate", "go"):
            session.go(self._absolute(step.url, script), ctx=ctx)
        elif action == "back":
            session.back(ctx=ctx)
        elif action == "forward":
            session.forward(ctx=ctx)
        elif action == "reload":
            session.reload(ctx=ctx)

        elif action == "click":
            self._find(step, script, ctx).click(opts, ctx=ctx)
        elif action == "dblclick":
            self._find(step, script, ctx).dblclick(opts, ctx=ctx)
        elif action == "type":
            self._find(step, script, ctx).type(step.text or step.value, opts, ctx=ctx)
        elif action == "fill":
            self._find(step, script, ctx).fill(step.value or step.text, opts, ctx=ctx)
        elif action == "clear":
            self._find(step, script, ctx).clear(opts, ctx=ctx)
        elif action == "press":
            self._find(step, script, ctx).press(step.key, opts, ctx=ctx)
        elif action == "check":
            self._find(step, script, ctx).check(opts, ctx=ctx)
        elif action == "uncheck":
            self._find(step, script, ctx).uncheck(opts, ctx=ctx)
        elif action == "select":
            self._find(step, script, ctx).select_option(SelectOptionValues(values=[step.value]), opts, ctx=ctx)
        elif action == "setFiles":
            self._find(step, script, ctx).set_files(step.files, opts, ctx=ctx)
        elif action == "hover":
            self._find(step, script, ctx).hover(opts, ctx=ctx)
        elif action == "focus":
            self._find(step, script, ctx).focus(opts, ctx=ctx)
        elif action == "scrollIntoView":
            self._find(step, script, ctx).scroll_into_view(opts, ctx=ctx)
        elif action == "dragTo":
            source = self._find(step, script, ctx)
            target = session.find(step.target, self._find_options(step, script), ctx=ctx)
            source.drag_to(target, opts, ctx=ctx)
        elif action == "tap":
            self._find(step, script, ctx).tap(opts, ctx=ctx)

        elif action == "screenshot":
            _write_private(step.file, session.screenshot(ctx=ctx))
        elif action == "pdf":
            _write_private(step.file, session.pdf(ctx=ctx))
        elif action == "eval":
            self._store(step, session.evaluate(step.script, ctx=ctx))

        elif action == "wait":
            seconds = step.duration or step.timeout
            if seconds <= 0:
                raise ValueError("invalid duration: wait needs duration or timeout")
            ctx.sleep(seconds)
        elif action == "waitForSelector":
            self._find(step, script, ctx)
        elif action == "waitForUrl":
            session.wait_for_url(step.pattern, step.timeout or None, ctx=ctx)
        elif action == "waitForLoad":
            session.wait_for_load(step.load_state or "load", step.timeout or None, ctx=ctx)

        elif action == "setViewport":
            session.set_viewport(Viewport(width=step.width, height=step.height), ctx=ctx)
        elif action == "newPage":
            self._pages.append(session.new_page(ctx=ctx))
        elif action == "closePage":
            if len(self._pages) == 1:
                raise VibiumError("cannot close the script's first page")
            self._pages.pop().close(ctx=ctx)

        elif action == "keyboardPress":
            session.keyboard.press(step.key, ctx=ctx)
        elif action == "keyboardType":
            session.keyboard.type(step.text or step.value, ctx=ctx)
        elif action == "mouseClick":
            session.mouse.click(step.x, step.y, ctx=ctx)
        elif action == "mouseMove":
            session.mouse.move(step.x, step.y, ctx=ctx)

        elif action.startswith("assert"):
            self._assert(step, script, ctx)
        elif action == "getText":
            self._store(step, self._find(step, script, ctx).text(ctx=ctx))
        elif action == "getValue":
            self._store(step, self._find(step, script, ctx).value(ctx=ctx))
        elif action == "getAttribute":
            self._store(step, self._find(step, script, ctx).get_attribute(step.attribute, ctx=ctx))
        elif action == "getUrl":
            self._store(step, session.url(ctx=ctx))
        elif action == "getTitle":
            self._store(step, session.title(ctx=ctx))
        else:
            raise VibiumError(f"unknown action: {action}")

    def _assert(self, step: ScriptStep, script: Script, ctx: Context) -> None:  # noqa: C901
        session = self.session
        action = step.action

        if action == "assertText":
            text = self._find(step, script, ctx).text(ctx=ctx)
            if step.expected not in text:
                raise AssertionFailedError(
                    f"text assertion failed: expected {step.expected!r}, got {text!r}", step.expected, text
                )
        elif action == "assertElement":
            self._find(step, script, ctx)
        elif action == "assertValue":
            value = self._find(step, script, ctx).value(ctx=ctx)
            if value != step.expected:
                raise AssertionFailedError(
                    f"value assertion failed: expected {step.expected!r}, got {value!r}", step.expected, value
                )
        elif action == "assertVisible":
            if not self._find(step, script, ctx).is_visible(ctx=ctx):
                raise AssertionFailedError(
                    f"visibility assertion failed: element {step.selector} is not visible", True, False
                )
        elif action == "assertHidden":
            try:
                element = self._find(step, script, ctx)
            except (ElementNotFoundError, WaitTimeoutError):
                return
            if not element.is_hidden(ctx=ctx):
                raise AssertionFailedError(f"hidden assertion failed: element {step.selector} is visible", True, False)
        elif action == "assertUrl":
            url = session.url(ctx=ctx)
            if step.pattern:
                try:
                    matched = re.search(step.pattern, url) is not None
                except re.error as exc:
                    raise ValueError(f"invalid URL pattern: {exc}") from exc
                if not matched:
                    raise AssertionFailedError(
                        f"URL assertion failed: {url!r} does not match pattern {step.pattern!r}", step.pattern, url
                    )
            elif step.expected:
                if step.expected not in url:
                    raise AssertionFailedError(
                        f"URL assertion failed: expected {step.expected!r} in {url!r}", step.expected, url
                    )
            else:
                raise ValueError("assertUrl needs pattern or expected")
        elif action == "assertTitle":
            title = session.title(ctx=ctx)
            if step.expected not in title:
                raise AssertionFailedError(
                    f"title assertion failed: expected {step.expected!r}, got {title!r}", step.expected, title
                )
        elif action == "assertAttribute":
            value = self._find(step, script, ctx).get_attribute(step.attribute, ctx=ctx)
            if value != step.expected:
                raise AssertionFailedError(
                    f"attribute assertion failed: expected {step.attribute}={step.expected!r}, got {value!r}",
                    step.expected,
                    value,
                )
        elif action == "assertAccessibility":
            raise VibiumError("assertAccessibility has moved to a separate accessibility package")
        else:
            raise VibiumError(f"unknown action: {action}")
