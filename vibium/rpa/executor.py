"""Workflow interpreter.

``Executor.run_workflow`` launches a browser, runs each step in order and
returns a ``WorkflowResult``. Run failures are reported in the result rather
than raised; only programming errors escape.
"""

from __future__ import annotations

import base64
import logging
import os
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..config import default_timeout
from ..context import Context, ensure
from ..errors import (
    ActivityError,
    ConnectionClosedError,
    ContextCancelledError,
    ValidationIssue,
    WorkflowValidationError,
)
from ..types import LaunchOptions, Viewport
from .activity import Environment, Registry, default_registry
from .parse import parse_file, validate_workflow
from .result import Screenshot, StepResult, WorkflowResult
from .variables import Evaluator, Resolver
from .workflow import DEFAULT_RETRY_DELAY, ErrorHandler, Status, Step, Workflow

if TYPE_CHECKING:
    from ..session import Session

Launcher = Callable[[LaunchOptions, Context], "Session"]


def _default_launcher(options: LaunchOptions, ctx: Context) -> Session:
    from ..session import launch

    return launch(options, ctx=ctx)


def _is_fatal(exc: BaseException | None, ctx: Context) -> bool:
    """A closed transport or a cancelled run is never worth another attempt.

    A step whose own timeout expired is retried while the run is still live.
    """
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, ConnectionClosedError):
            return True
        if isinstance(exc, ContextCancelledError) and ctx.done():
            return True
        seen.add(id(exc))
        exc = exc.cause if isinstance(exc, ActivityError) else exc.__cause__
    return False


@dataclass
class ExecutorConfig:
    headless: bool = False
    default_timeout: float = field(default_factory=default_timeout)  # seconds
    work_dir: str = ""
    variables: dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False
    logger: logging.Logger | None = None
    on_step_start: Callable[[Step], None] | None = None
    on_step_complete: Callable[[Step, StepResult], None] | None = None
    registry: Registry | None = None
    launcher: Launcher | None = None


class Executor:
    def __init__(self, config: ExecutorConfig | None = None) -> None:
        self.config = config or ExecutorConfig()
        if self.config.default_timeout <= 0:
            self.config.default_timeout = default_timeout()
        if not self.config.work_dir:
            self.config.work_dir = os.getcwd()
        self.logger = self.config.logger or logging.getLogger("vibium.rpa")
        self.registry = self.config.registry or default_registry
        self.launcher = self.config.launcher or _default_launcher

    def run_file(self, path: str | Path, ctx: Context | None = None) -> WorkflowResult:
        """Parse and run ``path``; parse errors are raised, run errors are reported."""
        return self.run_workflow(parse_file(path), ctx)

    def run_workflow(self, wf: Workflow, ctx: Context | None = None) -> WorkflowResult:
        ctx = ensure(ctx)
        result = WorkflowResult(workflow_name=wf.name, status=Status.RUNNING)

        variables: dict[str, Any] = dict(wf.variables)
        variables.update(self.config.variables)
        resolver = Resolver(variables)

        if self.config.dry_run:
            issues = self.validate(wf)
            if issues:
                result.complete(Status.FAILURE, WorkflowValidationError(issues))
            else:
                result.complete(Status.SUCCESS)
            return result

        headless = self.config.headless or wf.browser.headless
        self.logger.info("launching browser headless=%s", headless)
        try:
            session = self.launcher(LaunchOptions(headless=headless), ctx)
        except Exception as exc:  # noqa: BLE001
            result.complete(Status.FAILURE, f"failed to launch browser: {exc}")
            return result

        env = Environment(
            session=session,
            variables=resolver.variables,
            work_dir=self.config.work_dir,
            logger=self.logger,
            headless=headless,
        )
        try:
            try:
                if wf.browser.viewport is not None:
                    size = wf.browser.viewport
                    session.set_viewport(Viewport(width=size.width, height=size.height), ctx=ctx)
                self._run_steps(ctx, wf.steps, env, resolver, result)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("workflow %s failed: %s", wf.name, exc)
                if wf.on_error is not None:
                    self._handle_error(ctx, wf.on_error, env, resolver, result, exc)
                result.variables = dict(resolver.variables)
                result.complete(Status.FAILURE, exc)
                return result
            result.variables = dict(resolver.variables)
            result.complete(Status.SUCCESS)
            return result
        finally:
            with suppress(Exception):
                session.quit()

    def _run_steps(
        self,
        ctx: Context,
        steps: list[Step],
        env: Environment,
        resolver: Resolver,
        result: WorkflowResult,
    ) -> None:
        evaluator = Evaluator(resolver)
        for step in steps:
            ctx.raise_if_done()

            if step.has_condition:
                try:
                    ok = evaluator.evaluate(step.condition)
                except Exception as exc:
                    raise ValueError(f"condition evaluation failed for step {step.get_id()}: {exc}") from exc
                if not ok:
                    skipped = StepResult.for_step(step)
                    skipped.mark_skipped("condition not met")
                    result.add_step(skipped)
                    continue

            if step.has_for_each:
                try:
                    self._run_for_each(ctx, step, env, resolver, result)
                except Exception as exc:
                    if not step.continue_on_error:
                        raise
                    self.logger.warning("forEach %s failed, continuing: %s", step.get_id(), exc)
                continue

            step_result, err = self._execute_with_retry(ctx, step, env, resolver)
            result.add_step(step_result)

            if err is None:
                self._store_output(step, step_result, env, resolver)
            elif not step.continue_on_error:
                raise err

    def _store_output(self, step: Step, step_result: StepResult, env: Environment, resolver: Resolver) -> None:
        """``store`` keeps non-null outputs; an activity-named variable is always written."""
        if step.store:
            if step_result.output is None:
                return
            name = step.store
        else:
            activity = self.registry.get(step.activity)
            name = activity.store_name(step_result.params) if activity is not None else None
            if not name:
                return
        resolver.set(name, step_result.output)
        env.variables[name] = step_result.output

    def _run_for_each(
        self,
        ctx: Context,
        step: Step,
        env: Environment,
        resolver: Resolver,
        result: WorkflowResult,
    ) -> None:
        loop = step.for_each
        assert loop is not None
        path = loop.items.strip()
        if path.startswith("${") and path.endswith("}"):
            path = path[2:-1]
        items, found = resolver.get(path)
        if not found:
            raise ValueError(f"forEach items not found: {loop.items}")
        if not isinstance(items, list):
            raise ValueError("forEach items must be an array")

        index_name = f"{loop.variable}_index"
        for i, item in enumerate(items):
            resolver.set(loop.variable, item)
            resolver.set(index_name, i)
            env.variables[loop.variable] = item
            env.variables[index_name] = i
            try:
                self._run_steps(ctx, loop.steps, env, resolver, result)
            except Exception:
                if not step.continue_on_error:
                    raise

    def _execute_with_retry(
        self,
        ctx: Context,
        step: Step,
        env: Environment,
        resolver: Resolver,
    ) -> tuple[StepResult, BaseException | None]:
        max_attempts = 1
        delay = DEFAULT_RETRY_DELAY
        multiplier = 0.0
        if step.has_retry:
            assert step.retry is not None
            max_attempts = step.retry.max_attempts
            if step.retry.delay > 0:
                delay = step.retry.delay
            multiplier = step.retry.backoff_multiplier

        step_result = StepResult.for_step(step)
        params = resolver.resolve_map(step.params)
        step_result.params = params
        last_err: BaseException | None = None

        for attempt in range(1, max_attempts + 1):
            step_result.retries = attempt - 1
            step_result.mark_running()
            if self.config.on_step_start is not None:
                self.config.on_step_start(step)

            try:
                output = self._execute_step(ctx, step, params, env)
            except Exception as exc:  # noqa: BLE001
                last_err = exc
            else:
                step_result.complete(Status.SUCCESS, output)
                self._notify_complete(step, step_result)
                return step_result, None

            self.logger.warning(
                "step failed step=%s attempt=%d maxAttempts=%d error=%s",
                step.get_id(),
                attempt,
                max_attempts,
                last_err,
            )
            if _is_fatal(last_err, ctx) or attempt >= max_attempts:
                break

            backoff = delay
            if multiplier > 0:
                backoff *= multiplier ** (attempt - 1)
            try:
                ctx.sleep(backoff)
            except ContextCancelledError as exc:
                last_err = exc
                break

        step_result.complete(Status.FAILURE, None, last_err)
        self._notify_complete(step, step_result)
        return step_result, last_err

    def _notify_complete(self, step: Step, step_result: StepResult) -> None:
        if self.config.on_step_complete is not None:
            self.config.on_step_complete(step, step_result)

    def _execute_step(self, ctx: Context, step: Step, params: dict[str, Any], env: Environment) -> Any:
        activity = self.registry.get(step.activity)
        if activity is None:
            raise ValueError(f"unknown activity: {step.activity}")

        step_ctx = ctx.with_timeout(step.get_timeout(self.config.default_timeout))

        self.logger.info("executing step step=%s activity=%s", step.get_id(), step.activity)
        try:
            return activity.execute(step_ctx, params, env)
        except Exception as exc:
            raise ActivityError(step.activity, exc) from exc

    def _handle_error(
        self,
        ctx: Context,
        handler: ErrorHandler,
        env: Environment,
        resolver: Resolver,
        result: WorkflowResult,
        original: BaseException,
    ) -> None:
        if handler.screenshot and env.session is not None:
            try:
                data = env.session.screenshot(ctx=ctx)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("error screenshot failed: %s", exc)
            else:
                result.add_screenshot(
                    Screenshot(data=base64.b64encode(data).decode("ascii"), reason=f"error: {original}")
                )

        if handler.steps:
            try:
                self._run_steps(ctx, handler.steps, env, resolver, result)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("onError steps failed: %s", exc)

    def validate(self, wf: Workflow) -> list[ValidationIssue]:
        """Structural issues plus activities this executor's registry does not know."""
        issues = validate_workflow(wf)
        for i, step in enumerate(wf.steps):
            issues.extend(self._unknown_activities(step, f"steps[{i}]"))
        if wf.on_error is not None:
            for i, step in enumerate(wf.on_error.steps):
                issues.extend(self._unknown_activities(step, f"onError.steps[{i}]"))
        return issues

    def _unknown_activities(self, step: Step, path: str) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        if step.activity and step.activity not in self.registry:
            issues.append(ValidationIssue(path=path, field="activity", message=f"unknown activity: {step.activity}"))
        if step.for_each is not None:
            for i, nested in enumerate(step.for_each.steps):
                issues.extend(self._unknown_activities(nested, f"{path}.forEach.steps[{i}]"))
        for i, nested in enumerate(step.steps):
            issues.extend(self._unknown_activities(nested, f"{path}.steps[{i}]"))
        return issues
