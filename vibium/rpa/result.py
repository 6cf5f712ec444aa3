"""Execution records for workflows and steps."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .workflow import Status, Step


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _rfc3339(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


@dataclass
class Screenshot:
    data: str  # base64 PNG
    step_id: str = ""
    reason: str = ""
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"timestamp": _rfc3339(self.timestamp), "data": self.data}
        if self.step_id:
            out["stepId"] = self.step_id
        if self.reason:
            out["reason"] = self.reason
        return out


@dataclass
class StepResult:
    step_id: str = ""
    step_name: str = ""
    activity: str = ""
    status: Status = Status.PENDING
    start_time: datetime = field(default_factory=_now)
    end_time: datetime | None = None
    duration_ms: int = 0
    output: Any = None
    error: str = ""
    screenshot: str = ""
    retries: int = 0
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_step(cls, step: Step) -> StepResult:
        return cls(step_id=step.get_id(), step_name=step.name, activity=step.activity)

    def mark_running(self) -> None:
        self.status = Status.RUNNING

    def mark_skipped(self, reason: str) -> None:
        self.status = Status.SKIPPED
        self.error = reason
        self._finish()

    def complete(self, status: Status, output: Any = None, error: BaseException | str | None = None) -> None:
        self.status = status
        self.output = output
        if error:
            self.error = str(error)
        self._finish()

    def _finish(self) -> None:
        self.end_time = _now()
        self.duration_ms = _elapsed_ms(self.start_time, self.end_time)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "stepId": self.step_id,
            "stepName": self.step_name,
            "activity": self.activity,
            "status": self.status.value,
            "startTime": _rfc3339(self.start_time),
            "endTime": _rfc3339(self.end_time),
            "duration": self.duration_ms,
        }
        if self.output is not None:
            out["output"] = self.output
        if self.error:
            out["error"] = self.error
        if self.screenshot:
            out["screenshot"] = self.screenshot
        if self.retries:
            out["retries"] = self.retries
        if self.params:
            out["params"] = self.params
        return out


@dataclass
class WorkflowResult:
    workflow_name: str = ""
    status: Status = Status.PENDING
    start_time: datetime = field(default_factory=_now)
    end_time: datetime | None = None
    duration_ms: int = 0
    steps: list[StepResult] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)
    error: str = ""
    screenshots: list[Screenshot] = field(default_factory=list)

    def add_step(self, step: StepResult) -> None:
        self.steps.append(step)

    def add_screenshot(self, screenshot: Screenshot) -> None:
        self.screenshots.append(screenshot)

    def complete(self, status: Status, error: BaseException | str | None = None) -> None:
        self.end_time = _now()
        self.duration_ms = _elapsed_ms(self.start_time, self.end_time)
        self.status = status
        if error:
            self.error = str(error)

    def _count(self, status: Status) -> int:
        return sum(1 for step in self.steps if step.status == status)

    @property
    def success_count(self) -> int:
        return self._count(Status.SUCCESS)

    @property
    def failure_count(self) -> int:
        return self._count(Status.FAILURE)

    @property
    def skipped_count(self) -> int:
        return self._count(Status.SKIPPED)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def is_success(self) -> bool:
        return self.status == Status.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "workflowName": self.workflow_name,
            "status": self.status.value,
            "startTime": _rfc3339(self.start_time),
            "endTime": _rfc3339(self.end_time),
            "duration": self.duration_ms,
            "steps": [step.to_dict() for step in self.steps],
            "variables": self.variables,
        }
        if self.error:
            out["error"] = self.error
        if self.screenshots:
            out["screenshots"] = [shot.to_dict() for shot in self.screenshots]
        return out

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str, ensure_ascii=False)
