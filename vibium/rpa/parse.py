"""Workflow loading from YAML or JSON.

JSON input is strict (unknown fields are rejected); YAML is read with
``yaml.safe_load``. Both are validated before a ``Workflow`` is returned.
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from ..errors import ValidationIssue, WorkflowValidationError
from .workflow import Step, Workflow


def parse_file(path: str | Path) -> Workflow:
    """Parse ``path`` according to its extension (.yaml, .yml or .json)."""
    path = Path(path)
    ext = path.suffix.lower()
    if ext in (".yaml", ".yml"):
        return parse_yaml(path.read_bytes())
    if ext == ".json":
        return parse_json(path.read_bytes())
    raise ValueError(f"unsupported file format: {ext or path.name}")


def parse(data: bytes | str) -> Workflow:
    """Parse ``data``, treating it as JSON when it starts with ``{`` or ``[``."""
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    if text.lstrip()[:1] in ("{", "["):
        return parse_json(text)
    return parse_yaml(text)


def parse_yaml(data: bytes | str) -> Workflow:
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to parse YAML: {exc}") from exc
    if raw is None:
        raw = {}
    try:
        wf = Workflow.from_dict(raw)
    except ValueError as exc:
        raise ValueError(f"failed to parse YAML: {exc}") from exc
    _raise_if_invalid(wf)
    return wf


def parse_json(data: bytes | str) -> Workflow:
    try:
        raw = json.loads(data)
        wf = Workflow.from_dict(raw, strict=True)
    except ValueError as exc:
        raise ValueError(f"failed to parse JSON: {exc}") from exc
    _raise_if_invalid(wf)
    return wf


def _raise_if_invalid(wf: Workflow) -> None:
    issues = validate_workflow(wf)
    if issues:
        raise WorkflowValidationError(issues)


def validate_workflow(wf: Workflow) -> list[ValidationIssue]:
    """Every structural problem in ``wf``, in document order."""
    issues: list[ValidationIssue] = []
    if not wf.name:
        issues.append(ValidationIssue(field="name", message="workflow name is required"))
    if not wf.steps:
        issues.append(ValidationIssue(field="steps", message="workflow must have at least one step"))
    for i, step in enumerate(wf.steps):
        issues.extend(_validate_step(step, f"steps[{i}]"))
    if wf.on_error is not None:
        for i, step in enumerate(wf.on_error.steps):
            issues.extend(_validate_step(step, f"onError.steps[{i}]"))
    return issues


def _validate_step(step: Step, path: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not step.activity and step.for_each is None:
        issues.append(ValidationIssue(path=path, field="activity", message="activity is required"))

    if step.for_each is not None:
        loop_path = f"{path}.forEach"
        if not step.for_each.items:
            issues.append(ValidationIssue(path=loop_path, field="items", message="items is required for forEach"))
        if not step.for_each.variable:
            issues.append(
                ValidationIssue(path=loop_path, field="as", message="variable name (as) is required for forEach")
            )
        for i, nested in enumerate(step.for_each.steps):
            issues.extend(_validate_step(nested, f"{loop_path}.steps[{i}]"))

    for i, nested in enumerate(step.steps):
        issues.extend(_validate_step(nested, f"{path}.steps[{i}]"))
    return issues
