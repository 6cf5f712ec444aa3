"""Declarative browser workflows (RPA).

A workflow is a YAML or JSON document of steps, each calling a named activity
from ``vibium.rpa.activity.default_registry``. ``Executor`` runs it against a
launched browser and returns a ``WorkflowResult``.
"""

from .activity import Activity, Environment, Registry, default_registry
from .executor import Executor, ExecutorConfig
from .parse import parse, parse_file, parse_json, parse_yaml, validate_workflow
from .result import Screenshot, StepResult, WorkflowResult
from .variables import Evaluator, Resolver, is_truthy, stringify
from .workflow import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    BrowserConfig,
    ErrorHandler,
    ForEachConfig,
    RetryConfig,
    Status,
    Step,
    ViewportConfig,
    Workflow,
)

__all__ = [
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "Activity",
    "BrowserConfig",
    "Environment",
    "ErrorHandler",
    "Evaluator",
    "Executor",
    "ExecutorConfig",
    "ForEachConfig",
    "Registry",
    "Resolver",
    "RetryConfig",
    "Screenshot",
    "Status",
    "Step",
    "StepResult",
    "ViewportConfig",
    "Workflow",
    "WorkflowResult",
    "default_registry",
    "is_truthy",
    "parse",
    "parse_file",
    "parse_json",
    "parse_yaml",
    "stringify",
    "validate_workflow",
]
