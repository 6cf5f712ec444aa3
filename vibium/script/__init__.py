"""YAML/JSON automation scripts: a flat list of browser actions."""

from .runner import DEFAULT_SCRIPT_TIMEOUT, ScriptResult, ScriptRunner, ScriptStepError
from .types import ACTIONS, A11yOptions, Script, ScriptStep, load_script, parse_script, validate_script

__all__ = [
    "ACTIONS",
    "DEFAULT_SCRIPT_TIMEOUT",
    "A11yOptions",
    "Script",
    "ScriptResult",
    "ScriptRunner",
    "ScriptStep",
    "ScriptStepError",
    "load_script",
    "parse_script",
    "validate_script",
]
