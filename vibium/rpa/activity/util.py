"""Logging, waiting, assertions and variables."""

from __future__ import annotations

import logging
from typing import Any

from ...context import Context
from ...durations import parse_duration
from ...errors import AssertionFailedError
from ..variables import Evaluator, Resolver
from .base import Activity, Environment, get_int, get_string, get_string_default, require_string

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Log(Activity):
    name = "util.log"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        level = _LEVELS.get(get_string_default(params, "level", "info").lower(), logging.INFO)
        env.logger.log(level, get_string(params, "message"))
        return None


class Wait(Activity):
    """Sleep for ``duration`` ("1.5s") or ``ms``; wakes early on cancellation."""

    name = "util.wait"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        if duration := get_string(params, "duration"):
            ctx.sleep(parse_duration(duration))
            return None
        if (ms := get_int(params, "ms")) > 0:
            ctx.sleep(ms / 1000.0)
            return None
        raise ValueError("duration or ms parameter is required")


class Assert(Activity):
    name = "util.assert"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        condition = params.get("condition")
        message = get_string_default(params, "message", "assertion failed")

        if isinstance(condition, bool):
            holds = condition
        elif isinstance(condition, str):
            holds = Evaluator(Resolver(dict(env.variables))).evaluate(condition)
        else:
            holds = condition is not None

        if not holds:
            raise AssertionFailedError(message, expected=True, actual=condition)
        return None


class SetVariable(Activity):
    """Return ``value``; the interpreter stores it under ``name``."""

    name = "util.setVariable"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        require_string(params, "name")
        return params.get("value")

    def store_name(self, params: dict[str, Any]) -> str | None:
        return get_string(params, "name") or None


ACTIVITIES: tuple[Activity, ...] = (Log(), Wait(), Assert(), SetVariable())
