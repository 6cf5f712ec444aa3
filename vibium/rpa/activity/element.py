"""Element lookup and state activities."""

from __future__ import annotations

from typing import Any

from ...context import Context
from ...element import Element
from ...errors import ElementNotFoundError, WaitTimeoutError
from ...types import FindOptions
from .base import Activity, Environment, get_string, get_string_default, get_timeout, require_string
from .browser import find_element


def describe(element: Element) -> dict[str, Any]:
    return {
        "selector": element.selector,
        "tag": element.info.tag,
        "text": element.info.text,
        "box": element.info.box.to_dict(),
    }


class Find(Activity):
    name = "element.find"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        selector = require_string(params, "selector")
        opts = FindOptions(
            timeout=get_timeout(params),
            role=get_string(params, "role"),
            text=get_string(params, "text"),
            label=get_string(params, "label"),
            test_id=get_string(params, "testId"),
        )
        return describe(env.require_session().find(selector, opts, ctx=ctx))


class FindAll(Activity):
    name = "element.findAll"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        selector = require_string(params, "selector")
        return [describe(el) for el in env.require_session().find_all(selector, ctx=ctx)]


class GetText(Activity):
    name = "element.getText"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, _ = find_element(ctx, params, env)
        return element.text(ctx=ctx)


class GetValue(Activity):
    name = "element.getValue"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, _ = find_element(ctx, params, env)
        return element.value(ctx=ctx)


class GetAttribute(Activity):
    name = "element.getAttribute"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        attr = require_string(params, "name")
        element, _ = find_element(ctx, params, env)
        return element.get_attribute(attr, ctx=ctx)


class WaitFor(Activity):
    """Wait for ``state`` (default ``visible``)."""

    name = "element.waitFor"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, opts = find_element(ctx, params, env)
        element.wait_until(get_string_default(params, "state", "visible"), opts.timeout, ctx=ctx)
        return None


class IsVisible(Activity):
    """``False`` rather than an error when nothing matches."""

    name = "element.isVisible"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        try:
            element, _ = find_element(ctx, params, env)
        except (ElementNotFoundError, WaitTimeoutError):
            return False
        return element.is_visible(ctx=ctx)


ACTIVITIES: tuple[Activity, ...] = (
    Find(),
    FindAll(),
    GetText(),
    GetValue(),
    GetAttribute(),
    WaitFor(),
    IsVisible(),
)
