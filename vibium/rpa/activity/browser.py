"""Page-level activities: navigation, form input, scrolling and capture."""

from __future__ import annotations

import base64
from typing import Any

from ...context import Context
from ...element import Element
from ...types import ActionOptions, FindOptions, PDFOptions, SelectOptionValues
from .base import (
    Activity,
    Environment,
    get_bool,
    get_float,
    get_int,
    get_string,
    get_timeout,
    require_string,
)


def find_element(ctx: Context, params: dict[str, Any], env: Environment) -> tuple[Element, ActionOptions]:
    """Resolve the ``selector`` param, honouring the step's ``timeout`` (ms)."""
    selector = require_string(params, "selector")
    timeout = get_timeout(params)
    element = env.require_session().find(selector, FindOptions(timeout=timeout), ctx=ctx)
    return element, ActionOptions(timeout=timeout)


class Navigate(Activity):
    name = "browser.navigate"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        url = require_string(params, "url")
        session = env.require_session()
        session.go(url, ctx=ctx)
        wait = get_string(params, "waitUntil") or get_string(params, "wait")
        if wait:
            session.wait_for_load(wait, get_timeout(params), ctx=ctx)
        return None


class Click(Activity):
    name = "browser.click"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, opts = find_element(ctx, params, env)
        element.click(opts, ctx=ctx)
        return None


class Fill(Activity):
    """Clear the input, then set its value."""

    name = "browser.fill"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, opts = find_element(ctx, params, env)
        element.fill(get_string(params, "value"), opts, ctx=ctx)
        return None


class Type(Activity):
    """Type text key by key without clearing."""

    name = "browser.type"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        text = require_string(params, "text")
        element, opts = find_element(ctx, params, env)
        element.type(text, opts, ctx=ctx)
        return None


class SelectOption(Activity):
    name = "browser.select"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, opts = find_element(ctx, params, env)
        values = SelectOptionValues()
        if value := get_string(params, "value"):
            values.values = [value]
        if label := get_string(params, "label"):
            values.labels = [label]
        if (index := get_int(params, "index")) > 0:
            values.indexes = [index]
        element.select_option(values, opts, ctx=ctx)
        return None


class Check(Activity):
    name = "browser.check"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, opts = find_element(ctx, params, env)
        element.check(opts, ctx=ctx)
        return None


class Uncheck(Activity):
    name = "browser.uncheck"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        element, opts = find_element(ctx, params, env)
        element.uncheck(opts, ctx=ctx)
        return None


class Scroll(Activity):
    """Scroll an element into view, or the window by ``deltaX``/``deltaY``."""

    name = "browser.scroll"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        if get_string(params, "selector"):
            element, opts = find_element(ctx, params, env)
            element.scroll_into_view(opts, ctx=ctx)
            return None
        dx, dy = get_int(params, "deltaX"), get_int(params, "deltaY")
        env.require_session().evaluate(f"window.scrollBy({dx}, {dy})", ctx=ctx)
        return None


class Screenshot(Activity):
    """Base64 PNG of the page, or of one element when ``selector`` is set."""

    name = "browser.screenshot"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        if get_string(params, "selector"):
            element, _ = find_element(ctx, params, env)
            data = element.screenshot(ctx=ctx)
        else:
            data = env.require_session().screenshot(ctx=ctx)
        return base64.b64encode(data).decode("ascii")


class PDF(Activity):
    name = "browser.pdf"

    def execute(self, ctx: Context, params: dict[str, Any], env: Environment) -> Any:
        opts = PDFOptions(
            print_background=get_bool(params, "printBackground"),
            landscape=get_bool(params, "landscape"),
            display_header=get_bool(params, "displayHeader"),
            display_footer=get_bool(params, "displayFooter"),
            scale=max(0.0, get_float(params, "scale")),
            format=get_string(params, "format"),
        )
        data = env.require_session().pdf(opts, ctx=ctx)
        return base64.b64encode(data).decode("ascii")


ACTIVITIES: tuple[Activity, ...] = (
    Navigate(),
    Click(),
    Fill(),
    Type(),
    SelectOption(),
    Check(),
    Uncheck(),
    Scroll(),
    Screenshot(),
    PDF(),
)
