from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Any

import pytest

from vibium.errors import AssertionFailedError, ElementNotFoundError, VibiumError, WorkflowValidationError
from vibium.script import ScriptRunner, ScriptStepError, load_script, parse_script


class FakeElement:
    def __init__(self, page: FakePage, selector: str) -> None:
        self.page = page
        self.selector = selector

    def click(self, opts=None, *, ctx=None) -> None:  # noqa: ANN001
        self.page.log.append(("click", self.selector))
        target = self.page.links.get(self.selector)
        if target:
            self.page.current_url = target

    def fill(self, value, opts=None, *, ctx=None) -> None:  # noqa: ANN001
        self.page.log.append(("fill", self.selector, value))
        self.page.values[self.selector] = value

    def press(self, key, opts=None, *, ctx=None) -> None:  # noqa: ANN001
        self.page.log.append(("press", self.selector, key))

    def text(self, *, ctx=None) -> str:  # noqa: ANN001
        return self.page.texts.get(self.selector, "")

    def value(self, *, ctx=None) -> str:  # noqa: ANN001
        return self.page.values.get(self.selector, "")

    def get_attribute(self, name, *, ctx=None):  # noqa: ANN001,ANN201
        return self.page.attrs.get((self.selector, name))

    def is_visible(self, *, ctx=None) -> bool:  # noqa: ANN001
        return self.selector not in self.page.hidden

    def is_hidden(self, *, ctx=None) -> bool:  # noqa: ANN001
        return self.selector in self.page.hidden


class FakePage:
    def __init__(self, name: str = "main") -> None:
        self.name = name
        self.current_url = "about:blank"
        self.page_title = "Example Domain"
        self.present: set[str] = set()
        self.hidden: set[str] = set()
        self.texts: dict[str, str] = {}
        self.values: dict[str, str] = {}
        self.attrs: dict[tuple[str, str], str] = {}
        self.links: dict[str, str] = {}
        self.log: list[tuple[Any, ...]] = []
        self.children: list[FakePage] = []
        self.closed = False

    def go(self, url, *, ctx=None) -> None:  # noqa: ANN001
        self.log.append(("go", url))
        self.current_url = url

    def find(self, selector, opts=None, *, ctx=None) -> FakeElement:  # noqa: ANN001
        if selector not in self.present:
            raise ElementNotFoundError(selector)
        return FakeElement(self, selector)

    def url(self, *, ctx=None) -> str:  # noqa: ANN001
        return self.current_url

    def title(self, *, ctx=None) -> str:  # noqa: ANN001
        return self.page_title

    def screenshot(self, *, ctx=None) -> bytes:  # noqa: ANN001
        return b"\x89PNG"

    def evaluate(self, script, *, ctx=None):  # noqa: ANN001,ANN201
        self.log.append(("eval", script))
        return 42

    def new_page(self, *, ctx=None) -> FakePage:  # noqa: ANN001
        child = FakePage(f"{self.name}-child")
        self.children.append(child)
        return child

    def close(self, *, ctx=None) -> None:  # noqa: ANN001
        self.closed = True


def test_navigate_fill_and_assert() -> None:
    page = FakePage()
    page.present |= {"#q", "#go", "h1"}
    page.links["#go"] = "https://example.com/results"
    page.texts["h1"] = "Results for vibium"
    script = parse_script(
        """
name: search
baseUrl: https://example.com
variables:
  term: vibium
steps:
  - action: navigate
    url: /search
  - action: fill
    selector: "#q"
    value: ${term}
  - action: assertValue
    selector: "#q"
    expected: ${term}
  - action: click
    selector: "#go"
  - action: assertUrl
    pattern: /results$
  - action: assertText
    selector: h1
    expected: for ${term}
  - action: assertTitle
    expected: Example
"""
    )
    result = ScriptRunner(page).run(script)

    assert result.name == "search"
    assert result.completed == 7
    assert result.warnings == []
    assert page.log[0] == ("go", "https://example.com/search")
    assert ("fill", "#q", "vibium") in page.log


def test_variable_overrides_win() -> None:
    page = FakePage()
    page.present.add("#q")
    script = parse_script("variables: {term: a}\nsteps:\n  - {action: fill, selector: '#q', value: '${term}'}\n")
    ScriptRunner(page, variables={"term": "b"}).run(script)
    assert page.values["#q"] == "b"


def test_failing_assertion_stops_with_step_error() -> None:
    page = FakePage()
    page.present.add("h1")
    page.texts["h1"] = "Hello"
    script = parse_script(
        """
steps:
  - action: assertText
    name: check heading
    selector: h1
    expected: Goodbye
  - action: navigate
    url: https://never.test
"""
    )
    with pytest.raises(ScriptStepError) as info:
        ScriptRunner(page).run(script)

    err = info.value
    assert err.index == 1
    assert err.name == "check heading"
    assert isinstance(err.cause, AssertionFailedError)
    assert err.cause.expected == "Goodbye"
    assert err.cause.actual == "Hello"
    assert str(err).startswith("step 1 (check heading) failed: text assertion failed")
    assert page.log == []


def test_continue_on_error_collects_warnings() -> None:
    page = FakePage()
    script = parse_script(
        """
steps:
  - action: click
    selector: "#missing"
    continueOnError: true
  - action: navigate
    url: https://example.com
"""
    )
    result = ScriptRunner(page).run(script)

    assert result.completed == 1
    assert result.warnings == ["[1] element not found: #missing"]
    assert page.log == [("go", "https://example.com")]


def test_assert_hidden_passes_for_absent_element() -> None:
    page = FakePage()
    page.present |= {".spinner", ".banner"}
    page.hidden.add(".spinner")
    runner = ScriptRunner(page)
    script = parse_script("steps:\n  - {action: assertHidden, selector: .spinner}\n  - {action: assertHidden, selector: .gone}\n")
    assert runner.run(script).completed == 2

    visible = parse_script("steps:\n  - {action: assertHidden, selector: .banner}\n")
    with pytest.raises(ScriptStepError, match="hidden assertion failed"):
        runner.run(visible)


def test_store_and_reuse_extracted_values() -> None:
    page = FakePage()
    page.present.add("a.next")
    page.attrs[("a.next", "href")] = "/page/2"
    script = parse_script(
        """
baseUrl: https://example.com
steps:
  - {action: getAttribute, selector: a.next, attribute: href, store: next}
  - {action: eval, script: "return 6 * 7", store: answer}
  - {action: navigate, url: "${next}?a=${answer}"}
  - {action: getTitle, store: title}
"""
    )
    runner = ScriptRunner(page)
    runner.run(script)

    assert page.current_url == "https://example.com/page/2?a=42"
    assert runner.resolver.get("title") == ("Example Domain", True)


def test_new_page_and_close_page() -> None:
    page = FakePage()
    script = parse_script(
        """
steps:
  - action: newPage
  - action: navigate
    url: https://tab.test
  - action: closePage
  - action: navigate
    url: https://main.test
"""
    )
    ScriptRunner(page).run(script)

    child = page.children[0]
    assert child.log == [("go", "https://tab.test")]
    assert child.closed
    assert page.log == [("go", "https://main.test")]
    assert not page.closed


def test_close_first_page_is_refused() -> None:
    script = parse_script("steps:\n  - action: closePage\n")
    with pytest.raises(ScriptStepError) as info:
        ScriptRunner(FakePage()).run(script)
    assert isinstance(info.value.cause, VibiumError)


def test_screenshot_file_is_private(tmp_path: Path) -> None:
    target = tmp_path / "shot.png"
    script = parse_script(f"steps:\n  - action: screenshot\n    file: {target}\n")
    ScriptRunner(FakePage()).run(script)

    assert target.read_bytes() == b"\x89PNG"
    if os.name == "posix":
        assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_wait_requires_duration() -> None:
    script = parse_script("steps:\n  - action: wait\n")
    with pytest.raises(ScriptStepError, match="invalid duration"):
        ScriptRunner(FakePage()).run(script)


def test_accessibility_assertion_is_unsupported() -> None:
    script = parse_script("steps:\n  - action: assertAccessibility\n    a11y: {standard: wcag21aa}\n")
    assert script.steps[0].a11y.standard == "wcag21aa"
    assert script.steps[0].describe() == "assertAccessibility (wcag21aa)"
    with pytest.raises(ScriptStepError, match="separate accessibility package"):
        ScriptRunner(FakePage()).run(script)


def test_parse_script_validation() -> None:
    with pytest.raises(WorkflowValidationError) as info:
        parse_script("steps:\n  - action: teleport\n  - selector: x\n")
    assert [str(i) for i in info.value.issues] == [
        "steps[0].action: unknown action: teleport",
        "steps[1].action: action is required",
    ]

    with pytest.raises(WorkflowValidationError):
        parse_script("name: empty\n")


def test_parse_script_formats(tmp_path: Path) -> None:
    script = parse_script('{"name": "j", "timeout": "5s", "steps": [{"action": "wait", "duration": "250ms"}]}')
    assert script.name == "j"
    assert script.timeout == 5.0
    assert script.steps[0].duration == pytest.approx(0.25)

    with pytest.raises(ValueError, match="failed to parse JSON script"):
        parse_script("{broken")
    with pytest.raises(ValueError, match="failed to parse YAML script"):
        parse_script("steps: [unclosed")

    path = tmp_path / "s.yaml"
    path.write_text("steps:\n  - action: reload\n")
    assert load_script(path).steps[0].action == "reload"
