from __future__ import annotations

import base64
import threading

import pytest

from vibium.bidi import BiDiClient
from vibium.errors import BiDiError, ConnectionClosedError, ElementNotFoundError, WaitTimeoutError
from vibium.session import Session, _route_matches
from vibium.types import FindOptions

PNG = b"\x89PNG\r\n\x1a\nfake"


def _script_result(value):  # noqa: ANN001,ANN202
    return {"type": "success", "result": {"type": "string", "value": value}}


def _install_page(daemon) -> None:  # noqa: ANN001
    def call_function(params):  # noqa: ANN001,ANN202
        source = params.get("functionDeclaration", "")
        if "document.title" in source:
            return _script_result("Example Domain")
        if "location.href" in source:
            return _script_result("https://example.com/")
        if "throw" in source:
            return {"type": "exception", "exceptionDetails": {"text": "Error: nope"}}
        return _script_result(None)

    def find(params):  # noqa: ANN001,ANN202
        if params.get("selector") == "#missing":
            raise daemon.Error("no such element", "no element matches #missing")
        if params.get("selector") == "#slow":
            return None
        return {"tag": "a", "text": "More information...", "box": {"x": 10, "y": 20, "width": 100, "height": 18}}

    daemon.handlers["browsingContext.getTree"] = lambda params: {"contexts": [{"context": "ctx-1", "url": "about:blank"}]}
    daemon.handlers["browsingContext.captureScreenshot"] = lambda params: {"data": base64.b64encode(PNG).decode()}
    daemon.handlers["script.callFunction"] = call_function
    daemon.handlers["vibium:find"] = find


@pytest.fixture
def session(daemon):  # noqa: ANN001,ANN201
    _install_page(daemon)
    vibe = Session(BiDiClient.connect(daemon.url), owner=True)
    try:
        yield vibe
    finally:
        vibe.quit()


def test_navigate_and_screenshot(session, daemon) -> None:  # noqa: ANN001
    session.go("https://example.com")
    data = session.screenshot()

    assert data.startswith(b"\x89PNG")
    navigate = daemon.params_for("browsingContext.navigate")
    assert navigate == [{"context": "ctx-1", "url": "https://example.com", "wait": "complete"}]
    assert daemon.params_for("browsingContext.captureScreenshot") == [{"context": "ctx-1"}]


def test_context_id_is_fetched_once(session, daemon) -> None:  # noqa: ANN001
    assert session.context_id() == "ctx-1"
    session.reload()
    session.back()
    assert daemon.methods().count("browsingContext.getTree") == 1
    assert daemon.params_for("browsingContext.traverseHistory") == [{"context": "ctx-1", "delta": -1}]


def test_title_and_url(session) -> None:  # noqa: ANN001
    assert session.title() == "Example Domain"
    assert session.url() == "https://example.com/"


def test_evaluate_exception_raises(session) -> None:  # noqa: ANN001
    with pytest.raises(BiDiError) as info:
        session.evaluate("throw new Error('nope')")
    assert "nope" in str(info.value)


def test_find_returns_element_with_info(session, daemon) -> None:  # noqa: ANN001
    link = session.find("a", FindOptions(timeout=5.0, role="link"))

    assert link.selector == "a"
    assert link.info.tag == "a"
    assert link.info.text == "More information..."
    assert link.center() == (60.0, 29.0)
    sent = daemon.params_for("vibium:find")[-1]
    assert sent["selector"] == "a"
    assert sent["role"] == "link"
    assert sent["timeout"] == 5000
    assert "text" not in sent


def test_find_missing_element(session) -> None:  # noqa: ANN001
    with pytest.raises(ElementNotFoundError) as info:
        session.find("#missing")
    assert str(info.value) == "element not found: #missing"


def test_find_timeout(session) -> None:  # noqa: ANN001
    with pytest.raises(WaitTimeoutError) as info:
        session.find("#slow", FindOptions(timeout=0.2))
    assert info.value.selector == "#slow"


def test_element_click_sends_selector_and_timeout(session, daemon) -> None:  # noqa: ANN001
    session.find("a").click()
    click = daemon.params_for("vibium:click")[-1]
    assert click["context"] == "ctx-1"
    assert click["selector"] == "a"
    assert click["timeout"] == 30000


def test_quit_is_idempotent_and_closes_transport(daemon) -> None:  # noqa: ANN001
    _install_page(daemon)
    vibe = Session(BiDiClient.connect(daemon.url), owner=True)
    vibe.quit()
    vibe.quit()

    assert vibe.closed
    assert vibe.client.closed
    with pytest.raises(ConnectionClosedError):
        vibe.title()


def test_derived_page_does_not_close_shared_transport(session, daemon) -> None:  # noqa: ANN001
    daemon.handlers["browsingContext.create"] = lambda params: {"context": "ctx-2"}
    page = session.new_page()
    assert page.context_id() == "ctx-2"

    page.quit()
    assert page.closed
    assert not session.client.closed
    assert session.title() == "Example Domain"


def test_console_events_are_filtered_by_context(session, daemon) -> None:  # noqa: ANN001
    got = threading.Event()
    messages = []

    def on_console(msg) -> None:  # noqa: ANN001
        messages.append(msg)
        got.set()

    session.on_console(on_console)
    assert "vibium:console.on" in daemon.methods()

    daemon.push("log.entryAdded", {"source": {"context": "other"}, "level": "info", "text": "elsewhere"})
    daemon.push("log.entryAdded", {"source": {"context": "ctx-1"}, "level": "warn", "text": "here"})
    assert got.wait(2)
    assert [m.text for m in messages] == ["here"]
    assert messages[0].type == "warn"


def test_route_patterns() -> None:
    assert _route_matches("**/api/*", "https://x.test/api/users")
    assert _route_matches(r"\.png$", "https://x.test/logo.png")
    assert not _route_matches("https://x.test/api/*", "https://y.test/api/users")


def test_wait_for_navigation_polls_until_complete(session, daemon) -> None:  # noqa: ANN001
    states = iter(["loading", "interactive", "complete"])
    daemon.handlers["script.callFunction"] = lambda params: _script_result(next(states))
    session.wait_for_navigation(5.0)
    assert daemon.methods().count("script.callFunction") == 3


def test_wait_for_navigation_after_quit(session) -> None:  # noqa: ANN001
    session.quit()
    with pytest.raises(ConnectionClosedError):
        session.wait_for_navigation(0.3)


def test_wait_for_navigation_stops_when_daemon_drops(session, daemon) -> None:  # noqa: ANN001
    session.context_id()
    daemon.handlers["script.callFunction"] = lambda params: None
    threading.Timer(0.1, daemon.drop).start()
    with pytest.raises(ConnectionClosedError):
        session.wait_for_navigation(5.0)


def test_find_uses_timeout_from_environment(session, daemon, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("VIBIUM_TIMEOUT", "4")
    session.find("a")
    assert daemon.params_for("vibium:find")[-1]["timeout"] == 4000
