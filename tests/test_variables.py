from __future__ import annotations

import pytest

from vibium.errors import ExpressionError
from vibium.rpa.variables import Evaluator, Resolver, is_truthy, stringify


def test_resolve_replaces_known_and_keeps_unknown() -> None:
    r = Resolver({"name": "World", "n": 3, "flag": True, "missing": None})
    assert r.resolve("Hello, ${name}!") == "Hello, World!"
    assert r.resolve("${n} items, ${flag}") == "3 items, true"
    assert r.resolve("${missing}") == "null"
    assert r.resolve("${nope} stays") == "${nope} stays"


def test_resolve_dotted_paths_and_list_indices() -> None:
    r = Resolver({"user": {"name": "ada", "tags": ["x", "y"]}, "rows": [{"id": 7}]})
    assert r.resolve("${user.name}") == "ada"
    assert r.resolve("${user.tags.1}") == "y"
    assert r.resolve("${rows.0.id}") == "7"
    assert r.resolve("${user.tags}") == '["x", "y"]'
    assert r.get("user.age") == (None, False)
    assert r.get("rows.5") == (None, False)


def test_resolve_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VIBIUM_TEST_HOME", "/home/ada")
    monkeypatch.delenv("VIBIUM_TEST_UNSET", raising=False)
    r = Resolver()
    assert r.resolve("${env.VIBIUM_TEST_HOME}/x") == "/home/ada/x"
    assert r.resolve("[${env.VIBIUM_TEST_UNSET}]") == "[]"


def test_resolve_map_recurses_and_keeps_non_strings() -> None:
    r = Resolver({"base": "https://x.test"})
    out = r.resolve_map({"url": "${base}/a", "opts": {"list": ["${base}", 1]}, "n": 5})
    assert out == {"url": "https://x.test/a", "opts": {"list": ["https://x.test", 1]}, "n": 5}


def test_set_writes_through_to_live_variables() -> None:
    live: dict = {}
    r = Resolver(live)
    r.set("x", 1)
    assert live == {"x": 1}
    assert r.variables is live


def test_stringify() -> None:
    assert stringify(False) == "false"
    assert stringify(1.5) == "1.5"
    assert stringify({"a": 1}) == '{"a": 1}'


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, False),
        ("", False),
        (" FALSE ", False),
        ("0", False),
        ("null", False),
        ("no", True),
        (0, False),
        (2.5, True),
        ([], False),
        ({"a": 1}, True),
    ],
)
def test_truthiness(value, expected) -> None:  # noqa: ANN001
    assert is_truthy(value) is expected


def test_evaluate_comparisons() -> None:
    ev = Evaluator(Resolver({"count": 5, "status": "ok", "name": "a<b"}))
    assert ev.evaluate("${count} > 3")
    assert ev.evaluate("${count} >= 5")
    assert not ev.evaluate("${count} < 5")
    assert ev.evaluate("${count} == 5.0")
    assert ev.evaluate("${status} == 'ok'")
    assert ev.evaluate('${status} != "fail"')
    assert ev.evaluate("${status}")
    assert not ev.evaluate("!${status}")
    assert ev.evaluate("!false")


def test_evaluate_unknown_variable_compares_as_text() -> None:
    ev = Evaluator(Resolver())
    assert ev.evaluate("${missing} == ${missing}")
    assert ev.evaluate("${missing}")


def test_string_ordering_is_rejected() -> None:
    ev = Evaluator(Resolver({"a": "apple"}))
    with pytest.raises(ExpressionError):
        ev.evaluate("${a} > banana")


@pytest.mark.parametrize("expr", ["${a} && ${b}", "true || false"])
def test_logical_operators_are_rejected(expr: str) -> None:
    with pytest.raises(ExpressionError):
        Evaluator(Resolver({"a": 1, "b": 1})).evaluate(expr)


@pytest.mark.parametrize("count", [1, 3, 7])
def test_negation_inverts_comparisons(count: int) -> None:
    ev = Evaluator(Resolver({"count": count}))
    for expr in ("${count} > 3", "${count} == 3", "${count} <= 3", "${count} != 7"):
        assert ev.evaluate("!" + expr) is (not ev.evaluate(expr))


def test_negation_of_text_starting_with_equals() -> None:
    ev = Evaluator(Resolver({}))
    assert ev.evaluate("=x") is True
    assert ev.evaluate("!=x") is False
