from __future__ import annotations

import pytest

from vibium.rpa.activity import Activity, Registry, category_of, default_registry, new_default_registry


class Named(Activity):
    def __init__(self, name: str) -> None:
        self.name = name


def test_default_registry_groups_by_prefix() -> None:
    assert default_registry.categories() == ["browser", "data", "element", "file", "http", "util"]
    assert "browser.navigate" in default_registry.list_category("browser")
    assert default_registry.list_category("data") == ["data.scrapeTable"]
    assert default_registry.list_category("nope") == []
    assert len(default_registry) == sum(len(v) for v in default_registry.list_by_category().values())


def test_default_registry_is_rebuilt_fresh() -> None:
    fresh = new_default_registry()
    assert fresh is not default_registry
    assert fresh.list() == default_registry.list()


def test_must_get_raises_for_unknown() -> None:
    assert default_registry.must_get("util.log").name == "util.log"
    assert default_registry.get("util.nope") is None
    with pytest.raises(KeyError, match="activity not found: util.nope"):
        default_registry.must_get("util.nope")


def test_register_replaces_same_name() -> None:
    first, second = Named("custom.thing"), Named("custom.thing")
    registry = Registry([first])
    registry.register(second)

    assert registry.count() == 1
    assert registry.get("custom.thing") is second
    assert registry.list_by_category() == {"custom": ["custom.thing"]}


def test_register_requires_name() -> None:
    with pytest.raises(ValueError):
        Registry().register(Named(""))


@pytest.mark.parametrize(
    "name,category",
    [("browser.click", "browser"), ("a.b.c", "a"), ("plain", "other"), (".hidden", "other")],
)
def test_category_of(name: str, category: str) -> None:
    assert category_of(name) == category
