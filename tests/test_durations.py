from __future__ import annotations

import pytest

from vibium.durations import format_duration, parse_duration


@pytest.mark.parametrize(
    "raw,seconds",
    [
        ("300ms", 0.3),
        ("1.5s", 1.5),
        ("1m30s", 90.0),
        ("2h", 7200.0),
        ("0", 0.0),
        ("-5s", -5.0),
        ("250us", 0.00025),
        (12, 12.0),
        (0.5, 0.5),
    ],
)
def test_parse_duration(raw, seconds) -> None:  # noqa: ANN001
    assert parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["", "5", "soon", "5 s", "1x", True])
def test_parse_duration_rejects(raw) -> None:  # noqa: ANN001
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_format_duration() -> None:
    assert format_duration(0) == "0s"
    assert format_duration(0.25) == "250ms"
    assert format_duration(90) == "1m30s"
    assert format_duration(3601) == "1h0m1s"
