from __future__ import annotations

import pytest

from dashstate._normalize import as_mapping, first_present, safe_float, safe_str, string_list


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1, 1.0),
        ("2.5", 2.5),
        ("--", None),
        ("", None),
        (None, None),
        (True, None),
        ("abc", None),
        (float("inf"), None),
        (float("nan"), None),
    ],
)
def test_safe_float(value: object, expected: float | None) -> None:
    assert safe_float(value) == expected


def test_safe_str_trims_and_drops_blank() -> None:
    assert safe_str("  api ") == "api"
    assert safe_str("   ") is None
    assert safe_str(None) is None
    assert safe_str(3) == "3"


def test_first_present_skips_missing_and_empty() -> None:
    data = {"status": "", "health": None, "state": "up"}

    assert first_present(data, "status", "health", "state") == "up"
    assert first_present(data, "status") is None
    assert first_present({"n": 0}, "n") == 0


def test_string_list_and_as_mapping() -> None:
    assert string_list(["a", "", None, 3]) == ["a", "3"]
    assert string_list("solo") == ["solo"]
    assert string_list({"a": 1}) == []
    assert as_mapping([("a", 1)]) == {}
    assert as_mapping({"a": 1}) == {"a": 1}
