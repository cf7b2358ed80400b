"""Tests for quantity and unit normalization."""

import pytest

from nutriai.domain.quantity import DEFAULT_UNIT, clean_unit, normalize_quantity


@pytest.mark.parametrize(
    ("value", "unit", "expected"),
    [
        (2, "slices", (2.0, "slices")),
        (1.5, None, (1.5, DEFAULT_UNIT)),
        ("1.5 cups", None, (1.5, "cups")),
        ("2slices", None, (2.0, "slices")),
        (".5 cup", None, (0.5, "cup")),
        ("1/2 cup", None, (0.5, "cup")),
        ("1 serving", None, (1.0, DEFAULT_UNIT)),
        ("servings", None, (1.0, DEFAULT_UNIT)),
        ("3", "undefined", (3.0, DEFAULT_UNIT)),
        ("2 cups", "tbsp", (2.0, "tbsp")),
        ("2 cups", "", (2.0, "cups")),
    ],
)
def test_normalize_quantity_parses_loose_values(value, unit, expected) -> None:
    result = normalize_quantity(value, unit)

    assert (result.quantity, result.unit) == expected


@pytest.mark.parametrize(
    "value",
    [
        None,
        "",
        "a handful",
        0,
        -2,
        "0 cups",
        "1/0 cup",
        float("nan"),
        float("inf"),
        10**400,
        True,
    ],
)
def test_normalize_quantity_defaults_unusable_amounts(value) -> None:
    result = normalize_quantity(value)

    assert result.quantity == 1.0
    assert result.unit


def test_normalize_quantity_keeps_text_unit_when_amount_missing() -> None:
    result = normalize_quantity("handful")

    assert result == normalize_quantity(1, "handful")


@pytest.mark.parametrize(
    "unit", ["undefined", "null", "undefined cup", "cup undefined", "N/A", " - "]
)
def test_unit_never_contains_absence_marker(unit) -> None:
    result = normalize_quantity(1, unit)

    assert "undefined" not in result.unit
    assert "null" not in result.unit
    assert result.unit


def test_clean_unit_strips_embedded_marker() -> None:
    assert clean_unit("undefined cup") == "cup"
    assert clean_unit("null") == ""
    assert clean_unit("Servings") == DEFAULT_UNIT
