"""Quantity and unit normalization."""

import math
import re
from dataclasses import dataclass

DEFAULT_UNIT = "serving"

_ABSENCE_MARKERS = re.compile(r"\b(?:undefined|null)\b", re.IGNORECASE)
_PLACEHOLDERS = {"", "undefined", "null", "none", "n/a", "na", "-", "?"}
_LEADING_NUMBER = re.compile(
    r"^\s*(?P<num>\d+(?:\.\d+)?|\.\d+)"
    r"(?:\s*/\s*(?P<den>\d+(?:\.\d+)?))?"
    r"\s*(?P<rest>.*)$",
    re.DOTALL,
)


@dataclass(frozen=True)
class Quantity:
    """Numeric amount with a unit label."""

    quantity: float
    unit: str


def normalize_quantity(value: object, unit: object = None) -> Quantity:
    """Split a loose quantity into a positive amount and a clean unit.

    Accepts numbers, numeric strings, strings such as ``"1.5 cups"`` or
    ``"2slices"``, and empty or placeholder values. An explicit ``unit``
    wins over unit text embedded in ``value`` when it is usable. Never raises.
    """
    amount: float | None = None
    embedded_unit = ""
    if isinstance(value, bool):
        value = None
    if isinstance(value, int | float):
        try:
            amount = float(value)
        except OverflowError:
            amount = None
    elif isinstance(value, str):
        amount, embedded_unit = _parse_quantity_text(value)

    if amount is None or not math.isfinite(amount) or amount <= 0:
        amount = 1.0

    explicit = clean_unit(unit) if isinstance(unit, str) else ""
    resolved = explicit or clean_unit(embedded_unit) or DEFAULT_UNIT
    return Quantity(quantity=amount, unit=resolved)


def clean_unit(unit: str) -> str:
    """Return a unit without absence markers, or "" when nothing usable is left."""
    cleaned = _ABSENCE_MARKERS.sub("", unit)
    cleaned = " ".join(cleaned.split())
    if cleaned.lower() in _PLACEHOLDERS:
        return ""
    if cleaned.lower() == "servings":
        return DEFAULT_UNIT
    return cleaned


def _parse_quantity_text(text: str) -> tuple[float | None, str]:
    stripped = text.strip()
    if stripped.lower() in {"serving", "servings"}:
        return 1.0, DEFAULT_UNIT
    match = _LEADING_NUMBER.match(stripped)
    if match is None:
        return None, stripped
    amount: float | None = float(match.group("num"))
    denominator = match.group("den")
    if denominator is not None:
        amount = amount / float(denominator) if float(denominator) else None
    return amount, match.group("rest")
