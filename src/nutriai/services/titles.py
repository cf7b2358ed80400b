"""Repair of generic meal titles."""

import re
from collections.abc import Sequence

from nutriai.domain.analysis import MealAnalysis

FALLBACK_TITLE = "Meal Entry"

_NUMBER_WORDS = (
    r"\d+|one|two|three|four|five|six|seven|eight|nine|ten|"
    r"several|a few|few|some|many"
)
_GROUP_WORDS = r"separate|various|multiple|distinct|different|mixed|assorted"
_GENERIC_NOUNS = r"meal|food|foods|snack|dish|item|items|unknown|untitled"

_DENYLIST = (
    re.compile(
        rf"^(?:{_NUMBER_WORDS})\s+(?:(?:{_GROUP_WORDS})\s+)?"
        r"(?:food\s+)?(?:items?|foods?|things?|dishes)$"
    ),
    re.compile(rf"^(?:{_GROUP_WORDS})\s+(?:food\s+)?(?:items?|foods?|dishes)$"),
    re.compile(rf"^(?:a\s+|the\s+)?(?:{_GENERIC_NOUNS})$"),
)

_LEADING_QUALIFIERS = re.compile(
    r"^(?:fresh|organic|raw|cooked|grilled|fried|baked)\s+", re.IGNORECASE
)
_TRAILING_SUFFIXES = re.compile(
    r"\s+(?:servings?|portions?|pieces?|items?)$", re.IGNORECASE
)


def is_generic_title(title: str | None) -> bool:
    """Return true when a title says nothing about the food."""
    if not title:
        return True
    normalized = " ".join(title.lower().replace("-", " ").split()).strip(" .!")
    if not normalized:
        return True
    return any(pattern.match(normalized) for pattern in _DENYLIST)


def guard_title(title: str | None, food_names: Sequence[str]) -> str:
    """Return the proposed title, or one derived from the foods if it is generic."""
    if not is_generic_title(title):
        return (title or "").strip()
    return title_from_foods(food_names)


def title_from_foods(food_names: Sequence[str]) -> str:
    """Build a title from the first one or two specific food names."""
    cleaned = [clean_food_name(name) for name in food_names if name.strip()]
    specific = [name for name in cleaned if not is_generic_title(name)]
    if not specific:
        return FALLBACK_TITLE
    title = specific[0] if len(specific) == 1 else f"{specific[0]} & {specific[1]}"
    return FALLBACK_TITLE if is_generic_title(title) else title


def clean_food_name(name: str) -> str:
    """Strip cooking qualifiers and portion suffixes, then capitalise each word."""
    original = " ".join(name.split())
    cleaned = original
    while True:
        stripped = _LEADING_QUALIFIERS.sub("", cleaned)
        if stripped == cleaned:
            break
        cleaned = stripped
    cleaned = _TRAILING_SUFFIXES.sub("", cleaned).strip()
    if not cleaned:
        cleaned = original
    return " ".join(word[:1].upper() + word[1:] for word in cleaned.split())


def guard_analysis_title(analysis: MealAnalysis) -> MealAnalysis:
    """Return the analysis with its title passed through the guard."""
    title = guard_title(analysis.title, [food.name for food in analysis.foods])
    if title == analysis.title:
        return analysis
    return analysis.model_copy(update={"title": title})
