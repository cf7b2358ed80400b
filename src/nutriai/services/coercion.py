"""Coercion of loose analysis payloads into the canonical MealAnalysis."""

import logging
import math

from pydantic import ValidationError

from nutriai.domain.analysis import MACRO_FIELDS, NUTRIENT_FIELDS, MealAnalysis
from nutriai.domain.errors import AnalysisValidationError

_logger = logging.getLogger(__name__)

_TOTAL_KEYS = {
    "calories": "totalCalories",
    "protein": "totalProtein",
    "carbs": "totalCarbs",
    "fat": "totalFat",
}


def coerce_analysis(raw: object) -> MealAnalysis:
    """Validate a raw payload, reporting every offending field path."""
    if not isinstance(raw, dict):
        raise AnalysisValidationError(["<root>: expected a JSON object"])
    try:
        return MealAnalysis.model_validate(raw)
    except ValidationError as exc:
        raise AnalysisValidationError(_format_issues(exc)) from exc


def coerce_existing_analysis(raw: object) -> MealAnalysis:
    """Accept a caller-supplied analysis in either the flat or nested shape.

    Nested ``nutrition`` objects on items (at any depth) and a top-level
    ``totalNutrition`` object are flattened before validation.
    """
    if not isinstance(raw, dict):
        raise AnalysisValidationError(["<root>: expected a JSON object"])
    flattened = dict(raw)
    foods = flattened.get("foods")
    if isinstance(foods, list):
        flattened["foods"] = [_flatten_item(item) for item in foods]
    nested_totals = flattened.pop("totalNutrition", None)
    if isinstance(nested_totals, dict):
        for key, alias in _TOTAL_KEYS.items():
            flattened.setdefault(alias, nested_totals.get(key))

    analysis = coerce_analysis(flattened)
    _warn_on_total_mismatch(flattened, analysis)
    return analysis


def _flatten_item(item: object) -> object:
    if not isinstance(item, dict):
        return item
    flat = {key: value for key, value in item.items() if key != "nutrition"}
    nutrition = item.get("nutrition")
    if isinstance(nutrition, dict):
        for key in NUTRIENT_FIELDS:
            if key in nutrition and flat.get(key) is None:
                flat[key] = nutrition[key]
    flat.pop("confidence", None)
    ingredients = flat.get("ingredients")
    if isinstance(ingredients, list):
        flat["ingredients"] = [_flatten_item(child) for child in ingredients]
    return flat


def _warn_on_total_mismatch(payload: dict[str, object], analysis: MealAnalysis) -> None:
    computed = {
        "calories": analysis.total_calories,
        "protein": analysis.total_protein,
        "carbs": analysis.total_carbs,
        "fat": analysis.total_fat,
    }
    for key in MACRO_FIELDS:
        supplied = payload.get(_TOTAL_KEYS[key])
        if not isinstance(supplied, int | float) or isinstance(supplied, bool):
            continue
        try:
            value = float(supplied)
        except OverflowError:
            value = math.inf
        if not math.isclose(value, computed[key], abs_tol=0.5):
            _logger.warning(
                "Supplied total %s=%s differs from recomputed %s; using recomputed",
                _TOTAL_KEYS[key],
                supplied,
                computed[key],
            )


def _format_issues(exc: ValidationError) -> list[str]:
    issues = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "<root>"
        issues.append(f"{path}: {error['msg']}")
    return issues
