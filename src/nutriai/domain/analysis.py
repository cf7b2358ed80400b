"""Meal analysis contracts shared by extraction, persistence and the API."""

import re
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from nutriai.domain.quantity import normalize_quantity

MACRO_FIELDS = ("calories", "protein", "carbs", "fat")
MICRO_FIELDS = ("fiber", "sugar", "sodium")
NUTRIENT_FIELDS = MACRO_FIELDS + MICRO_FIELDS

_NUMERIC_PREFIX = re.compile(r"^\s*(-?\d+(?:\.\d+)?|-?\.\d+)")


def coerce_number(value: object) -> object:
    """Turn numeric-looking text such as ``"12g"`` or ``"1,200 kcal"`` into a float.

    Anything else is returned untouched so validation can report it.
    """
    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value.replace(",", ""))
        if match:
            return float(match.group(1))
    return value


class FoodItem(BaseModel):
    """Single food component, optionally composed of nested ingredients."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    name: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    unit: str = Field(min_length=1)
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    fiber: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)
    sodium: float = Field(default=0.0, ge=0)
    ingredients: list["FoodItem"] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize_shape(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        normalized = dict(data)
        quantity = normalize_quantity(
            normalized.get("quantity"), normalized.get("unit")
        )
        normalized["quantity"] = quantity.quantity
        normalized["unit"] = quantity.unit
        if isinstance(normalized.get("name"), str):
            normalized["name"] = normalized["name"].strip()
        for key in MICRO_FIELDS:
            if normalized.get(key) is None:
                normalized[key] = 0.0
        if normalized.get("ingredients") is None:
            normalized["ingredients"] = []
        return normalized

    @field_validator(*NUTRIENT_FIELDS, mode="before")
    @classmethod
    def _numeric_text(cls, value: object) -> object:
        return coerce_number(value)


class MealAnalysis(BaseModel):
    """Validated analysis of one meal.

    Totals are always derived from the top-level foods; totals sent by a
    producer are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )

    foods: list[FoodItem] = Field(min_length=1)
    title: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    notes: str = ""

    @field_validator("title", "notes", mode="before")
    @classmethod
    def _text_or_empty(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: object) -> object:
        if value is None:
            return 0.5
        return coerce_number(value)

    # Totals walk the top-level list only. Ingredient values are already
    # included in their parent's numbers; recursing would double count.
    @computed_field(alias="totalCalories")
    @property
    def total_calories(self) -> float:
        return sum(food.calories for food in self.foods)

    @computed_field(alias="totalProtein")
    @property
    def total_protein(self) -> float:
        return sum(food.protein for food in self.foods)

    @computed_field(alias="totalCarbs")
    @property
    def total_carbs(self) -> float:
        return sum(food.carbs for food in self.foods)

    @computed_field(alias="totalFat")
    @property
    def total_fat(self) -> float:
        return sum(food.fat for food in self.foods)

    def to_payload(self) -> dict[str, object]:
        """Return the camelCase JSON-ready representation."""
        return self.model_dump(mode="json", by_alias=True)

    def serialize(self) -> str:
        """Return the JSON text stored in assistant conversation turns."""
        return self.model_dump_json(by_alias=True)


class ConversationTurn(BaseModel):
    """One message of a meal group's correction history."""

    role: Literal["user", "assistant"]
    content: str
