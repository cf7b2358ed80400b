"""Domain models for logged meal groups."""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from uuid import UUID

from nutriai.domain.analysis import ConversationTurn


class MealCategory(StrEnum):
    """Meal slot a logged entry belongs to."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class MacroTotals:
    """Calories and macronutrients for a meal or day."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    def __add__(self, other: "MacroTotals") -> "MacroTotals":
        return MacroTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )

    def __sub__(self, other: "MacroTotals") -> "MacroTotals":
        return MacroTotals(
            calories=self.calories - other.calories,
            protein=self.protein - other.protein,
            carbs=self.carbs - other.carbs,
            fat=self.fat - other.fat,
        )


@dataclass(frozen=True)
class DailyTotalRecord:
    """Running nutrition total for a user on one calendar day."""

    id: UUID
    user_id: str
    day: date
    totals: MacroTotals


@dataclass(frozen=True)
class MealEntryDraft:
    """Logged entry ready to be inserted."""

    user_id: str
    daily_total_id: UUID
    food_definition_id: UUID
    meal_group_id: UUID
    meal_category: MealCategory
    name: str
    quantity: float
    unit: str
    totals: MacroTotals
    notes: str
    correction_history: list[ConversationTurn]
    history_version: int


@dataclass(frozen=True)
class MealEntryRecord:
    """Logged entry row."""

    id: UUID
    user_id: str
    daily_total_id: UUID
    food_definition_id: UUID | None
    meal_group_id: UUID
    meal_category: MealCategory
    name: str
    quantity: float
    unit: str
    totals: MacroTotals
    notes: str
    correction_history: list[ConversationTurn]
    history_version: int


@dataclass(frozen=True)
class MealGroup:
    """All logged entries of one meal plus their shared conversation."""

    meal_group_id: UUID
    entries: list[MealEntryRecord]
    history: list[ConversationTurn] = field(default_factory=list)
    version: int = 0

    @property
    def contribution(self) -> MacroTotals:
        """Totals this group currently adds to its daily total."""
        total = MacroTotals()
        for entry in self.entries:
            total = total + entry.totals
        return total
