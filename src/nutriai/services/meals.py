"""Meal group persistence service."""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID, uuid4

from nutriai.domain.analysis import (
    NUTRIENT_FIELDS,
    ConversationTurn,
    FoodItem,
    MealAnalysis,
)
from nutriai.domain.errors import ConflictError, EngineError, PersistenceError
from nutriai.domain.meals import (
    DailyTotalRecord,
    MacroTotals,
    MealCategory,
    MealEntryDraft,
    MealEntryRecord,
    MealGroup,
)

_logger = logging.getLogger(__name__)


class MealLogRepository(Protocol):
    """Persistence interface for daily totals, food definitions and entries."""

    def get_daily_total(self, user_id: str, day: date) -> DailyTotalRecord | None:
        """Return the daily total for a user and day."""

    def create_daily_total(self, user_id: str, day: date) -> DailyTotalRecord:
        """Create a zeroed daily total."""

    def get_daily_total_by_id(self, daily_total_id: UUID) -> DailyTotalRecord | None:
        """Return a daily total by id."""

    def update_daily_total(self, daily_total_id: UUID, totals: MacroTotals) -> None:
        """Overwrite the totals of a daily total row."""

    def find_food_definition(
        self, name: str, quantity: float, unit: str
    ) -> UUID | None:
        """Return the id of a matching food definition."""

    def create_food_definition(self, food: FoodItem) -> UUID:
        """Create a food definition from an analyzed item."""

    def create_meal_entries(self, drafts: list[MealEntryDraft]) -> None:
        """Insert logged entries in one batch."""

    def list_group_entries(self, meal_group_id: UUID) -> list[MealEntryRecord]:
        """Return every logged entry of a meal group."""

    def update_group_history(
        self,
        meal_group_id: UUID,
        history: list[ConversationTurn],
        expected_version: int,
    ) -> bool:
        """Replace the group history if its version is unchanged."""

    def delete_entries(self, entry_ids: list[UUID]) -> None:
        """Delete logged entries by id."""


@dataclass
class MealLogService:
    """Service that maps analyses onto normalized rows and daily totals."""

    repository: MealLogRepository

    def log_meal(
        self,
        analysis: MealAnalysis,
        user_id: str,
        day: date,
        meal_category: MealCategory,
    ) -> UUID:
        """Persist a first analysis as a new meal group and return its id."""
        _ensure_complete_nutrients(analysis)
        meal_group_id = uuid4()
        history = [ConversationTurn(role="assistant", content=analysis.serialize())]
        try:
            daily_total = self._daily_total(user_id, day)
            drafts = self._build_drafts(
                analysis,
                user_id=user_id,
                daily_total_id=daily_total.id,
                meal_group_id=meal_group_id,
                meal_category=meal_category,
                history=history,
                history_version=0,
            )
            self.repository.create_meal_entries(drafts)
            self.repository.update_daily_total(
                daily_total.id, daily_total.totals + analysis_totals(analysis)
            )
        except EngineError:
            raise
        except Exception as exc:
            raise PersistenceError("Failed to save meal") from exc

        _logger.info(
            "Logged meal group %s with %s item(s)", meal_group_id, len(drafts)
        )
        return meal_group_id

    def load_group(self, meal_group_id: UUID) -> MealGroup | None:
        """Return the meal group with its shared history, or None if empty."""
        try:
            entries = self.repository.list_group_entries(meal_group_id)
        except Exception as exc:
            raise PersistenceError("Failed to load meal group") from exc
        if not entries:
            return None
        first = entries[0]
        return MealGroup(
            meal_group_id=meal_group_id,
            entries=entries,
            history=list(first.correction_history),
            version=first.history_version,
        )

    def record_history(
        self, group: MealGroup, history: list[ConversationTurn]
    ) -> int:
        """Write the new history to every entry and return the new version."""
        try:
            updated = self.repository.update_group_history(
                group.meal_group_id, history, expected_version=group.version
            )
        except Exception as exc:
            raise PersistenceError("Failed to save correction history") from exc
        if not updated:
            raise ConflictError(
                "Meal was changed by another request; reload and retry"
            )
        return group.version + 1

    def restore_history(self, group: MealGroup, version: int) -> None:
        """Put back the history a group had before a failed revision."""
        try:
            restored = self.repository.update_group_history(
                group.meal_group_id, group.history, expected_version=version
            )
        except Exception:
            _logger.exception(
                "Failed to restore history of meal group %s", group.meal_group_id
            )
            return
        if not restored:
            _logger.warning(
                "History of meal group %s changed before it could be restored",
                group.meal_group_id,
            )

    def revise_group(
        self,
        group: MealGroup,
        analysis: MealAnalysis,
        history: list[ConversationTurn],
    ) -> None:
        """Replace the group's rows with a refined analysis and adjust the day.

        New rows are inserted before the old ones are deleted, so a failed
        insert leaves the group as it was.
        """
        _ensure_complete_nutrients(analysis)
        first = group.entries[0]
        previous = group.contribution
        try:
            daily_total = self.repository.get_daily_total_by_id(first.daily_total_id)
            if daily_total is None:
                raise PersistenceError("Daily total for meal group is missing")
            drafts = self._build_drafts(
                analysis,
                user_id=first.user_id,
                daily_total_id=daily_total.id,
                meal_group_id=group.meal_group_id,
                meal_category=first.meal_category,
                history=history,
                history_version=group.version + 1,
            )
            self.repository.create_meal_entries(drafts)
            self.repository.delete_entries([entry.id for entry in group.entries])
            delta = analysis_totals(analysis) - previous
            self.repository.update_daily_total(
                daily_total.id, daily_total.totals + delta
            )
        except EngineError:
            raise
        except Exception as exc:
            raise PersistenceError("Failed to update meal") from exc

        _logger.info("Revised meal group %s", group.meal_group_id)

    def _daily_total(self, user_id: str, day: date) -> DailyTotalRecord:
        existing = self.repository.get_daily_total(user_id, day)
        if existing is not None:
            return existing
        return self.repository.create_daily_total(user_id, day)

    def _build_drafts(  # noqa: PLR0913
        self,
        analysis: MealAnalysis,
        *,
        user_id: str,
        daily_total_id: UUID,
        meal_group_id: UUID,
        meal_category: MealCategory,
        history: list[ConversationTurn],
        history_version: int,
    ) -> list[MealEntryDraft]:
        drafts = []
        for food in analysis.foods:
            food_definition_id = self.repository.find_food_definition(
                food.name, food.quantity, food.unit
            )
            if food_definition_id is None:
                food_definition_id = self.repository.create_food_definition(food)
            drafts.append(
                MealEntryDraft(
                    user_id=user_id,
                    daily_total_id=daily_total_id,
                    food_definition_id=food_definition_id,
                    meal_group_id=meal_group_id,
                    meal_category=meal_category,
                    name=food.name,
                    quantity=food.quantity,
                    unit=food.unit,
                    totals=food_totals(food),
                    notes=analysis.notes,
                    correction_history=list(history),
                    history_version=history_version,
                )
            )
        return drafts


def analysis_totals(analysis: MealAnalysis) -> MacroTotals:
    """Return the top-level totals of an analysis."""
    return MacroTotals(
        calories=analysis.total_calories,
        protein=analysis.total_protein,
        carbs=analysis.total_carbs,
        fat=analysis.total_fat,
    )


def food_totals(food: FoodItem) -> MacroTotals:
    """Return the macro totals of one item."""
    return MacroTotals(
        calories=food.calories, protein=food.protein, carbs=food.carbs, fat=food.fat
    )


def _ensure_complete_nutrients(analysis: MealAnalysis) -> None:
    for index, food in enumerate(analysis.foods):
        for key in NUTRIENT_FIELDS:
            value = getattr(food, key, None)
            if not isinstance(value, int | float) or not math.isfinite(value):
                raise PersistenceError(
                    f"Item {index + 1} ({food.name}) has no usable {key} value"
                )
