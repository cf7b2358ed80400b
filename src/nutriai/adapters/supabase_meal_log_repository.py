"""Supabase repository for daily totals, food definitions and meal entries."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from supabase import Client

from nutriai.domain.analysis import ConversationTurn, FoodItem
from nutriai.domain.meals import (
    DailyTotalRecord,
    MacroTotals,
    MealCategory,
    MealEntryDraft,
    MealEntryRecord,
)
from nutriai.services.meals import MealLogRepository

_ENTRY_COLUMNS = (
    "id, user_id, daily_log_id, food_item_id, meal_group_id, meal_type, "
    "name_snapshot, quantity, unit, calories, protein, carbs, fat, notes, "
    "correction_history, history_version"
)
_DAILY_COLUMNS = (
    "id, user_id, date, total_calories, total_protein, total_carbs, total_fat"
)


@dataclass
class SupabaseMealLogRepository(MealLogRepository):
    """Supabase implementation for meal groups."""

    client: Client

    def get_daily_total(self, user_id: str, day: date) -> DailyTotalRecord | None:
        """Return the daily log row for a user and day."""
        response = (
            self.client.table("daily_logs")
            .select(_DAILY_COLUMNS)
            .eq("user_id", user_id)
            .eq("date", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_daily(response.data[0])

    def create_daily_total(self, user_id: str, day: date) -> DailyTotalRecord:
        """Create a daily log row with zero totals."""
        response = (
            self.client.table("daily_logs")
            .insert(
                {
                    "user_id": user_id,
                    "date": day.isoformat(),
                    "total_calories": 0,
                    "total_protein": 0,
                    "total_carbs": 0,
                    "total_fat": 0,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create daily log")
        return _parse_daily(response.data[0])

    def get_daily_total_by_id(self, daily_total_id: UUID) -> DailyTotalRecord | None:
        """Return a daily log row by id."""
        response = (
            self.client.table("daily_logs")
            .select(_DAILY_COLUMNS)
            .eq("id", str(daily_total_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_daily(response.data[0])

    def update_daily_total(self, daily_total_id: UUID, totals: MacroTotals) -> None:
        """Overwrite the totals of a daily log row."""
        self.client.table("daily_logs").update(
            {
                "total_calories": totals.calories,
                "total_protein": totals.protein,
                "total_carbs": totals.carbs,
                "total_fat": totals.fat,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).eq("id", str(daily_total_id)).execute()

    def find_food_definition(
        self, name: str, quantity: float, unit: str
    ) -> UUID | None:
        """Return the id of a food item with the same name and serving."""
        response = (
            self.client.table("food_items")
            .select("id")
            .eq("name", name)
            .eq("serving_size", quantity)
            .eq("serving_unit", unit)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return UUID(response.data[0]["id"])

    def create_food_definition(self, food: FoodItem) -> UUID:
        """Create an unverified food item from an analyzed item."""
        response = (
            self.client.table("food_items")
            .insert(
                {
                    "name": food.name,
                    "serving_size": food.quantity,
                    "serving_unit": food.unit,
                    "calories": food.calories,
                    "protein": food.protein,
                    "carbs": food.carbs,
                    "fat": food.fat,
                    "fiber": food.fiber,
                    "sugar": food.sugar,
                    "sodium": food.sodium,
                    "verified": False,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create food item")
        return UUID(response.data[0]["id"])

    def create_meal_entries(self, drafts: list[MealEntryDraft]) -> None:
        """Insert meal entry rows in one request."""
        payload = [
            {
                "user_id": draft.user_id,
                "daily_log_id": str(draft.daily_total_id),
                "food_item_id": str(draft.food_definition_id),
                "meal_group_id": str(draft.meal_group_id),
                "meal_type": draft.meal_category.value,
                "name_snapshot": draft.name,
                "quantity": draft.quantity,
                "unit": draft.unit,
                "calories": draft.totals.calories,
                "protein": draft.totals.protein,
                "carbs": draft.totals.carbs,
                "fat": draft.totals.fat,
                "notes": draft.notes,
                "correction_history": _dump_history(draft.correction_history),
                "history_version": draft.history_version,
            }
            for draft in drafts
        ]
        if not payload:
            return
        response = self.client.table("meal_entries").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create meal entries")

    def list_group_entries(self, meal_group_id: UUID) -> list[MealEntryRecord]:
        """Return meal entries of a meal group."""
        response = (
            self.client.table("meal_entries")
            .select(_ENTRY_COLUMNS)
            .eq("meal_group_id", str(meal_group_id))
            .order("created_at", desc=False)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]

    def update_group_history(
        self,
        meal_group_id: UUID,
        history: list[ConversationTurn],
        expected_version: int,
    ) -> bool:
        """Replace the history on every entry if the version still matches."""
        response = (
            self.client.table("meal_entries")
            .update(
                {
                    "correction_history": _dump_history(history),
                    "history_version": expected_version + 1,
                }
            )
            .eq("meal_group_id", str(meal_group_id))
            .eq("history_version", expected_version)
            .execute()
        )
        return bool(response.data)

    def delete_entries(self, entry_ids: list[UUID]) -> None:
        """Delete meal entries by id."""
        if not entry_ids:
            return
        self.client.table("meal_entries").delete().in_(
            "id", [str(entry_id) for entry_id in entry_ids]
        ).execute()


def _dump_history(history: list[ConversationTurn]) -> list[dict[str, str]]:
    return [turn.model_dump() for turn in history]


def _parse_daily(row: dict[str, object]) -> DailyTotalRecord:
    return DailyTotalRecord(
        id=UUID(str(row["id"])),
        user_id=str(row["user_id"]),
        day=date.fromisoformat(str(row["date"])),
        totals=MacroTotals(
            calories=float(row.get("total_calories") or 0.0),
            protein=float(row.get("total_protein") or 0.0),
            carbs=float(row.get("total_carbs") or 0.0),
            fat=float(row.get("total_fat") or 0.0),
        ),
    )


def _parse_entry(row: dict[str, object]) -> MealEntryRecord:
    history = row.get("correction_history") or []
    return MealEntryRecord(
        id=UUID(str(row["id"])),
        user_id=str(row["user_id"]),
        daily_total_id=UUID(str(row["daily_log_id"])),
        food_definition_id=(
            UUID(str(row["food_item_id"])) if row.get("food_item_id") else None
        ),
        meal_group_id=UUID(str(row["meal_group_id"])),
        meal_category=MealCategory(str(row.get("meal_type") or "snack")),
        name=str(row.get("name_snapshot") or ""),
        quantity=float(row.get("quantity") or 1.0),
        unit=str(row.get("unit") or "serving"),
        totals=MacroTotals(
            calories=float(row.get("calories") or 0.0),
            protein=float(row.get("protein") or 0.0),
            carbs=float(row.get("carbs") or 0.0),
            fat=float(row.get("fat") or 0.0),
        ),
        notes=str(row.get("notes") or ""),
        correction_history=[
            ConversationTurn.model_validate(turn)
            for turn in history
            if isinstance(turn, dict)
        ],
        history_version=int(row.get("history_version") or 0),
    )
