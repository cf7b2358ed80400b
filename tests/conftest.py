"""Shared test fixtures."""

import json
from dataclasses import dataclass, field, replace
from datetime import date
from uuid import UUID, uuid4

import pytest

from nutriai.config import Settings
from nutriai.containers import AppContainer
from nutriai.domain.analysis import ConversationTurn, FoodItem
from nutriai.domain.errors import AuthenticationError
from nutriai.domain.meals import (
    DailyTotalRecord,
    MacroTotals,
    MealEntryDraft,
    MealEntryRecord,
)
from nutriai.services.analysis import MealAnalysisService
from nutriai.services.extraction import CompletionClient, ExtractionService
from nutriai.services.identity import IdentityResolver
from nutriai.services.meals import MealLogRepository, MealLogService
from nutriai.services.refinement import RefinementService

USER_ID = "user-123"
USER_TOKEN = "valid-token"


def food_payload(  # noqa: PLR0913
    name: str,
    calories: float,
    protein: float = 10.0,
    carbs: float = 20.0,
    fat: float = 5.0,
    quantity: object = 1,
    unit: str | None = "serving",
    ingredients: list[dict[str, object]] | None = None,
) -> dict[str, object]:
    """Return a food item as the completion service would send it."""
    return {
        "name": name,
        "quantity": quantity,
        "unit": unit,
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "fat": fat,
        "fiber": 1,
        "sugar": 2,
        "sodium": 100,
        "ingredients": ingredients or [],
    }


def analysis_reply(
    foods: list[dict[str, object]], title: str = "", confidence: float = 0.9
) -> str:
    """Return a JSON reply text for the fake completion client."""
    return json.dumps(
        {"title": title, "foods": foods, "confidence": confidence, "notes": ""}
    )


@dataclass
class FakeCompletionClient(CompletionClient):
    """Completion client that plays back scripted replies."""

    replies: list[str | Exception] = field(default_factory=list)
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        instructions: str,
        messages: list[dict[str, str]],
        temperature: float | None,
        store: bool,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "instructions": instructions,
                "messages": messages,
                "temperature": temperature,
                "store": store,
            }
        )
        if not self.replies:
            raise RuntimeError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class InMemoryMealLogRepository(MealLogRepository):
    """In-memory meal log repository for tests."""

    daily_totals: dict[UUID, DailyTotalRecord] = field(default_factory=dict)
    food_definitions: dict[UUID, tuple[str, float, str]] = field(default_factory=dict)
    entries: dict[UUID, MealEntryRecord] = field(default_factory=dict)
    writes: int = 0
    fail_entry_insert: bool = False

    def get_daily_total(self, user_id: str, day: date) -> DailyTotalRecord | None:
        for record in self.daily_totals.values():
            if record.user_id == user_id and record.day == day:
                return record
        return None

    def create_daily_total(self, user_id: str, day: date) -> DailyTotalRecord:
        self.writes += 1
        record = DailyTotalRecord(
            id=uuid4(), user_id=user_id, day=day, totals=MacroTotals()
        )
        self.daily_totals[record.id] = record
        return record

    def get_daily_total_by_id(self, daily_total_id: UUID) -> DailyTotalRecord | None:
        return self.daily_totals.get(daily_total_id)

    def update_daily_total(self, daily_total_id: UUID, totals: MacroTotals) -> None:
        self.writes += 1
        record = self.daily_totals[daily_total_id]
        self.daily_totals[daily_total_id] = replace(record, totals=totals)

    def find_food_definition(
        self, name: str, quantity: float, unit: str
    ) -> UUID | None:
        for food_id, key in self.food_definitions.items():
            if key == (name, quantity, unit):
                return food_id
        return None

    def create_food_definition(self, food: FoodItem) -> UUID:
        self.writes += 1
        food_id = uuid4()
        self.food_definitions[food_id] = (food.name, food.quantity, food.unit)
        return food_id

    def create_meal_entries(self, drafts: list[MealEntryDraft]) -> None:
        if self.fail_entry_insert:
            raise RuntimeError("insert failed")
        self.writes += 1
        for draft in drafts:
            entry_id = uuid4()
            self.entries[entry_id] = MealEntryRecord(
                id=entry_id,
                user_id=draft.user_id,
                daily_total_id=draft.daily_total_id,
                food_definition_id=draft.food_definition_id,
                meal_group_id=draft.meal_group_id,
                meal_category=draft.meal_category,
                name=draft.name,
                quantity=draft.quantity,
                unit=draft.unit,
                totals=draft.totals,
                notes=draft.notes,
                correction_history=list(draft.correction_history),
                history_version=draft.history_version,
            )

    def list_group_entries(self, meal_group_id: UUID) -> list[MealEntryRecord]:
        return [
            entry
            for entry in self.entries.values()
            if entry.meal_group_id == meal_group_id
        ]

    def update_group_history(
        self,
        meal_group_id: UUID,
        history: list[ConversationTurn],
        expected_version: int,
    ) -> bool:
        matching = [
            entry
            for entry in self.list_group_entries(meal_group_id)
            if entry.history_version == expected_version
        ]
        if not matching:
            return False
        self.writes += 1
        for entry in matching:
            self.entries[entry.id] = replace(
                entry,
                correction_history=list(history),
                history_version=expected_version + 1,
            )
        return True

    def delete_entries(self, entry_ids: list[UUID]) -> None:
        self.writes += 1
        for entry_id in entry_ids:
            self.entries.pop(entry_id, None)


@dataclass
class FakeIdentityResolver(IdentityResolver):
    """Identity resolver backed by a token table."""

    tokens: dict[str, str] = field(default_factory=lambda: {USER_TOKEN: USER_ID})

    def resolve(self, token: str) -> str:
        if token not in self.tokens:
            raise AuthenticationError("Invalid or expired credential")
        return self.tokens[token]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
    )


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def meal_log_repository() -> InMemoryMealLogRepository:
    return InMemoryMealLogRepository()


@pytest.fixture
def container(
    settings: Settings,
    completion_client: FakeCompletionClient,
    meal_log_repository: InMemoryMealLogRepository,
) -> AppContainer:
    extraction_service = ExtractionService(
        client=completion_client,
        model=settings.openai_model,
        refinement_model=settings.openai_refinement_model,
        temperature=settings.openai_temperature,
        store=settings.openai_store,
    )
    meal_log_service = MealLogService(meal_log_repository)
    analysis_service = MealAnalysisService(
        extraction_service=extraction_service,
        meal_log_service=meal_log_service,
        preview_caller_id=settings.preview_caller_id,
    )
    refinement_service = RefinementService(
        extraction_service=extraction_service,
        meal_log_service=meal_log_service,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        identity_resolver=FakeIdentityResolver(),
        extraction_service=extraction_service,
        meal_log_service=meal_log_service,
        analysis_service=analysis_service,
        refinement_service=refinement_service,
        close_resources=close_resources,
    )
