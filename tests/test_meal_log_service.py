"""Tests for meal group persistence."""

from datetime import date
from uuid import uuid4

import pytest

from nutriai.domain.analysis import ConversationTurn, MealAnalysis
from nutriai.domain.errors import ConflictError, PersistenceError
from nutriai.domain.meals import MacroTotals, MealCategory
from nutriai.services.coercion import coerce_analysis
from nutriai.services.meals import MealLogService, analysis_totals
from tests.conftest import InMemoryMealLogRepository, food_payload

DAY = date(2024, 5, 1)


def _analysis(*foods: dict[str, object]) -> MealAnalysis:
    return coerce_analysis({"title": "Lunch plate", "foods": list(foods)})


def _sandwich_and_chips() -> MealAnalysis:
    return _analysis(
        food_payload(
            "Turkey Sandwich",
            450,
            protein=30,
            carbs=40,
            fat=15,
            ingredients=[food_payload("Bread", 200), food_payload("Turkey", 150)],
        ),
        food_payload("Chips", 150, protein=2, carbs=15, fat=10),
    )


def test_log_meal_writes_group_and_adds_daily_totals() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)
    analysis = _sandwich_and_chips()

    group_id = service.log_meal(analysis, "user-1", DAY, MealCategory.LUNCH)

    entries = repository.list_group_entries(group_id)
    assert len(entries) == 2
    assert {entry.meal_category for entry in entries} == {MealCategory.LUNCH}
    assert sum(entry.totals.calories for entry in entries) == analysis.total_calories
    daily = repository.get_daily_total("user-1", DAY)
    assert daily is not None
    assert daily.totals == MacroTotals(calories=600, protein=32, carbs=55, fat=25)
    assert len(repository.food_definitions) == 2


def test_log_meal_accumulates_into_existing_day_and_reuses_definitions() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)

    apple = _analysis(food_payload("Apple", 95))
    service.log_meal(apple, "user-1", DAY, MealCategory.SNACK)
    service.log_meal(apple, "user-1", DAY, MealCategory.SNACK)

    daily = repository.get_daily_total("user-1", DAY)
    assert daily is not None
    assert daily.totals.calories == 190
    assert len(repository.daily_totals) == 1
    assert len(repository.food_definitions) == 1


def test_history_round_trip_matches_daily_contribution() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)
    analysis = _sandwich_and_chips()

    group_id = service.log_meal(analysis, "user-1", DAY, MealCategory.LUNCH)

    group = service.load_group(group_id)
    assert group is not None
    assert group.version == 0
    for entry in group.entries:
        assert entry.correction_history == group.history
        restored = MealAnalysis.model_validate_json(
            entry.correction_history[0].content
        )
        assert restored.foods[0].ingredients[1].name == "Turkey"
        assert analysis_totals(restored) == group.contribution
    daily = repository.get_daily_total("user-1", DAY)
    assert daily is not None
    assert group.contribution == daily.totals


def test_log_meal_aborts_before_writing_on_unusable_nutrient() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)
    analysis = _sandwich_and_chips()
    broken = analysis.model_copy(
        update={
            "foods": [
                analysis.foods[0],
                analysis.foods[1].model_copy(update={"calories": None}),
            ]
        }
    )

    with pytest.raises(PersistenceError):
        service.log_meal(broken, "user-1", DAY, MealCategory.LUNCH)

    assert repository.writes == 0
    assert repository.entries == {}


def test_log_meal_wraps_storage_failures() -> None:
    repository = InMemoryMealLogRepository(fail_entry_insert=True)
    service = MealLogService(repository)

    with pytest.raises(PersistenceError) as excinfo:
        service.log_meal(_sandwich_and_chips(), "user-1", DAY, MealCategory.LUNCH)

    assert excinfo.value.stage == "persistence"
    assert "insert failed" not in excinfo.value.message
    assert repository.entries == {}


def test_load_group_returns_none_for_unknown_group() -> None:
    service = MealLogService(InMemoryMealLogRepository())

    assert service.load_group(uuid4()) is None


def test_record_history_bumps_version_and_detects_conflicts() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)
    group_id = service.log_meal(
        _sandwich_and_chips(), "user-1", DAY, MealCategory.LUNCH
    )
    group = service.load_group(group_id)
    assert group is not None
    history = [*group.history, ConversationTurn(role="user", content="no chips")]

    assert service.record_history(group, history) == 1
    with pytest.raises(ConflictError):
        service.record_history(group, history)

    reloaded = service.load_group(group_id)
    assert reloaded is not None
    assert reloaded.version == 1
    assert reloaded.history == history


def test_revise_group_replaces_rows_and_applies_delta() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)
    apple = _analysis(food_payload("Apple", 95))
    service.log_meal(apple, "user-1", DAY, MealCategory.SNACK)
    group_id = service.log_meal(
        _sandwich_and_chips(), "user-1", DAY, MealCategory.LUNCH
    )
    group = service.load_group(group_id)
    assert group is not None
    revised = _analysis(food_payload("Turkey Sandwich", 700, protein=40))
    history = [
        *group.history,
        ConversationTurn(role="user", content="large sandwich, no chips"),
        ConversationTurn(role="assistant", content=revised.serialize()),
    ]
    service.record_history(group, history)

    service.revise_group(group, revised, history)

    entries = repository.list_group_entries(group_id)
    assert [entry.name for entry in entries] == ["Turkey Sandwich"]
    assert entries[0].meal_category == MealCategory.LUNCH
    assert entries[0].history_version == 1
    assert entries[0].correction_history == history
    daily = repository.get_daily_total("user-1", DAY)
    assert daily is not None
    assert daily.totals.calories == pytest.approx(95 + 700)
    assert daily.totals.protein == pytest.approx(10 + 40)


def test_revise_group_keeps_old_rows_when_insert_fails() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)
    group_id = service.log_meal(
        _sandwich_and_chips(), "user-1", DAY, MealCategory.LUNCH
    )
    group = service.load_group(group_id)
    assert group is not None
    revised = _analysis(food_payload("Turkey Sandwich", 700))
    repository.fail_entry_insert = True

    with pytest.raises(PersistenceError):
        service.revise_group(group, revised, group.history)

    entries = repository.list_group_entries(group_id)
    assert [entry.name for entry in entries] == ["Turkey Sandwich", "Chips"]
    daily = repository.get_daily_total("user-1", DAY)
    assert daily is not None
    assert daily.totals.calories == 600


def test_restore_history_puts_back_previous_turns() -> None:
    repository = InMemoryMealLogRepository()
    service = MealLogService(repository)
    group_id = service.log_meal(
        _analysis(food_payload("Apple", 95)), "user-1", DAY, MealCategory.SNACK
    )
    group = service.load_group(group_id)
    assert group is not None
    version = service.record_history(
        group, [*group.history, ConversationTurn(role="user", content="two apples")]
    )

    service.restore_history(group, version)

    reloaded = service.load_group(group_id)
    assert reloaded is not None
    assert reloaded.history == group.history
    assert reloaded.version == version + 1
