"""Analyze-and-log orchestration."""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from nutriai.domain.analysis import MealAnalysis
from nutriai.domain.errors import RequestValidationError
from nutriai.domain.meals import MealCategory
from nutriai.services.coercion import coerce_existing_analysis
from nutriai.services.extraction import ExtractionService
from nutriai.services.meals import MealLogService
from nutriai.services.titles import guard_analysis_title

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzeMealCommand:
    """Input of one analyze/log request."""

    description: str
    caller_id: str
    meal_category: MealCategory | None = None
    day: date | None = None
    existing_analysis: dict[str, object] | None = None


@dataclass(frozen=True)
class AnalyzeResult:
    """Analysis plus the meal group it was stored under, if any."""

    analysis: MealAnalysis
    meal_group_id: UUID | None


@dataclass
class MealAnalysisService:
    """Runs extraction (or accepts a supplied analysis) and persists the result."""

    extraction_service: ExtractionService
    meal_log_service: MealLogService
    preview_caller_id: str = "preview"

    async def analyze(self, command: AnalyzeMealCommand) -> AnalyzeResult:
        """Analyze a description and log it unless the caller is previewing."""
        description = (command.description or "").strip()
        if command.existing_analysis is not None:
            analysis = guard_analysis_title(
                coerce_existing_analysis(command.existing_analysis)
            )
        elif not description:
            raise RequestValidationError("Meal description must not be empty")
        else:
            analysis = await self.extraction_service.analyze(description)

        if self.is_preview(command.caller_id):
            _logger.info("Preview analysis with %s item(s)", len(analysis.foods))
            return AnalyzeResult(analysis=analysis, meal_group_id=None)

        meal_group_id = self.meal_log_service.log_meal(
            analysis,
            user_id=command.caller_id,
            day=command.day or datetime.now(tz=UTC).date(),
            meal_category=command.meal_category or MealCategory.SNACK,
        )
        return AnalyzeResult(analysis=analysis, meal_group_id=meal_group_id)

    def is_preview(self, caller_id: str) -> bool:
        """Return true for the sentinel caller that never persists."""
        return caller_id == self.preview_caller_id
