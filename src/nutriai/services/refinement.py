"""Conversational refinement of logged meal groups."""

import logging
from dataclasses import dataclass
from uuid import UUID

from nutriai.domain.analysis import ConversationTurn, MealAnalysis
from nutriai.domain.errors import (
    AuthorizationError,
    MealGroupNotFoundError,
    PersistenceError,
    RequestValidationError,
)
from nutriai.services.extraction import ExtractionService
from nutriai.services.meals import MealLogService

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefinementResult:
    """Outcome of one correction turn."""

    analysis: MealAnalysis
    history: list[ConversationTurn]


@dataclass
class RefinementService:
    """Replays a meal group's correction history to apply a new correction."""

    extraction_service: ExtractionService
    meal_log_service: MealLogService

    async def refine(
        self,
        meal_group_id: UUID,
        correction_text: str,
        *,
        apply_to_log: bool = False,
        caller_id: str | None = None,
    ) -> RefinementResult:
        """Apply a user correction and return the new analysis and history.

        The history write is conditional on the version that was read, so a
        concurrent refinement of the same group raises ConflictError instead
        of silently overwriting. Rows and the daily total are only rewritten
        when ``apply_to_log`` is set; if that fails the previous history is put
        back. When ``caller_id`` is given, the group must belong to that caller.
        """
        correction = (correction_text or "").strip()
        if not correction:
            raise RequestValidationError("Correction text must not be empty")

        group = self.meal_log_service.load_group(meal_group_id)
        if group is None:
            raise MealGroupNotFoundError(f"No meal entries found for {meal_group_id}")
        if caller_id is not None and any(
            entry.user_id != caller_id for entry in group.entries
        ):
            raise AuthorizationError("Caller may only refine their own meals")

        history = [*group.history, ConversationTurn(role="user", content=correction)]
        analysis = await self.extraction_service.refine(history)
        history.append(ConversationTurn(role="assistant", content=analysis.serialize()))

        version = self.meal_log_service.record_history(group, history)
        if apply_to_log:
            try:
                self.meal_log_service.revise_group(group, analysis, history)
            except PersistenceError:
                self.meal_log_service.restore_history(group, version)
                raise
        _logger.info(
            "Refined meal group %s (%s turn(s))", meal_group_id, len(history)
        )
        return RefinementResult(analysis=analysis, history=history)
