"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutriai.adapters.openai_completion_client import OpenAICompletionClient
from nutriai.adapters.supabase_identity_resolver import SupabaseIdentityResolver
from nutriai.adapters.supabase_meal_log_repository import SupabaseMealLogRepository
from nutriai.config import Settings
from nutriai.services.analysis import MealAnalysisService
from nutriai.services.extraction import ExtractionService
from nutriai.services.identity import IdentityResolver
from nutriai.services.meals import MealLogService
from nutriai.services.refinement import RefinementService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_resolver: IdentityResolver
    extraction_service: ExtractionService
    meal_log_service: MealLogService
    analysis_service: MealAnalysisService
    refinement_service: RefinementService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    meal_log_repository = SupabaseMealLogRepository(supabase_client)
    identity_resolver = SupabaseIdentityResolver(supabase_client)
    openai_client = OpenAICompletionClient.create(resolved_settings.openai_api_key)
    extraction_service = ExtractionService(
        client=openai_client,
        model=resolved_settings.openai_model,
        refinement_model=resolved_settings.openai_refinement_model,
        temperature=resolved_settings.openai_temperature,
        store=resolved_settings.openai_store,
    )
    meal_log_service = MealLogService(meal_log_repository)
    analysis_service = MealAnalysisService(
        extraction_service=extraction_service,
        meal_log_service=meal_log_service,
        preview_caller_id=resolved_settings.preview_caller_id,
    )
    refinement_service = RefinementService(
        extraction_service=extraction_service,
        meal_log_service=meal_log_service,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        identity_resolver=identity_resolver,
        extraction_service=extraction_service,
        meal_log_service=meal_log_service,
        analysis_service=analysis_service,
        refinement_service=refinement_service,
        close_resources=close_resources,
    )
