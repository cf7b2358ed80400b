"""Request models for the meal endpoints."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from nutriai.domain.meals import MealCategory


class ApiModel(BaseModel):
    """Base model accepting camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeMealRequest(ApiModel):
    """Body of an analyze/log request."""

    description: str = ""
    caller_id: str = Field(min_length=1)
    meal_category: MealCategory | None = None
    day: date | None = Field(default=None, alias="date")
    existing_analysis: dict[str, object] | None = None


class RefineMealRequest(ApiModel):
    """Body of a refinement request."""

    meal_group_id: UUID
    correction_text: str
    apply_to_log: bool = False
