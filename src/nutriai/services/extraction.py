"""Structured meal extraction using a completion service."""

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from nutriai.domain.analysis import NUTRIENT_FIELDS, ConversationTurn, MealAnalysis
from nutriai.domain.errors import AnalysisValidationError, ExtractionFailedError
from nutriai.domain.quantity import DEFAULT_UNIT
from nutriai.services.coercion import coerce_analysis
from nutriai.services.prompts import (
    ANALYSIS_INSTRUCTIONS,
    DEGRADED_INSTRUCTIONS,
    REFINEMENT_INSTRUCTIONS,
)
from nutriai.services.titles import guard_analysis_title

_logger = logging.getLogger(__name__)

PRIMARY_SHARE = 0.6

# Transport, decoding and schema failures are retried; other errors propagate.
_RETRYABLE = (RuntimeError, ValueError, AnalysisValidationError)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_CONJUNCTION = re.compile(r"\band\b|&", re.IGNORECASE)
_JOINER = r"\s*(?:and|&|n|'n')\s*"
_CONJOINED_DISHES = tuple(
    re.compile(r"\b" + _JOINER.join(parts) + r"\b", re.IGNORECASE)
    for parts in (
        ("mac", "cheese"),
        ("macaroni", "cheese"),
        ("fish", "chips"),
        ("peanut butter", "jelly"),
        ("pb", "j"),
        ("rice", "beans"),
        ("beans", "rice"),
        ("chips", "salsa"),
        ("chips", "guac(?:amole)?"),
        ("biscuits", "gravy"),
        ("chicken", "waffles"),
        ("spaghetti", "meatballs"),
        ("bangers", "mash"),
        ("surf", "turf"),
        ("sweet", "sour"),
        ("salt", "vinegar"),
        ("salt", "pepper"),
        ("cookies", "cream"),
        ("half", "half"),
        ("ham", "cheese"),
        ("egg", "cheese"),
        ("bacon", "eggs?"),
        ("pork", "beans"),
        ("franks", "beans"),
        ("cream", "sugar"),
        ("oil", "vinegar"),
        ("lox", "bagel"),
        ("bread", "butter"),
    )
)
_LEADING_FILLER = re.compile(
    r"^(?:(?:i|just|had|ate|a|an|some|the|with)\s+)+", re.IGNORECASE
)


class CompletionClient(Protocol):
    """Interface for the LLM completion service."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        instructions: str,
        messages: list[dict[str, str]],
        temperature: float | None,
        store: bool,
    ) -> str:
        """Return the raw text of one completion."""


@dataclass
class ExtractionService:
    """Service that turns free text or a correction history into a MealAnalysis."""

    client: CompletionClient
    model: str
    refinement_model: str
    temperature: float | None
    store: bool

    async def analyze(self, description: str) -> MealAnalysis:
        """Analyze a first meal description."""
        messages = [{"role": "user", "content": description}]
        analysis = await self._extract(
            model=self.model,
            instructions=ANALYSIS_INSTRUCTIONS,
            messages=messages,
        )
        analysis = split_conjoined_item(analysis, description)
        return guard_analysis_title(analysis)

    async def refine(self, history: Sequence[ConversationTurn]) -> MealAnalysis:
        """Produce a complete updated analysis from the whole correction history."""
        messages = [{"role": turn.role, "content": turn.content} for turn in history]
        analysis = await self._extract(
            model=self.refinement_model,
            instructions=REFINEMENT_INSTRUCTIONS,
            messages=messages,
        )
        return guard_analysis_title(analysis)

    async def _extract(
        self, *, model: str, instructions: str, messages: list[dict[str, str]]
    ) -> MealAnalysis:
        try:
            return await self._attempt(model, instructions, messages)
        except _RETRYABLE as exc:
            _logger.warning("Primary extraction failed, retrying degraded: %s", exc)

        try:
            return await self._attempt(model, DEGRADED_INSTRUCTIONS, messages)
        except _RETRYABLE as exc:
            _logger.warning("Degraded extraction failed: %s", exc)
            raise ExtractionFailedError(
                "Could not extract a valid meal analysis"
            ) from exc

    async def _attempt(
        self, model: str, instructions: str, messages: list[dict[str, str]]
    ) -> MealAnalysis:
        reply = await self.client.complete(
            model=model,
            instructions=instructions,
            messages=messages,
            temperature=self.temperature,
            store=self.store,
        )
        return coerce_analysis(parse_reply(reply))


def parse_reply(reply: str) -> object:
    """Decode the JSON object in a completion reply, tolerating code fences."""
    text = (reply or "").strip()
    if not text:
        raise ValueError("Completion reply is empty")
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])


def split_conjoined_item(analysis: MealAnalysis, description: str) -> MealAnalysis:
    """Split a single returned item when the description clearly names two foods.

    The primary item keeps its portion and PRIMARY_SHARE of every nutrient;
    the secondary item gets the rest as one serving. Ingredients are dropped
    since they no longer describe either half.
    """
    if len(analysis.foods) != 1:
        return analysis
    spans = _conjunction_spans(description)
    if not spans:
        return analysis

    start, end = spans[0]
    primary_name = _segment_name(re.split(r"[,;]", description[:start])[-1])
    following = description[end:]
    if len(spans) > 1:
        following = description[end : spans[1][0]]
    secondary_name = _segment_name(re.split(r"[,;]", following)[0])
    if not primary_name or not secondary_name:
        return analysis

    item = analysis.foods[0]
    primary = item.model_copy(
        update={
            "name": primary_name,
            "ingredients": [],
            **{key: getattr(item, key) * PRIMARY_SHARE for key in NUTRIENT_FIELDS},
        }
    )
    secondary = item.model_copy(
        update={
            "name": secondary_name,
            "quantity": 1.0,
            "unit": DEFAULT_UNIT,
            "ingredients": [],
            **{
                key: getattr(item, key) * (1 - PRIMARY_SHARE)
                for key in NUTRIENT_FIELDS
            },
        }
    )
    _logger.info(
        "Split single item %r into %r and %r", item.name, primary_name, secondary_name
    )
    return analysis.model_copy(update={"foods": [primary, secondary]})


def _conjunction_spans(description: str) -> list[tuple[int, int]]:
    masked = description
    for dish in _CONJOINED_DISHES:
        masked = dish.sub(lambda match: "#" * len(match.group(0)), masked)
    return [match.span() for match in _CONJUNCTION.finditer(masked)]


def _segment_name(segment: str) -> str:
    cleaned = _LEADING_FILLER.sub("", " ".join(segment.split()).strip(" .!?"))
    return " ".join(word[:1].upper() + word[1:] for word in cleaned.split())
