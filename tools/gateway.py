# tools/gateway.py
"""
Alfredo Voice — Language-Model Gateway Interface
================================================
Every language task goes through a LanguageGateway. Two implementations
exist: the Gemini gateway (primary, may fail) and the local fallback
(deterministic, never fails). ResilientGateway composes them: if the
primary raises, the fallback result is substituted for that call.

There is no retry or backoff. Fallback substitution is the only
resilience mechanism.
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from pydantic import ValidationError

from memory.models import PantryItem
from tools.fallback_parser import build_fallback_recipe, canned_reply, parse_consumption_offline
from tools.json_extractor import JSONExtractionError
from tools.schemas import ConsumptionRecord, RecipeSuggestion

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationError(RuntimeError):
    """Network, non-2xx or empty-response failure of the generation endpoint."""


# Failures that trigger fallback substitution.
GATEWAY_FAILURES = (GenerationError, JSONExtractionError, ValidationError)


# =============================================================================
# INTERFACE
# =============================================================================
class LanguageGateway(ABC):
    """The three language tasks of the voice assistant."""

    @abstractmethod
    async def generate_recipe(self, dish_name: str, pantry: Sequence[PantryItem]) -> RecipeSuggestion:
        ...

    @abstractmethod
    async def parse_consumption(self, utterance: str) -> ConsumptionRecord:
        ...

    @abstractmethod
    async def freeform_reply(self, utterance: str, context: str = "") -> str:
        ...


def mark_availability(recipe: RecipeSuggestion, pantry: Sequence[PantryItem]) -> RecipeSuggestion:
    """
    Recompute every ingredient's `available` flag against the pantry.

    An ingredient is available when its name is a case-insensitive
    substring of some pantry item's name. Whatever the model claimed
    is overwritten.
    """
    pantry_names = [item.name.lower() for item in pantry]
    for ingredient in recipe.ingredients:
        needle = ingredient.name.strip().lower()
        ingredient.available = bool(needle) and any(needle in name for name in pantry_names)
    return recipe


# =============================================================================
# LOCAL FALLBACK
# =============================================================================
class LocalFallbackGateway(LanguageGateway):
    """Offline approximations from tools/fallback_parser.py."""

    async def generate_recipe(self, dish_name: str, pantry: Sequence[PantryItem]) -> RecipeSuggestion:
        return build_fallback_recipe(dish_name, pantry)

    async def parse_consumption(self, utterance: str) -> ConsumptionRecord:
        return parse_consumption_offline(utterance)

    async def freeform_reply(self, utterance: str, context: str = "") -> str:
        return canned_reply(utterance)


# =============================================================================
# PRIMARY WITH LOCAL FALLBACK
# =============================================================================
class ResilientGateway(LanguageGateway):
    """Calls the primary gateway and substitutes the fallback on failure."""

    def __init__(
        self,
        primary: Optional[LanguageGateway],
        fallback: Optional[LanguageGateway] = None,
    ):
        self.primary = primary
        self.fallback = fallback or LocalFallbackGateway()

    @classmethod
    def offline(cls) -> "ResilientGateway":
        return cls(primary=None)

    @property
    def mode(self) -> str:
        return "offline" if self.primary is None else "gemini"

    async def _with_fallback(
        self,
        task: str,
        primary_call: Callable[[LanguageGateway], Awaitable[T]],
    ) -> T:
        if self.primary is not None:
            try:
                return await primary_call(self.primary)
            except GATEWAY_FAILURES as exc:
                logger.warning("⚠️ %s failed: %s. Using fallback...", task, exc)
        return await primary_call(self.fallback)

    async def generate_recipe(self, dish_name: str, pantry: Sequence[PantryItem]) -> RecipeSuggestion:
        return await self._with_fallback(
            "Recipe generation", lambda gw: gw.generate_recipe(dish_name, pantry)
        )

    async def parse_consumption(self, utterance: str) -> ConsumptionRecord:
        return await self._with_fallback(
            "Consumption parsing", lambda gw: gw.parse_consumption(utterance)
        )

    async def freeform_reply(self, utterance: str, context: str = "") -> str:
        return await self._with_fallback(
            "Free-form reply", lambda gw: gw.freeform_reply(utterance, context)
        )


__all__ = [
    "GenerationError",
    "GATEWAY_FAILURES",
    "LanguageGateway",
    "LocalFallbackGateway",
    "ResilientGateway",
    "mark_availability",
]
