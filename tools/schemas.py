# tools/schemas.py
"""
Alfredo Voice — Pipeline Schemas
================================
Typed contracts shared by the segmenter, classifier, gateway and
orchestrator. Model output is validated against these before use.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")


def coerce_number(value: Any) -> Any:
    """Best-effort numeric coercion for LLM fields like "52 kcal" or "1.5"."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        match = _NUM_RE.search(value.replace(",", ""))
        if match:
            return float(match.group(0))
    return value


# =============================================================================
# INTENTS
# =============================================================================
class Intent(str, Enum):
    RECIPE = "recipe"
    CONSUMPTION = "consumption"
    PANTRY = "pantry"
    SHOPPING = "shopping"
    GENERAL = "general"


class CommandState(str, Enum):
    RECEIVED = "received"
    CLASSIFIED = "classified"
    DISPATCHED = "dispatched"
    RESOLVED = "resolved"
    FAILED = "failed"


# =============================================================================
# SPEECH INPUT
# =============================================================================
class SpeechFragment(BaseModel):
    """A single recognition result as delivered by the speech source."""
    transcript: str = ""
    is_final: bool = False


class Utterance(BaseModel):
    """A complete unit of spoken input. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


class ClassifiedCommand(BaseModel):
    """Conversation-history entry for one utterance."""
    utterance: Utterance
    intent: Intent
    processed: bool = False
    response: Optional[str] = None
    state: CommandState = CommandState.CLASSIFIED
    effects: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())

    @property
    def command(self) -> str:
        return self.utterance.text

    def mark_dispatched(self) -> None:
        self.state = CommandState.DISPATCHED

    def resolve(self, response: str) -> None:
        self._finish(CommandState.RESOLVED, response)

    def fail(self, response: str) -> None:
        self._finish(CommandState.FAILED, response)

    def _finish(self, state: CommandState, response: str) -> None:
        if self.processed:
            raise ValueError(f"Command already {self.state.value}: {self.command!r}")
        self.state = state
        self.processed = True
        self.response = response


# =============================================================================
# CONSUMPTION
# =============================================================================
class ConsumptionRecord(BaseModel):
    """Structured form of "I ate ..." utterances. Ephemeral."""
    model_config = ConfigDict(extra="ignore")

    action: str = "consume"
    ingredient: str = Field(..., min_length=1)
    quantity: float = Field(1.0, ge=0)
    unit: str = "piece"
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    source: Literal["ai", "heuristic_fallback"] = "ai"

    @field_validator("quantity", "calories", "protein", "carbs", "fat", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_number(value)

    @field_validator("ingredient", "unit", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


# =============================================================================
# RECIPES
# =============================================================================
class RecipeIngredient(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    quantity: float = 1.0
    unit: str = ""
    available: bool = False

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> Any:
        value = coerce_number(value)
        # "to taste", null, etc.
        return 1.0 if value is None or isinstance(value, str) else value

    @field_validator("unit", mode="before")
    @classmethod
    def _unit_text(cls, value: Any) -> Any:
        return "" if value is None else value


class RecipeNutrition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    @field_validator("calories", "protein", "carbs", "fat", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        value = coerce_number(value)
        return 0.0 if value is None else value


class RecipeSuggestion(BaseModel):
    """A generated recipe. `available` flags are a point-in-time annotation."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    ingredients: List[RecipeIngredient] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    prep_time: Optional[str] = None
    cook_time: Optional[str] = None
    servings: Optional[int] = None
    nutrition: Optional[RecipeNutrition] = None
    source: Literal["ai", "heuristic_fallback"] = "ai"

    @field_validator("instructions", mode="before")
    @classmethod
    def _instructions_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [line.strip() for line in value.splitlines() if line.strip()]
        return value

    @field_validator("servings", mode="before")
    @classmethod
    def _coerce_servings(cls, value: Any) -> Any:
        value = coerce_number(value)
        if isinstance(value, float):
            return int(value)
        return None if isinstance(value, str) else value

    def available_ingredients(self) -> List[RecipeIngredient]:
        return [i for i in self.ingredients if i.available]

    def missing_ingredients(self) -> List[RecipeIngredient]:
        return [i for i in self.ingredients if not i.available]


__all__ = [
    "Intent",
    "CommandState",
    "SpeechFragment",
    "Utterance",
    "ClassifiedCommand",
    "ConsumptionRecord",
    "RecipeIngredient",
    "RecipeNutrition",
    "RecipeSuggestion",
    "coerce_number",
]
