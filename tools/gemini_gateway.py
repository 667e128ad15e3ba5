# tools/gemini_gateway.py
"""
Alfredo Voice — Gemini Gateway
==============================
Primary LanguageGateway backed by Google Gemini (google-genai SDK).

Every failure surfaces as an exception (GenerationError,
JSONExtractionError or pydantic.ValidationError) so ResilientGateway
can substitute the local fallback.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from google import genai
from google.genai import types as genai_types

from config.settings import GEMINI_MODEL, GENERATION_CONFIG, GOOGLE_API_KEY, VOICE_CONFIG
from memory.models import PantryItem
from tools.fallback_parser import UNIT_VOCABULARY
from tools.gateway import GenerationError, LanguageGateway, ResilientGateway, mark_availability
from tools.json_extractor import parse_json_object
from tools.schemas import ConsumptionRecord, RecipeSuggestion

logger = logging.getLogger(__name__)


# =============================================================================
# PROMPTS
# =============================================================================
def _format_quantity(quantity: float) -> str:
    return f"{quantity:g}"


def describe_pantry(pantry: Sequence[PantryItem]) -> str:
    """"rice (2 cup), eggs (6 piece)" style listing for prompts."""
    if not pantry:
        return "none"
    return ", ".join(f"{item.name} ({_format_quantity(item.quantity)} {item.unit})" for item in pantry)


def build_recipe_prompt(dish_name: str, pantry: Sequence[PantryItem]) -> str:
    return f"""
Create a detailed recipe for "{dish_name}" using the available pantry ingredients.

Available ingredients: {describe_pantry(pantry)}

REQUIREMENTS:
1. Use as many available ingredients as possible
2. Mark each ingredient as available: true/false based on the pantry
3. Provide step-by-step cooking instructions
4. Include missing ingredients in the ingredient list
5. Include estimated prep/cook times and servings

Return ONLY valid JSON matching this exact structure:
{{
    "name": "Recipe name",
    "ingredients": [
        {{"name": "ingredient name", "quantity": 1, "unit": "cup", "available": true}}
    ],
    "instructions": ["step 1", "step 2"],
    "prep_time": "10 minutes",
    "cook_time": "20 minutes",
    "servings": 4,
    "nutrition": {{"calories": 350, "protein": 25, "carbs": 40, "fat": 12}}
}}
"""


def build_consumption_prompt(utterance: str) -> str:
    units = ", ".join(sorted({u.rstrip("s") for u in UNIT_VOCABULARY}))
    return f"""
Parse this food consumption and return ONLY a JSON object.
Command: "{utterance}"

Return exactly this structure:
{{
    "action": "consume",
    "ingredient": "food name",
    "quantity": 1,
    "unit": "piece",
    "calories": 0,
    "protein": 0,
    "carbs": 0,
    "fat": 0
}}

Common units: {units}
Estimate nutrition values from common food data for the stated quantity.
"""


def build_freeform_prompt(utterance: str, context: str = "") -> str:
    return f"""
You are {VOICE_CONFIG['assistant_name']}, an AI nutrition assistant. Respond to this user command naturally and helpfully.

Command: "{utterance}"
Context: {context or 'none'}

Keep the reply concise, friendly and actionable. It will be read aloud, so do not use markdown.
"""


# =============================================================================
# GATEWAY
# =============================================================================
class GeminiGateway(LanguageGateway):
    """Talks to Gemini through the async google-genai client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        generation_config: Optional[Dict[str, Any]] = None,
        client: Any = None,
    ):
        if client is None:
            if not api_key:
                raise GenerationError("Gemini API key not configured")
            client = genai.Client(api_key=api_key)
        self._client = client
        self.model = model
        self.generation_config = dict(generation_config or GENERATION_CONFIG)

    async def complete(self, prompt: str) -> str:
        """One generation call. Returns the raw text of the first candidate."""
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=[prompt],
                config=genai_types.GenerateContentConfig(**self.generation_config),
            )
            text = response.text if response is not None else None
        except Exception as exc:
            raise GenerationError(f"Gemini API error: {exc}") from exc

        if not text or not text.strip():
            raise GenerationError("Gemini returned an empty response")
        return text

    async def generate_recipe(self, dish_name: str, pantry: Sequence[PantryItem]) -> RecipeSuggestion:
        raw = await self.complete(build_recipe_prompt(dish_name, pantry))
        data = parse_json_object(raw)
        data["source"] = "ai"
        recipe = RecipeSuggestion.model_validate(data)
        return mark_availability(recipe, pantry)

    async def parse_consumption(self, utterance: str) -> ConsumptionRecord:
        raw = await self.complete(build_consumption_prompt(utterance))
        data = parse_json_object(raw)
        data["source"] = "ai"
        return ConsumptionRecord.model_validate(data)

    async def freeform_reply(self, utterance: str, context: str = "") -> str:
        raw = await self.complete(build_freeform_prompt(utterance, context))
        return raw.strip()


def build_gateway(api_key: Optional[str] = GOOGLE_API_KEY) -> ResilientGateway:
    """Gemini with local fallback when a key is configured, otherwise offline only."""
    if not api_key:
        logger.info("🔌 No GOOGLE_API_KEY set. Running with the local fallback only.")
        return ResilientGateway.offline()
    return ResilientGateway(primary=GeminiGateway(api_key=api_key))


__all__ = [
    "GeminiGateway",
    "build_gateway",
    "build_recipe_prompt",
    "build_consumption_prompt",
    "build_freeform_prompt",
    "describe_pantry",
]
