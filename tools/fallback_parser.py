# tools/fallback_parser.py
"""
Alfredo Voice — Lexical Fallback Parser
=======================================
Deterministic, offline stand-ins for every language-model task.
Used whenever Gemini is unavailable or returns something unusable.

NOTE: the nutrition numbers here are a rough approximation, not
nutrition-grade data. The calorie scale and the 10% / 20% / 5% macro
fractions are kept as-is for behavioural parity with the web client.
"""

import math
import re
from typing import Dict, List, Optional, Sequence

from config.settings import VOICE_CONFIG
from memory.models import PantryItem
from tools.schemas import ConsumptionRecord, RecipeIngredient, RecipeNutrition, RecipeSuggestion

# =============================================================================
# VOCABULARY
# =============================================================================
UNIT_VOCABULARY = (
    "cup", "cups", "piece", "pieces", "slice", "slices",
    "tbsp", "tsp", "oz", "gram", "grams", "lb", "lbs",
)
DEFAULT_UNIT = "piece"
DEFAULT_QUANTITY = 1.0
DEFAULT_INGREDIENT = "food item"

CONSUMPTION_VERBS = ("ate", "had", "drank", "consumed")
FILLER_WORDS = ("of", "a", "an", "the", "some")

# Calories per 100-unit equivalent, matched by substring on the ingredient.
BASE_CALORIES: Dict[str, int] = {
    "apple": 52,
    "banana": 89,
    "bread": 265,
}
DEFAULT_BASE_CALORIES = 100
CALORIE_SCALE = 0.01

MACRO_FRACTIONS = {
    "protein": 0.10,
    "carbs": 0.20,
    "fat": 0.05,
}

_QUANTITY_RE = re.compile(r"(\d+(?:\.\d+)?)")
_UNIT_RE = re.compile(r"\b(" + "|".join(UNIT_VOCABULARY) + r")\b", re.IGNORECASE)
_VERB_RE = re.compile(r"\b(?:" + "|".join(CONSUMPTION_VERBS) + r")\b(.*)", re.IGNORECASE | re.DOTALL)
_TOKEN_RE = re.compile(r"\d+(?:\.\d+)?|[^\W\d_][\w'-]*")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# =============================================================================
# HELPERS
# =============================================================================
def extract_quantity(text: str) -> float:
    """First integer or decimal in the text. "2 slices" -> 2.0, none -> 1.0"""
    match = _QUANTITY_RE.search(text or "")
    return float(match.group(1)) if match else DEFAULT_QUANTITY


def extract_unit(text: str) -> str:
    match = _UNIT_RE.search(text or "")
    return match.group(1).lower() if match else DEFAULT_UNIT


def extract_ingredient(text: str) -> str:
    """
    Word after a consumption verb, skipping a leading quantity, unit and
    filler words. "I ate 2 slices of bread" -> "bread"
    """
    match = _VERB_RE.search(text or "")
    if not match:
        return DEFAULT_INGREDIENT

    for token in _TOKEN_RE.findall(match.group(1)):
        lowered = token.lower()
        if token[0].isdigit() or lowered in UNIT_VOCABULARY or lowered in FILLER_WORDS:
            continue
        return token
    return DEFAULT_INGREDIENT


def estimate_base_calories(ingredient: str) -> int:
    ingredient_lower = ingredient.lower()
    for food, calories in BASE_CALORIES.items():
        if food in ingredient_lower:
            return calories
    return DEFAULT_BASE_CALORIES


# =============================================================================
# CONSUMPTION
# =============================================================================
def parse_consumption_offline(text: str) -> ConsumptionRecord:
    """
    Offline fallback: parse a consumption utterance with regex rules.

    Example:
        >>> r = parse_consumption_offline("I ate 2 slices of bread")
        >>> (r.quantity, r.unit, r.ingredient, r.calories)
        (2.0, 'slices', 'bread', 5.0)
    """
    quantity = extract_quantity(text)
    unit = extract_unit(text)
    ingredient = extract_ingredient(text)
    base = estimate_base_calories(ingredient)

    return ConsumptionRecord(
        ingredient=ingredient,
        quantity=quantity,
        unit=unit,
        calories=round_half_up(base * quantity * CALORIE_SCALE),
        protein=round_half_up(base * MACRO_FRACTIONS["protein"]),
        carbs=round_half_up(base * MACRO_FRACTIONS["carbs"]),
        fat=round_half_up(base * MACRO_FRACTIONS["fat"]),
        source="heuristic_fallback",
    )


# =============================================================================
# RECIPES
# =============================================================================
FALLBACK_INSTRUCTIONS = [
    "Gather all available ingredients",
    "Prepare ingredients as needed",
    "Cook according to standard preparation methods",
    "Season to taste and serve",
]


def build_fallback_recipe(
    dish_name: str,
    pantry: Sequence[PantryItem],
    max_ingredients: Optional[int] = None,
) -> RecipeSuggestion:
    """A generic recipe built from the first few pantry items."""
    limit = max_ingredients or VOICE_CONFIG["fallback_recipe_max_ingredients"]
    ingredients: List[RecipeIngredient] = [
        RecipeIngredient(name=item.name, quantity=1, unit=item.unit, available=True)
        for item in list(pantry)[:limit]
    ]
    return RecipeSuggestion(
        name=f"Simple {dish_name}",
        ingredients=ingredients,
        instructions=list(FALLBACK_INSTRUCTIONS),
        prep_time="15 minutes",
        cook_time="20 minutes",
        servings=2,
        nutrition=RecipeNutrition(calories=350, protein=20, carbs=30, fat=15),
        source="heuristic_fallback",
    )


# =============================================================================
# FREE-FORM REPLIES
# =============================================================================
CANNED_REPLIES = {
    "recipe": "I'd be happy to help you with a recipe! Let me generate one based on your pantry ingredients.",
    "consumption": "Great! I've logged that food item for you. Your nutrition totals have been updated.",
    "pantry": "Let me check your pantry inventory for you.",
    "default": (
        "I'm here to help with your nutrition tracking! "
        "Try asking me about recipes, logging meals, or checking your pantry."
    ),
}


def canned_reply(text: str) -> str:
    lower = (text or "").lower()
    if "recipe" in lower:
        return CANNED_REPLIES["recipe"]
    if "eat" in lower or "ate" in lower:
        return CANNED_REPLIES["consumption"]
    if "pantry" in lower or "inventory" in lower:
        return CANNED_REPLIES["pantry"]
    return CANNED_REPLIES["default"]


__all__ = [
    "UNIT_VOCABULARY",
    "CONSUMPTION_VERBS",
    "BASE_CALORIES",
    "MACRO_FRACTIONS",
    "extract_quantity",
    "extract_unit",
    "extract_ingredient",
    "estimate_base_calories",
    "parse_consumption_offline",
    "build_fallback_recipe",
    "canned_reply",
    "round_half_up",
]
