# agents/orchestrator.py
"""
Alfredo Voice — Command Orchestrator
====================================
Takes a completed utterance through

    received -> classified -> dispatched -> (resolved | failed)

and routes it to the recipe / consumption / pantry / shopping / general
handler. Handlers drive the side effects (log a meal, decrement the
pantry, add shopping items) and return the sentence to speak.

Any exception inside a handler ends in the fixed apology. It is logged
and never re-raised.
"""

import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional

from agents.narrator import ResponseNarrator
from memory.kitchen_store import NutritionLogCollaborator, PantryCollaborator, ShoppingListCollaborator
from memory.models import MealIngredient
from tools.gateway import LanguageGateway
from tools.intent_classifier import classify_with_rule
from tools.schemas import ClassifiedCommand, Intent, RecipeSuggestion, Utterance

logger = logging.getLogger(__name__)

# =============================================================================
# RESPONSES
# =============================================================================
APOLOGY = "I'm sorry, I couldn't process that request. Please try again."

RESPONSES = {
    "recipe_missing": (
        "Here's a recipe for {name}! I've found {available} ingredients in your pantry "
        "and added {missing} missing items to your shopping list."
    ),
    "recipe_complete": "Perfect! Here's a recipe for {name} using ingredients from your pantry.",
    "recipe_failed": "I couldn't generate a recipe for {dish} right now. Please try again.",
    "consumption_logged": "I've logged {quantity} {unit} of {ingredient} ({calories} calories) to your daily intake.",
    "consumption_failed": "I couldn't process that food item. Please try again with a clearer description.",
    "pantry_low": "You're running low on: {names}. Consider adding these to your shopping list.",
    "pantry_stocked": "All your pantry items are well stocked!",
    "pantry_summary": "You have {total} items in your pantry. {detail}",
    "pantry_summary_low": "{count} items are running low.",
    "pantry_summary_ok": "Everything looks well stocked!",
    "shopping": "I can help you manage your shopping list. What would you like to add?",
}

LOW_STOCK_PHRASES = ("low stock", "running out")

DEFAULT_DISH = "a dish"
_DISH_RE = re.compile(
    r"\b(?:how to make|recipe for|make|cook)\b\s+(?P<dish>[^.,!?;]+)",
    re.IGNORECASE,
)
_LEADING_ARTICLE_RE = re.compile(r"^(?:(?:a|an|the|some)\s+)+", re.IGNORECASE)

MEAL_SUFFIX = "(voice logged)"
VOICE_MEAL_TYPE = "snack"


def extract_dish_name(text: str) -> str:
    """
    Dish named after "how to make" / "recipe for" / "make" / "cook".

    Example:
        >>> extract_dish_name("Can you show me how to make a chicken curry?")
        'chicken curry'
        >>> extract_dish_name("recipe please")
        'a dish'
    """
    match = _DISH_RE.search(text or "")
    if not match:
        return DEFAULT_DISH
    dish = _LEADING_ARTICLE_RE.sub("", match.group("dish").strip()).strip()
    return dish or DEFAULT_DISH


def _fmt(value: float) -> str:
    """2.0 -> "2", 2.5 -> "2.5"."""
    return f"{value:g}"


# =============================================================================
# ORCHESTRATOR
# =============================================================================
class CommandOrchestrator:
    """Dispatches classified commands for one voice session."""

    def __init__(
        self,
        gateway: LanguageGateway,
        pantry: PantryCollaborator,
        nutrition_log: NutritionLogCollaborator,
        shopping_lists: ShoppingListCollaborator,
        narrator: Optional[ResponseNarrator] = None,
    ):
        self.gateway = gateway
        self.pantry = pantry
        self.nutrition_log = nutrition_log
        self.shopping_lists = shopping_lists
        self.narrator = narrator or ResponseNarrator()
        self.current_recipe: Optional[RecipeSuggestion] = None

        self._handlers: Dict[Intent, Callable[[ClassifiedCommand], Awaitable[str]]] = {
            Intent.RECIPE: self._handle_recipe,
            Intent.CONSUMPTION: self._handle_consumption,
            Intent.PANTRY: self._handle_pantry,
            Intent.SHOPPING: self._handle_shopping,
            Intent.GENERAL: self._handle_general,
        }

    def classify(self, utterance: Utterance) -> ClassifiedCommand:
        intent, rule = classify_with_rule(utterance.text)
        logger.info(
            "🚦 Orchestrator: '%s' -> %s (%s)",
            utterance.text[:50],
            intent.value,
            f"priority {rule.priority}" if rule else "no rule matched",
        )
        return ClassifiedCommand(utterance=utterance, intent=intent)

    async def dispatch(self, command: ClassifiedCommand) -> ClassifiedCommand:
        """Run the handler for an already classified command, then narrate the result."""
        command.mark_dispatched()
        try:
            response = await self._handlers[command.intent](command)
        except Exception:
            logger.exception("❌ Error processing voice command: %r", command.command)
            command.fail(APOLOGY)
        else:
            command.resolve(response)

        await self.narrator.narrate(command.response)
        return command

    async def process(
        self,
        utterance: Utterance,
        history: Optional[List[ClassifiedCommand]] = None,
    ) -> ClassifiedCommand:
        """classify + dispatch. The command is appended to `history` before dispatch."""
        command = self.classify(utterance)
        if history is not None:
            history.append(command)
        return await self.dispatch(command)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    async def _handle_recipe(self, command: ClassifiedCommand) -> str:
        dish = extract_dish_name(command.command)
        recipe = await self.gateway.generate_recipe(dish, self.pantry.snapshot())
        if recipe is None:
            return RESPONSES["recipe_failed"].format(dish=dish)

        self.current_recipe = recipe
        command.effects["recipe"] = recipe.model_dump()

        missing = recipe.missing_ingredients()
        if not missing:
            return RESPONSES["recipe_complete"].format(name=recipe.name)

        missing_names = [ingredient.name for ingredient in missing]
        await self.shopping_lists.add_items(missing_names)
        command.effects["shopping_items_added"] = missing_names
        return RESPONSES["recipe_missing"].format(
            name=recipe.name,
            available=len(recipe.available_ingredients()),
            missing=len(missing),
        )

    async def _handle_consumption(self, command: ClassifiedCommand) -> str:
        record = await self.gateway.parse_consumption(command.command)
        if record is None:
            return RESPONSES["consumption_failed"]

        meal = await self.nutrition_log.add_meal(
            f"{record.ingredient} {MEAL_SUFFIX}",
            VOICE_MEAL_TYPE,
            [
                MealIngredient(
                    quantity=record.quantity,
                    unit=record.unit,
                    calories=record.calories,
                    protein=record.protein,
                    carbs=record.carbs,
                    fat=record.fat,
                )
            ],
        )
        command.effects["meal"] = meal.model_dump()

        pantry_result = await self.pantry.consume(record.ingredient, record.quantity, record.unit)
        if pantry_result.get("status") == "not_found":
            logger.info("Pantry: no entry for %r, skipping decrement", record.ingredient)
            command.effects["pantry_update"] = pantry_result
        else:
            command.effects["pantry_update"] = {
                "status": pantry_result.get("status"),
                "item": pantry_result["item"].model_dump(),
            }

        return RESPONSES["consumption_logged"].format(
            quantity=_fmt(record.quantity),
            unit=record.unit,
            ingredient=record.ingredient,
            calories=_fmt(record.calories),
        )

    async def _handle_pantry(self, command: ClassifiedCommand) -> str:
        pantry = self.pantry.snapshot()
        low_stock = [item for item in pantry if item.is_running_low()]
        text_lower = command.command.lower()

        if any(phrase in text_lower for phrase in LOW_STOCK_PHRASES):
            if low_stock:
                return RESPONSES["pantry_low"].format(names=", ".join(item.name for item in low_stock))
            return RESPONSES["pantry_stocked"]

        detail = (
            RESPONSES["pantry_summary_low"].format(count=len(low_stock))
            if low_stock
            else RESPONSES["pantry_summary_ok"]
        )
        return RESPONSES["pantry_summary"].format(total=len(pantry), detail=detail)

    async def _handle_shopping(self, command: ClassifiedCommand) -> str:
        # Placeholder: voice does not mutate shopping lists yet, recipes add missing items instead.
        return RESPONSES["shopping"]

    async def _handle_general(self, command: ClassifiedCommand) -> str:
        return await self.gateway.freeform_reply(command.command, self._context_summary())

    def _context_summary(self) -> str:
        pantry = self.pantry.snapshot()
        totals = self.nutrition_log.todays_totals()
        return (
            f"The user has {len(pantry)} pantry items and has eaten "
            f"{_fmt(totals.calories)} calories today."
        )


__all__ = [
    "APOLOGY",
    "RESPONSES",
    "CommandOrchestrator",
    "extract_dish_name",
]
