# unit_tests/test_tool_gateway.py
"""
Unit Tests for the Language-Model Gateway (primary + local fallback)
Run with: python -m pytest unit_tests/test_tool_gateway.py -v
"""

import asyncio
from types import SimpleNamespace

import pytest

from conftest import FailingGateway
from memory.models import PantryItem
from tools.fallback_parser import CANNED_REPLIES
from tools.gateway import GenerationError, ResilientGateway, mark_availability
from tools.gemini_gateway import GeminiGateway, build_gateway, build_recipe_prompt, describe_pantry
from tools.json_extractor import JSONExtractionError
from tools.schemas import RecipeIngredient, RecipeSuggestion


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def fake_client(text=None, error=None):
    models = FakeModels(text=text, error=error)
    return SimpleNamespace(aio=SimpleNamespace(models=models)), models


PANTRY = [
    PantryItem(name="Cherry Tomatoes", quantity=10, unit="piece"),
    PantryItem(name="spaghetti", quantity=1, unit="lb"),
]


# =============================================================================
# RESILIENT GATEWAY
# =============================================================================
def test_failed_primary_falls_back_to_parser():
    primary = FailingGateway()
    gateway = ResilientGateway(primary)

    record = asyncio.run(gateway.parse_consumption("I ate 2 slices of bread"))

    assert primary.calls == 1
    assert record.source == "heuristic_fallback"
    assert record.ingredient == "bread"


def test_malformed_json_falls_back_for_recipes():
    gateway = ResilientGateway(FailingGateway(JSONExtractionError("No valid JSON found in response")))

    recipe = asyncio.run(gateway.generate_recipe("pasta", PANTRY))

    assert recipe.name == "Simple pasta"
    assert recipe.source == "heuristic_fallback"


def test_freeform_fallback_is_canned_reply():
    gateway = ResilientGateway(FailingGateway())

    reply = asyncio.run(gateway.freeform_reply("hello"))

    assert reply == CANNED_REPLIES["default"]


def test_unexpected_errors_are_not_masked():
    gateway = ResilientGateway(FailingGateway(KeyError("bug")))

    with pytest.raises(KeyError):
        asyncio.run(gateway.freeform_reply("hello"))


def test_offline_gateway_mode():
    assert ResilientGateway.offline().mode == "offline"
    assert ResilientGateway(FailingGateway()).mode == "gemini"
    assert build_gateway(api_key=None).mode == "offline"


# =============================================================================
# AVAILABILITY OVERRIDE
# =============================================================================
def test_availability_overrides_model_claim():
    recipe = RecipeSuggestion(
        name="Pasta Pomodoro",
        ingredients=[
            RecipeIngredient(name="tomato", available=False),
            RecipeIngredient(name="Spaghetti", available=False),
            RecipeIngredient(name="saffron", available=True),
        ],
    )

    mark_availability(recipe, PANTRY)

    assert [i.available for i in recipe.ingredients] == [True, True, False]


def test_availability_is_name_substring_of_pantry_name_only():
    recipe = RecipeSuggestion(
        name="Salad",
        ingredients=[RecipeIngredient(name="cherry tomatoes and basil")],
    )

    mark_availability(recipe, PANTRY)

    assert recipe.ingredients[0].available is False


# =============================================================================
# GEMINI GATEWAY
# =============================================================================
def test_gemini_requires_api_key():
    with pytest.raises(GenerationError):
        GeminiGateway(api_key=None)


def test_gemini_recipe_parsing_and_override():
    raw = """Here you go!
```json
{"name": "Pasta Pomodoro",
 "ingredients": [{"name": "tomato", "quantity": "2", "unit": "piece", "available": false},
                 {"name": "basil", "quantity": "a handful", "unit": null, "available": true}],
 "instructions": ["Boil pasta", "Make sauce"],
 "prep_time": "10 minutes", "cook_time": "15 minutes", "servings": "4",
 "nutrition": {"calories": "420 kcal", "protein": 14, "carbs": 70, "fat": 9}}
```"""
    client, models = fake_client(text=raw)
    gateway = GeminiGateway(client=client, model="test-model")

    recipe = asyncio.run(gateway.generate_recipe("pasta", PANTRY))

    assert recipe.source == "ai"
    assert recipe.servings == 4
    assert recipe.nutrition.calories == 420
    assert recipe.ingredients[0].quantity == 2
    assert recipe.ingredients[1].quantity == 1.0
    assert recipe.ingredients[1].unit == ""
    assert [i.available for i in recipe.ingredients] == [True, False]

    call = models.calls[0]
    assert call["model"] == "test-model"
    assert call["config"].temperature == 0.7
    assert call["config"].top_k == 40
    assert call["config"].max_output_tokens == 512


def test_gemini_consumption_parsing():
    raw = '{"action": "consume", "ingredient": "rice", "quantity": 1, "unit": "cup", "calories": 206, "protein": 4, "carbs": 45, "fat": 0.4}'
    client, _ = fake_client(text=raw)

    record = asyncio.run(GeminiGateway(client=client).parse_consumption("I ate 1 cup of rice"))

    assert record.ingredient == "rice"
    assert record.calories == 206
    assert record.source == "ai"


def test_gemini_transport_error_becomes_generation_error():
    client, _ = fake_client(error=ConnectionError("network down"))

    with pytest.raises(GenerationError):
        asyncio.run(GeminiGateway(client=client).freeform_reply("hello"))


def test_gemini_empty_response_is_an_error():
    client, _ = fake_client(text="   ")

    with pytest.raises(GenerationError):
        asyncio.run(GeminiGateway(client=client).freeform_reply("hello"))


def test_resilient_gemini_with_prose_only_answer_uses_fallback():
    client, _ = fake_client(text="I'm not sure what you ate, sorry!")
    gateway = ResilientGateway(GeminiGateway(client=client))

    record = asyncio.run(gateway.parse_consumption("I ate 2 slices of bread"))

    assert record.source == "heuristic_fallback"
    assert record.quantity == 2


def test_resilient_gemini_with_invalid_record_uses_fallback():
    client, _ = fake_client(text='{"ingredient": "", "quantity": -3}')
    gateway = ResilientGateway(GeminiGateway(client=client))

    record = asyncio.run(gateway.parse_consumption("I had an apple"))

    assert record.source == "heuristic_fallback"
    assert record.ingredient == "apple"


def test_prompt_lists_pantry():
    assert describe_pantry(PANTRY) == "Cherry Tomatoes (10 piece), spaghetti (1 lb)"
    assert describe_pantry([]) == "none"
    assert '"pasta"' in build_recipe_prompt("pasta", PANTRY)
