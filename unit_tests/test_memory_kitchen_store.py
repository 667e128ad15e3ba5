# unit_tests/test_memory_kitchen_store.py
"""
Unit Tests for the pantry / nutrition / shopping collaborators
Run with: python -m pytest unit_tests/test_memory_kitchen_store.py -v
"""

import asyncio
import json
from datetime import date, datetime, timedelta

from memory.kitchen_store import NOT_FOUND_MESSAGE
from memory.models import MealIngredient
from memory.session_manager import JsonStateManager, KitchenMemoryManager


# =============================================================================
# PANTRY
# =============================================================================
def test_add_item_merges_same_name(stores):
    pantry, _, _ = stores

    asyncio.run(pantry.add_item("Rice", 2, "cup"))
    asyncio.run(pantry.add_item("rice", 1.5, "cup"))

    items = pantry.snapshot()
    assert len(items) == 1
    assert items[0].name == "Rice"
    assert items[0].quantity == 3.5


def test_consume_decrements_and_flags_low_stock(stores):
    pantry, _, _ = stores
    asyncio.run(pantry.add_item("Eggs", 3, "piece"))

    result = asyncio.run(pantry.consume("eggs", 2, "piece"))

    assert result["status"] == "success"
    assert result["item"].quantity == 1
    assert result["item"].is_low_stock is True
    assert [i.name for i in pantry.low_stock_items()] == ["Eggs"]


def test_consume_never_goes_negative(stores):
    pantry, _, _ = stores
    asyncio.run(pantry.add_item("milk", 1, "cup"))

    result = asyncio.run(pantry.consume("Milk", 5, "cup"))

    assert result["item"].quantity == 0


def test_consume_missing_item_signals_not_found(stores):
    pantry, _, _ = stores
    asyncio.run(pantry.add_item("brown rice", 2, "cup"))

    result = asyncio.run(pantry.consume("rice", 1, "cup"))

    assert result == {"status": "not_found", "error_message": NOT_FOUND_MESSAGE}
    assert pantry.snapshot()[0].quantity == 2


def test_expiring_items(stores):
    pantry, _, _ = stores
    soon = (date.today() + timedelta(days=2)).isoformat()
    later = (date.today() + timedelta(days=10)).isoformat()
    asyncio.run(pantry.add_item("yogurt", 2, "cup", expiry_date=soon))
    asyncio.run(pantry.add_item("flour", 5, "cup", expiry_date=later))
    asyncio.run(pantry.add_item("salt", 1, "lb"))

    assert [i.name for i in pantry.expiring_items()] == ["yogurt"]
    assert len(pantry.expiring_items(days=30)) == 2


# =============================================================================
# NUTRITION LOG
# =============================================================================
def test_add_meal_sums_ingredient_totals(stores):
    _, nutrition_log, _ = stores
    ingredients = [
        MealIngredient(quantity=1, unit="cup", calories=200, protein=4, carbs=45, fat=1),
        MealIngredient(quantity=2, unit="piece", calories=140, protein=12, carbs=1, fat=10),
    ]

    meal = asyncio.run(nutrition_log.add_meal("rice and eggs", "lunch", ingredients))

    assert meal.totals.calories == 340
    assert meal.totals.protein == 16
    assert nutrition_log.todays_totals().calories == 340
    assert [m.name for m in nutrition_log.todays_meals()] == ["rice and eggs"]


# =============================================================================
# SHOPPING LISTS
# =============================================================================
def test_add_items_creates_list_then_reuses_it(stores):
    _, _, shopping_lists = stores

    first = asyncio.run(shopping_lists.add_items(["basil", "parmesan"]))
    second = asyncio.run(shopping_lists.add_items(["olive oil"]))

    assert first.id == second.id
    assert first.name == f"Shopping List - {datetime.now().strftime('%m/%d/%Y')}"
    assert [i.name for i in second.items] == ["basil", "parmesan", "olive oil"]
    assert all(i.quantity == 1 and i.unit == "piece" for i in second.items)
    assert len(shopping_lists.lists()) == 1


def test_add_items_ignores_blank_names(stores):
    _, _, shopping_lists = stores

    assert asyncio.run(shopping_lists.add_items(["", "  "])) is None
    assert shopping_lists.active_list() is None


# =============================================================================
# PERSISTENCE
# =============================================================================
def test_state_survives_reload(tmp_path):
    data_file = tmp_path / "kitchen.json"
    memory = KitchenMemoryManager(data_file=str(data_file))
    pantry, _, _ = memory.get_stores("alice")
    asyncio.run(pantry.add_item("oats", 3, "cup"))

    on_disk = json.loads(data_file.read_text())
    assert on_disk["alice"]["pantry"][0]["name"] == "oats"

    reloaded, _, _ = KitchenMemoryManager(data_file=str(data_file)).get_stores("alice")
    assert reloaded.snapshot()[0].quantity == 3


def test_users_are_isolated(memory):
    alice, _, _ = memory.get_stores("alice")
    bob, _, _ = memory.get_stores("bob")
    asyncio.run(alice.add_item("tea", 1, "piece"))

    assert bob.snapshot() == []


def test_corrupt_state_file_starts_empty(tmp_path):
    data_file = tmp_path / "broken.json"
    data_file.write_text("{not json")

    manager = JsonStateManager(str(data_file))

    assert manager.state_cache == {}


def test_in_memory_manager_does_not_save():
    assert JsonStateManager(None).save() is False
