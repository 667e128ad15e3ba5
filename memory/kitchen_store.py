# memory/kitchen_store.py
"""
Alfredo Voice — Kitchen Collaborators
=====================================
Pantry, nutrition log and shopping lists as seen by the voice pipeline.

Reads are synchronous snapshots; writes are async so a networked store
can be dropped in behind the same interface. The JSON-backed versions
below keep plain dictionaries in the per-user state owned by
memory/session_manager.py.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from config.settings import VOICE_CONFIG
from memory.models import GroceryItem, GroceryList, Meal, MealIngredient, MealType, NutritionTotals, PantryItem

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Ingredient not found in pantry"


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value[:10]).date()
    except ValueError:
        return None


# =============================================================================
# INTERFACES
# =============================================================================
class PantryCollaborator(ABC):

    @abstractmethod
    def snapshot(self) -> List[PantryItem]:
        """Current pantry contents."""

    @abstractmethod
    async def add_item(
        self,
        name: str,
        quantity: float,
        unit: str = "piece",
        expiry_date: Optional[str] = None,
    ) -> PantryItem:
        ...

    @abstractmethod
    async def consume(self, name: str, quantity: float, unit: str) -> Dict[str, Any]:
        """Decrement a pantry item. Returns a status dict, never raises for a missing item."""

    def low_stock_items(self) -> List[PantryItem]:
        return [item for item in self.snapshot() if item.is_running_low()]

    def expiring_items(self, days: int = 3) -> List[PantryItem]:
        """Items whose expiry date is on or before today + `days` (already expired included)."""
        cutoff = date.today() + timedelta(days=days)
        expiring = []
        for item in self.snapshot():
            expiry = _parse_date(item.expiry_date)
            if expiry is not None and expiry <= cutoff:
                expiring.append(item)
        return expiring


class NutritionLogCollaborator(ABC):

    @abstractmethod
    async def add_meal(self, name: str, meal_type: MealType, ingredients: List[MealIngredient]) -> Meal:
        ...

    @abstractmethod
    def todays_meals(self) -> List[Meal]:
        ...

    def todays_totals(self) -> NutritionTotals:
        totals = NutritionTotals()
        for meal in self.todays_meals():
            totals = totals.add(meal.totals)
        return totals


class ShoppingListCollaborator(ABC):

    @abstractmethod
    async def add_items(self, names: Iterable[str]) -> Optional[GroceryList]:
        """Append names to the active list, creating one when none is active."""

    @abstractmethod
    def lists(self) -> List[GroceryList]:
        ...

    def active_list(self) -> Optional[GroceryList]:
        for grocery_list in self.lists():
            if not grocery_list.is_completed:
                return grocery_list
        return None


# =============================================================================
# JSON-BACKED IMPLEMENTATIONS
# =============================================================================
class _JsonStore:
    """Shared plumbing: a slot in the user's state dict plus a change hook."""

    key = ""

    def __init__(self, user_state: Dict[str, Any], on_change: Optional[Callable[[], None]] = None):
        self._state = user_state
        self._state.setdefault(self.key, [])
        self._on_change = on_change

    @property
    def _rows(self) -> List[Dict[str, Any]]:
        return self._state[self.key]

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()


class JsonPantry(_JsonStore, PantryCollaborator):
    key = "pantry"

    def snapshot(self) -> List[PantryItem]:
        return [PantryItem.model_validate(row) for row in self._rows]

    def _find_index(self, name: str) -> Optional[int]:
        target = name.strip().lower()
        for index, row in enumerate(self._rows):
            if str(row.get("name", "")).lower() == target:
                return index
        return None

    async def add_item(
        self,
        name: str,
        quantity: float,
        unit: str = "piece",
        expiry_date: Optional[str] = None,
    ) -> PantryItem:
        index = self._find_index(name)
        if index is None:
            item = PantryItem(
                name=name.strip(),
                quantity=quantity,
                unit=unit,
                expiry_date=expiry_date,
                low_stock_threshold=VOICE_CONFIG["default_low_stock_threshold"],
            )
            item.is_low_stock = item.quantity <= item.low_stock_threshold
            self._rows.append(item.model_dump())
        else:
            item = PantryItem.model_validate(self._rows[index])
            item.quantity += quantity
            if expiry_date:
                item.expiry_date = expiry_date
            item.is_low_stock = item.quantity <= item.low_stock_threshold
            item.last_updated = datetime.now().isoformat()
            self._rows[index] = item.model_dump()

        self._changed()
        return item

    async def consume(self, name: str, quantity: float, unit: str) -> Dict[str, Any]:
        index = self._find_index(name)
        if index is None:
            return {"status": "not_found", "error_message": NOT_FOUND_MESSAGE}

        item = PantryItem.model_validate(self._rows[index])
        item.quantity = max(0.0, item.quantity - quantity)
        item.is_low_stock = item.quantity <= item.low_stock_threshold
        item.last_updated = datetime.now().isoformat()
        self._rows[index] = item.model_dump()
        self._changed()

        logger.debug("Pantry: %s -> %g %s", item.name, item.quantity, item.unit)
        return {"status": "success", "item": item}


class JsonNutritionLog(_JsonStore, NutritionLogCollaborator):
    key = "meals"

    async def add_meal(self, name: str, meal_type: MealType, ingredients: List[MealIngredient]) -> Meal:
        meal = Meal(
            name=name,
            meal_type=meal_type,
            ingredients=list(ingredients),
            totals=NutritionTotals.from_ingredients(list(ingredients)),
        )
        self._rows.append(meal.model_dump())
        self._changed()
        return meal

    def meals(self) -> List[Meal]:
        return [Meal.model_validate(row) for row in self._rows]

    def todays_meals(self) -> List[Meal]:
        today = date.today().isoformat()
        return [meal for meal in self.meals() if meal.logged_at[:10] == today]


class JsonShoppingLists(_JsonStore, ShoppingListCollaborator):
    key = "shopping_lists"

    def lists(self) -> List[GroceryList]:
        return [GroceryList.model_validate(row) for row in self._rows]

    async def add_items(self, names: Iterable[str]) -> Optional[GroceryList]:
        names = [n.strip() for n in names if n and n.strip()]
        if not names:
            return None

        index = next(
            (i for i, row in enumerate(self._rows) if not row.get("is_completed")),
            None,
        )
        if index is None:
            grocery_list = GroceryList(name=f"Shopping List - {datetime.now().strftime('%m/%d/%Y')}")
            self._rows.append(grocery_list.model_dump())
            index = len(self._rows) - 1
        else:
            grocery_list = GroceryList.model_validate(self._rows[index])

        grocery_list.items.extend(GroceryItem(name=name) for name in names)
        self._rows[index] = grocery_list.model_dump()
        self._changed()
        return grocery_list


__all__ = [
    "NOT_FOUND_MESSAGE",
    "PantryCollaborator",
    "NutritionLogCollaborator",
    "ShoppingListCollaborator",
    "JsonPantry",
    "JsonNutritionLog",
    "JsonShoppingLists",
]
