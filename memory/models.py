# memory/models.py
"""
Alfredo Voice — Persisted Records
=================================
Pydantic models for the rows the voice pipeline reads and writes
through its collaborators (pantry, nutrition log, shopping lists).
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

MealType = Literal["breakfast", "lunch", "dinner", "snack"]


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> str:
    return datetime.now().isoformat()


# =============================================================================
# PANTRY
# =============================================================================
class PantryItem(BaseModel):
    """One owned ingredient. A list of these is the pantry snapshot."""
    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1)
    quantity: float = Field(0.0, ge=0)
    unit: str = "piece"
    expiry_date: Optional[str] = Field(None, description="ISO date, e.g. '2026-10-21'")
    low_stock_threshold: float = Field(1.0, ge=0)
    is_low_stock: bool = False
    last_updated: str = Field(default_factory=_now)

    def is_running_low(self) -> bool:
        return self.is_low_stock or self.quantity <= self.low_stock_threshold


# =============================================================================
# NUTRITION LOG
# =============================================================================
class MealIngredient(BaseModel):
    ingredient_id: str = ""
    quantity: float = Field(0.0, ge=0)
    unit: str = "piece"
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)


class NutritionTotals(BaseModel):
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    @classmethod
    def from_ingredients(cls, ingredients: List[MealIngredient]) -> "NutritionTotals":
        return cls(
            calories=sum(i.calories for i in ingredients),
            protein=sum(i.protein for i in ingredients),
            carbs=sum(i.carbs for i in ingredients),
            fat=sum(i.fat for i in ingredients),
        )

    def add(self, other: "NutritionTotals") -> "NutritionTotals":
        return NutritionTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )


class Meal(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    meal_type: MealType = "snack"
    logged_at: str = Field(default_factory=_now)
    totals: NutritionTotals = Field(default_factory=NutritionTotals)
    ingredients: List[MealIngredient] = Field(default_factory=list)


# =============================================================================
# SHOPPING LISTS
# =============================================================================
class GroceryItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    quantity: float = 1.0
    unit: str = "piece"
    is_completed: bool = False


class GroceryList(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    items: List[GroceryItem] = Field(default_factory=list)
    is_completed: bool = False
    created_at: str = Field(default_factory=_now)
    completed_at: Optional[str] = None


__all__ = [
    "MealType",
    "PantryItem",
    "MealIngredient",
    "NutritionTotals",
    "Meal",
    "GroceryItem",
    "GroceryList",
]
