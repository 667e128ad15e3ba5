"""
Alfredo Voice — JSON Memory Manager
===================================
- Per-user dictionaries ("pantry", "meals", "shopping_lists")
- Direct dictionary-to-JSON persistence
- In-memory only when no data file is configured
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from config.settings import DATA_FILE
from memory.kitchen_store import JsonNutritionLog, JsonPantry, JsonShoppingLists

logger = logging.getLogger(__name__)

USER_STATE_KEYS = ("pantry", "meals", "shopping_lists")


# =============================================================================
# SIMPLE STATE MANAGER
# =============================================================================
class JsonStateManager:
    """Reads and writes state to a JSON file."""

    def __init__(self, filepath: Optional[str] = None):
        self.filepath = filepath or None
        self.state_cache: Dict[str, Dict[str, Any]] = self._load()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.filepath or not os.path.exists(self.filepath):
            return {}
        try:
            with open(self.filepath, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("⚠️ Could not read %s (%s). Starting with empty state.", self.filepath, e)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self) -> bool:
        """Write cache to disk. Returns False when running in memory only."""
        if not self.filepath:
            return False
        directory = os.path.dirname(self.filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.filepath, "w") as f:
            json.dump(self.state_cache, f, indent=2, default=str)
        return True

    def get_user_state(self, user_id: str) -> Dict[str, Any]:
        """Get the dictionary for a specific user, creating the standard keys."""
        state = self.state_cache.setdefault(user_id, {})
        for key in USER_STATE_KEYS:
            state.setdefault(key, [])
        return state


# =============================================================================
# KITCHEN MEMORY MANAGER
# =============================================================================
class KitchenMemoryManager:
    """Hands out the pantry / nutrition / shopping collaborators for a user."""

    def __init__(self, data_file: Optional[str] = DATA_FILE, state_manager: Optional[JsonStateManager] = None):
        self.state_manager = state_manager or JsonStateManager(data_file)
        if self.state_manager.filepath:
            logger.info("📂 Storage: %s", self.state_manager.filepath)
        else:
            logger.info("📂 Storage: in-memory")

    def get_stores(self, user_id: str):
        """Returns (pantry, nutrition_log, shopping_lists) bound to the user's state."""
        user_state = self.state_manager.get_user_state(user_id)
        return (
            JsonPantry(user_state, on_change=self.save),
            JsonNutritionLog(user_state, on_change=self.save),
            JsonShoppingLists(user_state, on_change=self.save),
        )

    def save(self) -> None:
        """Dumps the global state to disk."""
        if self.state_manager.save():
            logger.debug("💾 State saved to %s", self.state_manager.filepath)


__all__ = ["JsonStateManager", "KitchenMemoryManager"]
