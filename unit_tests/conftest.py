import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

# Add root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from agents.narrator import ResponseNarrator, SpeechSink
from agents.orchestrator import CommandOrchestrator
from memory.models import PantryItem
from memory.session_manager import KitchenMemoryManager
from tools.gateway import GenerationError, LanguageGateway, ResilientGateway
from tools.schemas import ConsumptionRecord, RecipeSuggestion


class RecordingSpeechSink(SpeechSink):
    """Remembers everything it was asked to say."""
    def __init__(self):
        self.spoken: List[Tuple[str, float, float]] = []

    async def speak(self, text, rate, pitch):
        self.spoken.append((text, rate, pitch))


class FailingGateway(LanguageGateway):
    """Primary gateway whose every call fails like a network error."""
    def __init__(self, error: Exception = None):
        self.error = error or GenerationError("Gemini API error: 503 Service Unavailable")
        self.calls = 0

    async def generate_recipe(self, dish_name, pantry):
        self.calls += 1
        raise self.error

    async def parse_consumption(self, utterance):
        self.calls += 1
        raise self.error

    async def freeform_reply(self, utterance, context=""):
        self.calls += 1
        raise self.error


class FakeGateway(LanguageGateway):
    """Returns canned results and records the calls it got."""
    def __init__(
        self,
        recipe: Optional[RecipeSuggestion] = None,
        consumption: Optional[ConsumptionRecord] = None,
        reply: str = "Happy to help!",
    ):
        self.recipe = recipe
        self.consumption = consumption
        self.reply = reply
        self.recipe_requests: List[Tuple[str, Sequence[PantryItem]]] = []
        self.consumption_requests: List[str] = []

    async def generate_recipe(self, dish_name, pantry):
        self.recipe_requests.append((dish_name, list(pantry)))
        return self.recipe

    async def parse_consumption(self, utterance):
        self.consumption_requests.append(utterance)
        return self.consumption

    async def freeform_reply(self, utterance, context=""):
        return self.reply


@pytest.fixture
def memory():
    """In-memory kitchen state, nothing touches disk."""
    return KitchenMemoryManager(data_file="")


@pytest.fixture
def stores(memory):
    return memory.get_stores("test_user")


@pytest.fixture
def sink():
    return RecordingSpeechSink()


@pytest.fixture
def offline_gateway():
    return ResilientGateway.offline()


@pytest.fixture
def make_orchestrator(stores, sink, offline_gateway):
    pantry, nutrition_log, shopping_lists = stores

    def _make(gateway: LanguageGateway = None) -> CommandOrchestrator:
        return CommandOrchestrator(
            gateway or offline_gateway,
            pantry,
            nutrition_log,
            shopping_lists,
            ResponseNarrator(sink),
        )

    return _make
