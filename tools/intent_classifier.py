# tools/intent_classifier.py
"""
Alfredo Voice — Intent Classifier
=================================
Maps an utterance to one of the fixed intents using keyword rules.

Rules are checked in priority order and the first match wins, so
"cook pasta and buy milk" is a recipe request, not a shopping one.
Matching is case-insensitive substring matching.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from tools.schemas import Intent


@dataclass(frozen=True)
class IntentRule:
    intent: Intent
    keywords: Tuple[str, ...]
    priority: int

    def matches(self, text_lower: str) -> bool:
        return any(kw in text_lower for kw in self.keywords)


# =============================================================================
# RULES (lower priority number = checked first)
# =============================================================================
INTENT_RULES: List[IntentRule] = sorted(
    [
        IntentRule(Intent.RECIPE, ("recipe", "cook", "make"), priority=1),
        IntentRule(Intent.CONSUMPTION, ("ate", "eat", "drank", "consumed"), priority=2),
        IntentRule(Intent.PANTRY, ("pantry", "inventory", "check"), priority=3),
        IntentRule(Intent.SHOPPING, ("shopping", "grocery", "buy"), priority=4),
    ],
    key=lambda rule: rule.priority,
)

DEFAULT_INTENT = Intent.GENERAL


def classify_with_rule(text: str) -> Tuple[Intent, Optional[IntentRule]]:
    """Classify and also return the rule that fired (None for general)."""
    if not text:
        return DEFAULT_INTENT, None

    text_lower = text.lower()
    for rule in INTENT_RULES:
        if rule.matches(text_lower):
            return rule.intent, rule
    return DEFAULT_INTENT, None


def classify(text: str) -> Intent:
    """
    Classify an utterance.

    Example:
        >>> classify("I want to cook pasta")
        <Intent.RECIPE: 'recipe'>
        >>> classify("hello")
        <Intent.GENERAL: 'general'>
    """
    intent, _ = classify_with_rule(text)
    return intent


__all__ = ["IntentRule", "INTENT_RULES", "DEFAULT_INTENT", "classify", "classify_with_rule"]
