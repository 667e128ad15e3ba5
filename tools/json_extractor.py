# tools/json_extractor.py
"""
Alfredo Voice — Tolerant JSON Extraction
========================================
Gemini answers in prose, markdown or bare JSON. These helpers locate
the JSON object in whatever came back.
"""

import json
import re
from typing import Any, Dict

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)


class JSONExtractionError(ValueError):
    """Raised when no JSON object can be recovered from model output."""


def extract_json(response: str) -> str:
    """
    Return the JSON object text embedded in a model response.

    A fenced ```json block wins; otherwise the text between the first
    "{" and the last "}" is used.
    """
    text = response or ""

    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        return fenced.group(1).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise JSONExtractionError("No valid JSON found in response")
    return text[start:end + 1].strip()


def parse_json_object(response: str) -> Dict[str, Any]:
    """extract_json + json.loads, insisting on an object at the top level."""
    raw = extract_json(response)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise JSONExtractionError(f"Malformed JSON in response: {exc}") from exc

    if not isinstance(data, dict):
        raise JSONExtractionError(f"Expected a JSON object, got {type(data).__name__}")
    return data


__all__ = ["JSONExtractionError", "extract_json", "parse_json_object"]
