# unit_tests/test_tool_json_extractor.py
"""
Unit Tests for tolerant JSON extraction
Run with: python -m pytest unit_tests/test_tool_json_extractor.py -v
"""

import pytest

from tools.json_extractor import JSONExtractionError, extract_json, parse_json_object


def test_fenced_block():
    raw = 'Sure! Here it is:\n```json\n{"a":1}\n```\nEnjoy.'
    assert extract_json(raw) == '{"a":1}'


def test_fenced_block_without_language_tag():
    raw = '```\n{"a": 1}\n```'
    assert parse_json_object(raw) == {"a": 1}


def test_prose_around_object():
    raw = 'Here is the data you asked for {"a":1} hope that helps'
    assert extract_json(raw) == '{"a":1}'


def test_nested_object_uses_first_and_last_brace():
    raw = 'Result: {"name": "Toast", "nutrition": {"calories": 80}} done'
    data = parse_json_object(raw)
    assert data["nutrition"]["calories"] == 80


@pytest.mark.parametrize("raw", ["no json here", "", "} backwards {"])
def test_missing_object_fails(raw):
    with pytest.raises(JSONExtractionError):
        extract_json(raw)


def test_malformed_json_fails():
    with pytest.raises(JSONExtractionError):
        parse_json_object('{"a": 1,,}')


def test_extraction_error_is_a_value_error():
    assert issubclass(JSONExtractionError, ValueError)
