import json

import pytest

from reeljobs.utils.json_extract import parse_json_with_fallback, strip_json_fences


def test_strip_json_fences():
  assert strip_json_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
  assert strip_json_fences('Here you go:\n```\n[1, 2]\n```\nThanks') == "[1, 2]"
  assert strip_json_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_recovers_embedded_block_and_trailing_commas():
  assert parse_json_with_fallback('Result: {"scenes": [{"n": 1},], "note": "a } b"} trailing') == {"scenes": [{"n": 1}], "note": "a } b"}


def test_parse_raises_when_nothing_looks_like_json():
  with pytest.raises(json.JSONDecodeError):
    parse_json_with_fallback("no structured content here")
