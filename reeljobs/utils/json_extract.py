"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def strip_json_fences(raw: str) -> str:
  """Return the body of the first Markdown code fence, or the text unchanged."""
  match = _FENCE_RE.search(raw)
  if match:
    return match.group(1).strip()
  return raw.strip()


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON, retrying on the first balanced block and without trailing commas."""
  try:
    return json.loads(raw)
  except json.JSONDecodeError as exc:
    last_error = exc

  candidate = _extract_json_block(raw)
  if candidate is None:
    raise last_error

  try:
    return json.loads(candidate)
  except json.JSONDecodeError:
    pass

  return json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))


def _extract_json_block(raw: str) -> str | None:
  """Locate the first balanced JSON object/array."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None
