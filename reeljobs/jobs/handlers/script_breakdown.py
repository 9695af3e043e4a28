"""Screenplay breakdown through a chat-completions model."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from reeljobs.jobs.errors import JobInputError
from reeljobs.jobs.handlers.base import ProviderJobHandler
from reeljobs.jobs.models import JobRecord
from reeljobs.providers.chat_gateway import ChatRequest
from reeljobs.utils.json_extract import parse_json_with_fallback, strip_json_fences

logger = logging.getLogger(__name__)

BREAKDOWN_SYSTEM_PROMPT = """You are a professional Nollywood script breakdown assistant. Analyze this screenplay and return ONLY valid JSON with this exact structure:

{
  "scenes": [
    {
      "scene_number": number,
      "location": "string",
      "time_of_day": "string (DAY/NIGHT/MORNING/EVENING)",
      "description": "brief scene description",
      "characters": ["character names"],
      "props": ["props needed in scene"],
      "notes": "production notes"
    }
  ],
  "characters": [
    {"name": "string", "role": "LEAD/SUPPORTING/MINOR", "description": "character description", "appearances": number}
  ],
  "locations": [
    {"name": "string", "type": "INTERIOR/EXTERIOR", "description": "location description", "scenes": number}
  ],
  "props": [
    {"name": "string", "category": "string", "importance": "HIGH/MEDIUM/LOW", "scenes": ["scene numbers where used"]}
  ],
  "summary": {
    "total_scenes": number,
    "total_characters": number,
    "estimated_shoot_days": number,
    "budget_estimate": "LOW/MEDIUM/HIGH",
    "production_notes": "key production insights"
  }
}

Focus on practical Nollywood production elements. Be detailed and accurate."""

_LIST_SECTIONS = ("scenes", "characters", "locations", "props")


def split_script(text: str, chunk_chars: int) -> list[str]:
  """Split script text into fixed-size chunks."""
  if chunk_chars <= 0:
    raise ValueError("chunk_chars must be positive")
  return [text[start : start + chunk_chars] for start in range(0, len(text), chunk_chars)] or [text]


def parse_breakdown(raw: str) -> dict[str, Any] | None:
  """Parse one model response into a breakdown dict, or None when it is not usable JSON."""
  try:
    parsed = parse_json_with_fallback(strip_json_fences(raw))
  except json.JSONDecodeError:
    return None
  return parsed if isinstance(parsed, dict) else None


def merge_breakdowns(parts: list[dict[str, Any]], *, chunks_processed: int) -> dict[str, Any]:
  """Concatenate chunk breakdowns and recompute the summary."""
  merged: dict[str, list[Any]] = {section: [] for section in _LIST_SECTIONS}
  reported_scenes = 0
  for part in parts:
    for section in _LIST_SECTIONS:
      items = part.get(section)
      if isinstance(items, list):
        merged[section].extend(items)
    summary = part.get("summary")
    if isinstance(summary, dict):
      try:
        reported_scenes += int(summary.get("total_scenes") or 0)
      except (TypeError, ValueError):
        pass

  return {
    **merged,
    "summary": {
      "total_scenes": reported_scenes or len(merged["scenes"]),
      "total_characters": len(merged["characters"]),
      "total_locations": len(merged["locations"]),
      "total_props": len(merged["props"]),
      "chunks_processed": chunks_processed,
      "budget_estimate": "MEDIUM",
    },
  }


class ScriptBreakdownHandler(ProviderJobHandler):
  """Breaks a screenplay into scenes, characters, locations and props."""

  kind = "script-breakdown"

  def __init__(self, provider, *, chunk_chars: int = 30000, chunk_delay_seconds: float = 0.5, **kwargs: Any) -> None:
    super().__init__(provider, **kwargs)
    self._chunk_chars = chunk_chars
    self._chunk_delay = chunk_delay_seconds

  async def run(self, job: JobRecord) -> dict[str, Any]:
    script = await self.load_script(job.input)
    chunks = split_script(script, self._chunk_chars)
    logger.info("Script breakdown for job %s: %d characters in %d chunk(s)", job.job_id, len(script), len(chunks))

    responses: list[str] = []
    for index, chunk in enumerate(chunks):
      if index > 0:
        await self._sleep(self._chunk_delay)
        await self.ensure_still_running(job)
      if len(chunks) > 1:
        prompt = f"Analyze part {index + 1}/{len(chunks)} of this script. Return ONLY the JSON structure requested, no additional text:\n\n{chunk}"
      else:
        prompt = f"Analyze this complete script. Return ONLY the JSON structure requested, no additional text:\n\n{chunk}"
      handle = await self._provider.submit(ChatRequest(system_prompt=BREAKDOWN_SYSTEM_PROMPT, user_prompt=prompt))
      poll = await self.wait_for_result(job, handle)
      responses.append(str(poll.result or ""))

    return self.assemble(responses, script_length=len(script))

  def assemble(self, responses: list[str], *, script_length: int) -> dict[str, Any]:
    model_used = getattr(self._provider, "model", self._provider.name)
    meta = {"chunks_processed": len(responses), "script_length": script_length, "model_used": model_used}

    if len(responses) == 1:
      parsed = parse_breakdown(responses[0])
      if parsed is None:
        logger.warning("Breakdown response could not be parsed as JSON; keeping raw response")
        return {"raw_response": responses[0], "note": "Response could not be parsed as structured JSON", "scenes": [], **meta}
      body = {section: parsed.get(section) if isinstance(parsed.get(section), list) else [] for section in _LIST_SECTIONS}
      summary = parsed.get("summary") if isinstance(parsed.get("summary"), dict) else merge_breakdowns([parsed], chunks_processed=1)["summary"]
      return {**body, "summary": summary, **meta}

    parts: list[dict[str, Any]] = []
    for index, response in enumerate(responses):
      parsed = parse_breakdown(response)
      if parsed is None:
        logger.warning("Skipping unparseable breakdown chunk %d/%d", index + 1, len(responses))
        continue
      parts.append(parsed)
    return {**merge_breakdowns(parts, chunks_processed=len(responses)), **meta}

  async def load_script(self, payload: dict[str, Any]) -> str:
    """Return inline script text, or download it from ``file_url``."""
    text = _inline_script(payload)
    if text is not None:
      return text

    file_url = str(payload.get("file_url") or "").strip()
    if not file_url:
      raise JobInputError("No script content available")
    try:
      response = await self.download(file_url)
    except httpx.RequestError as exc:
      raise JobInputError(f"Failed to download script file: {exc}") from exc
    if response.status_code >= 400:
      raise JobInputError(f"Failed to download script file: HTTP {response.status_code}")
    if "pdf" in response.headers.get("content-type", "").lower():
      raise JobInputError("PDF scripts are not supported; upload the script as plain text")
    text = response.text
    if not text.strip():
      raise JobInputError("No script content available")
    return text


def _inline_script(payload: dict[str, Any]) -> str | None:
  for key in ("text", "script_content", "content"):
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
      return value
  return None
