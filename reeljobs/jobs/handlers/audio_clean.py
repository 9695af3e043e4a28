"""Dialogue cleanup handler."""

from __future__ import annotations

from typing import Any

from reeljobs.jobs.errors import JobInputError
from reeljobs.jobs.handlers.media import MediaArtifactHandler, require_url
from reeljobs.jobs.models import JobRecord
from reeljobs.providers.replicate import ReplicateRequest


def _flag(payload: dict[str, Any], key: str) -> bool:
  value = payload.get(key, True)
  if isinstance(value, str):
    return value.strip().lower() in {"1", "true", "yes", "on"}
  return bool(value)


class AudioCleanHandler(MediaArtifactHandler):
  kind = "audio-clean"
  extension = "wav"
  content_type = "audio/wav"

  def __init__(self, provider, *, model: str, **kwargs: Any) -> None:
    super().__init__(provider, **kwargs)
    self._model = model

  def build_request(self, job: JobRecord) -> ReplicateRequest:
    file_url = require_url(job.input, "file_url")
    denoise = _flag(job.input, "denoise")
    enhance = _flag(job.input, "enhance")
    if not denoise and not enhance:
      raise JobInputError("audio-clean needs denoise or enhance enabled")
    return ReplicateRequest(model=self._model, input={"input_audio": file_url, "denoise_flag": denoise})

  def output_extras(self, job: JobRecord) -> dict[str, Any]:
    return {"settings": {"denoise": _flag(job.input, "denoise"), "enhance": _flag(job.input, "enhance")}}
