"""Rotoscoping (background removal) handler."""

from __future__ import annotations

from typing import Any

from reeljobs.jobs.errors import JobInputError
from reeljobs.jobs.handlers.media import MediaArtifactHandler, require_url
from reeljobs.jobs.models import JobRecord
from reeljobs.providers.replicate import ReplicateRequest

ROTO_MODEL_VERSION = "95fcc2a26d3899cd6c2691c900465aaeff466285a65c14638cc5f36f34befaf1"

_FORMATS = {"mp4": "video/mp4", "webm": "video/webm", "png": "image/png"}


class RotoHandler(MediaArtifactHandler):
  kind = "roto"

  def build_request(self, job: JobRecord) -> ReplicateRequest:
    file_url = require_url(job.input, "file_url", "video_url")
    self.artifact_format(job)  # reject bad formats before paying for a prediction
    return ReplicateRequest(model=ROTO_MODEL_VERSION, input={"image": file_url})

  def artifact_format(self, job: JobRecord) -> tuple[str, str]:
    output_format = str(job.input.get("output_format") or "mp4").lower()
    content_type = _FORMATS.get(output_format)
    if content_type is None:
      raise JobInputError(f"Unsupported roto output_format: {output_format}")
    return output_format, content_type

  def output_extras(self, job: JobRecord) -> dict[str, Any]:
    settings = {key: job.input[key] for key in ("description", "tightness", "smoothing") if job.input.get(key) is not None}
    return {"settings": settings} if settings else {}
