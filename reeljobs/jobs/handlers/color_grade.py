"""Color grading / image enhancement handler."""

from __future__ import annotations

from typing import Any

from reeljobs.jobs.handlers.media import MediaArtifactHandler, require_url
from reeljobs.jobs.models import JobRecord
from reeljobs.providers.replicate import ReplicateRequest

COLOR_GRADE_MODEL = "tencentarc/gfpgan:9283608cc6b7be6b65a8e44983db012355fde4132009bf99d976b2f0896856a3"


def _preset(payload: dict[str, Any]) -> Any:
  return payload.get("settings") or payload.get("color_preset") or payload.get("preset") or "cinematic"


class ColorGradeHandler(MediaArtifactHandler):
  kind = "color-grade"
  extension = "png"
  content_type = "image/png"

  def build_request(self, job: JobRecord) -> ReplicateRequest:
    image_url = require_url(job.input, "file_url", "image_url")
    return ReplicateRequest(model=COLOR_GRADE_MODEL, input={"img": image_url, "version": "v1.4", "scale": 2})

  def output_extras(self, job: JobRecord) -> dict[str, Any]:
    return {"settings": _preset(job.input)}
