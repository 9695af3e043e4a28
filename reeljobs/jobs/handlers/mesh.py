"""Image-to-3D mesh generation handler."""

from __future__ import annotations

from typing import Any

from reeljobs.jobs.errors import JobInputError
from reeljobs.jobs.handlers.media import MediaArtifactHandler, require_url
from reeljobs.jobs.models import JobRecord
from reeljobs.providers.replicate import ReplicateRequest

MESH_MODEL_VERSION = "4876f2a8da1c544772dffa32e8889da4a1bab3a1f5c1937bfcfccb99ae347251"

_MESH_CONTENT_TYPES = {"glb": "model/gltf-binary", "obj": "model/obj"}


def _target_faces(payload: dict[str, Any]) -> int:
  raw = payload.get("target_faces")
  if raw is None:
    return 10000
  try:
    value = int(raw)
  except (TypeError, ValueError) as exc:
    raise JobInputError("target_faces must be an integer") from exc
  if value <= 0:
    raise JobInputError("target_faces must be positive")
  return value


class MeshHandler(MediaArtifactHandler):
  kind = "mesh-generate"

  def build_request(self, job: JobRecord) -> ReplicateRequest:
    image_url = require_url(job.input, "image_url")
    _target_faces(job.input)
    self.artifact_format(job)  # reject bad formats before paying for a prediction
    return ReplicateRequest(model=MESH_MODEL_VERSION, input={"image": image_url, "seed": 42, "slat_sampler_params_scale": 0.005, "slat_sampler_params_steps": 12})

  def artifact_format(self, job: JobRecord) -> tuple[str, str]:
    file_type = str(job.input.get("file_type") or "glb").lower()
    content_type = _MESH_CONTENT_TYPES.get(file_type)
    if content_type is None:
      raise JobInputError(f"Unsupported mesh file_type: {file_type} (expected glb or obj)")
    return file_type, content_type

  def output_extras(self, job: JobRecord) -> dict[str, Any]:
    return {"format": self.artifact_format(job)[0], "target_faces": _target_faces(job.input)}
