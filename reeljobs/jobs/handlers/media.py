"""Shared finalize step for Replicate-backed media transformations."""

from __future__ import annotations

from typing import Any

from reeljobs.jobs.errors import JobInputError, ProviderError
from reeljobs.jobs.handlers.base import ProviderJobHandler
from reeljobs.jobs.models import JobRecord
from reeljobs.providers.contracts import ProviderHandle
from reeljobs.providers.replicate import first_output_url


def require_url(payload: dict[str, Any], *keys: str) -> str:
  """Return the first non-empty URL among ``keys`` or raise a ``JobInputError``."""
  for key in keys:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
      return value.strip()
  raise JobInputError(f"No input file URL provided (expected one of: {', '.join(keys)})")


class MediaArtifactHandler(ProviderJobHandler):
  """Re-hosts the file a prediction produced and reports where it lives."""

  extension = "bin"
  content_type = "application/octet-stream"

  def artifact_format(self, job: JobRecord) -> tuple[str, str]:
    """Return (extension, content type) of the stored artifact."""
    return self.extension, self.content_type

  def output_extras(self, job: JobRecord) -> dict[str, Any]:
    return {}

  async def finalize(self, job: JobRecord, handle: ProviderHandle, result: Any) -> dict[str, Any]:
    source_url = first_output_url(result)
    if not source_url:
      raise ProviderError("No output URL found in provider response")
    extension, content_type = self.artifact_format(job)
    # One object per job so a re-run after recovery overwrites instead of duplicating.
    object_name = f"{self.kind}/{job.job_id}.{extension}"
    output_url = await self.store_artifact(source_url, object_name, content_type)
    return {"output_url": output_url, "storage_path": object_name, "prediction_id": handle.handle_id, "type": self.kind, **self.output_extras(job)}
