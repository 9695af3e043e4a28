from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from reeljobs.jobs.models import JobStatus


class JobCreateRequest(BaseModel):
  """Request payload for creating a background job."""

  kind: StrictStr = Field(min_length=1, description="Job kind, e.g. script-breakdown or roto.")
  scope_id: StrictStr | None = Field(default=None, description="Project the job belongs to.")
  input: dict[str, Any] = Field(default_factory=dict)
  model_config = ConfigDict(extra="forbid")


class JobCreateResponse(BaseModel):
  job_id: StrictStr
  status: JobStatus


class JobStatusResponse(BaseModel):
  """Status payload for a background job."""

  job_id: StrictStr
  kind: StrictStr
  status: JobStatus
  scope_id: StrictStr | None = None
  output: dict[str, Any] | None = None
  error: StrictStr | None = None
  created_at: datetime
  updated_at: datetime
  completed_at: datetime | None = None


class TaskPayload(BaseModel):
  job_id: StrictStr


class DispatchSummaryResponse(BaseModel):
  processed: int
  skipped: int
  done: int
  failed: int
  job_ids: list[str]


class RequeueStaleResponse(BaseModel):
  requeued: list[str]
  count: int
