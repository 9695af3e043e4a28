"""Read-only sources of job status for the reconciler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from reeljobs.storage.jobs_repo import JobsRepository


class StatusReadError(Exception):
  """The job status could not be read this time; the caller may try again."""


@dataclass(frozen=True)
class JobStatusSnapshot:
  job_id: str
  status: str
  output: dict[str, Any] | None = None
  error: str | None = None


class JobStatusSource(Protocol):
  async def get_status(self, job_id: str) -> JobStatusSnapshot | None:
    """Return the current status, None for an unknown job, or raise ``StatusReadError``."""


class HttpJobStatusSource(JobStatusSource):
  """Reads ``GET /v1/jobs/{job_id}`` from the jobs API."""

  def __init__(self, base_url: str, owner_id: str, *, timeout_seconds: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._base_url = base_url.rstrip("/")
    self._owner_id = owner_id
    self._timeout = timeout_seconds
    self._transport = transport

  async def get_status(self, job_id: str) -> JobStatusSnapshot | None:
    async with httpx.AsyncClient(base_url=self._base_url, headers={"X-Owner-Id": self._owner_id}, timeout=self._timeout, transport=self._transport) as client:
      try:
        response = await client.get(f"/v1/jobs/{job_id}")
      except httpx.RequestError as exc:
        raise StatusReadError(f"Job status request failed: {exc}") from exc
    if response.status_code == 404:
      return None
    if response.status_code >= 400:
      raise StatusReadError(f"Job status request returned {response.status_code}")
    payload = response.json()
    return JobStatusSnapshot(job_id=str(payload.get("job_id") or job_id), status=str(payload.get("status") or ""), output=payload.get("output"), error=payload.get("error"))


class RepositoryJobStatusSource(JobStatusSource):
  """Reads status straight from a jobs repository (same-process clients and tests)."""

  def __init__(self, jobs_repo: JobsRepository) -> None:
    self._jobs_repo = jobs_repo

  async def get_status(self, job_id: str) -> JobStatusSnapshot | None:
    try:
      record = await self._jobs_repo.get_job(job_id)
    except Exception as exc:  # noqa: BLE001
      raise StatusReadError(f"Job status lookup failed: {exc}") from exc
    if record is None:
      return None
    return JobStatusSnapshot(job_id=record.job_id, status=record.status, output=record.output, error=record.error)
