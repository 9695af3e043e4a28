"""In-process job repository for local development, single-process workers and tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from reeljobs.jobs.models import JobEvent, JobEventType, JobRecord, can_transition, utc_now
from reeljobs.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


class InMemoryJobsRepository(JobsRepository):
  """Keeps jobs in a dict guarded by an asyncio lock.

  The lock gives the same compare-and-swap semantics as the conditional UPDATE used by
  the Postgres repository, which is what the dispatcher relies on for exclusivity.
  """

  def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
    self._jobs: dict[str, JobRecord] = {}
    self._events: dict[str, list[JobEvent]] = {}
    self._lock = asyncio.Lock()
    self._clock = clock

  async def create_job(self, record: JobRecord) -> None:
    async with self._lock:
      if record.job_id in self._jobs:
        raise ValueError(f"Job {record.job_id} already exists.")
      self._jobs[record.job_id] = replace(record, input=dict(record.input))
      self._append(record.job_id, "created", f"Job created with kind {record.kind}.")

  async def get_job(self, job_id: str) -> JobRecord | None:
    record = self._jobs.get(job_id)
    # Hand out copies so callers cannot mutate stored state behind the lock.
    return replace(record, input=dict(record.input)) if record is not None else None

  async def claim(self, job_id: str) -> int | None:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None or not can_transition(record.status, "running"):
        return None
      now = self._clock()
      attempt = record.attempt_count + 1
      self._jobs[job_id] = replace(record, status="running", started_at=now, updated_at=now, attempt_count=attempt)
      self._append(job_id, "claimed", f"Claimed for attempt {attempt}.")
      return attempt

  async def complete(self, job_id: str, output: dict[str, Any], *, attempt: int | None = None) -> bool:
    async with self._lock:
      record = self._jobs.get(job_id)
      if not _owned_by(record, attempt):
        return False
      now = self._clock()
      self._jobs[job_id] = replace(record, status="done", output=output, error=None, updated_at=now, completed_at=now)
      self._append(job_id, "done", "Job completed.")
      return True

  async def fail(self, job_id: str, error: str, *, attempt: int | None = None) -> bool:
    async with self._lock:
      record = self._jobs.get(job_id)
      if not _owned_by(record, attempt):
        return False
      now = self._clock()
      self._jobs[job_id] = replace(record, status="failed", output=None, error=error, updated_at=now, completed_at=now)
      self._append(job_id, "failed", error)
      return True

  async def cancel(self, job_id: str, reason: str) -> bool:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None or record.status not in ("pending", "running"):
        return False
      now = self._clock()
      self._jobs[job_id] = replace(record, status="failed", output=None, error=f"canceled: {reason}", updated_at=now, completed_at=now)
      self._append(job_id, "canceled", reason)
      return True

  async def list_pending(self, limit: int = 5) -> list[JobRecord]:
    pending = [record for record in self._jobs.values() if record.status == "pending"]
    pending.sort(key=lambda record: (record.created_at, record.job_id))
    return [replace(record) for record in pending[:limit]]

  async def list_stale(self, older_than: timedelta) -> list[JobRecord]:
    cutoff = self._clock() - older_than
    stale = [record for record in self._jobs.values() if record.status == "running" and record.updated_at < cutoff]
    stale.sort(key=lambda record: record.updated_at)
    return [replace(record) for record in stale]

  async def requeue_stale(self, job_id: str, older_than: timedelta) -> bool:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None or not can_transition(record.status, "pending", recovery=True):
        return False
      now = self._clock()
      if record.updated_at >= now - older_than:
        return False
      self._jobs[job_id] = replace(record, status="pending", started_at=None, updated_at=now)
      self._append(job_id, "requeued", f"Recovered after no update since {record.updated_at.isoformat()}.")
      return True

  async def list_events(self, job_id: str, limit: int = 100) -> list[JobEvent]:
    return list(self._events.get(job_id, []))[-limit:]

  def _append(self, job_id: str, event_type: JobEventType, message: str) -> None:
    self._events.setdefault(job_id, []).append(JobEvent(job_id=job_id, event_type=event_type, message=message, created_at=self._clock()))


def _owned_by(record: JobRecord | None, attempt: int | None) -> bool:
  if record is None or record.status != "running":
    return False
  return attempt is None or record.attempt_count == attempt
