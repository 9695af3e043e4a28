"""Storage interfaces for background jobs."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Protocol

from reeljobs.jobs.models import JobEvent, JobRecord


class JobsRepository(Protocol):
  """Repository contract for job persistence.

  Every status-changing method is a compare-and-swap against the current status and
  returns False (or None for ``claim``) when the job was not in the expected state, so
  callers never need a read-then-write pair. A running job belongs to the attempt that
  claimed it; after stuck-job recovery a later claim takes ownership.
  """

  async def create_job(self, record: JobRecord) -> None:
    """Persist an initial pending job record."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def claim(self, job_id: str) -> int | None:
    """Atomically move a job from pending to running.

    Returns the attempt number this claim holds, or None when the claim was lost.
    """

  async def complete(self, job_id: str, output: dict[str, Any], *, attempt: int | None = None) -> bool:
    """Move a running job to done with its output.

    When ``attempt`` is given the write lands only while that attempt still owns the job.
    """

  async def fail(self, job_id: str, error: str, *, attempt: int | None = None) -> bool:
    """Move a running job to failed with a readable error; ``attempt`` fences like ``complete``."""

  async def cancel(self, job_id: str, reason: str) -> bool:
    """Fail a pending or running job on behalf of its owner."""

  async def list_pending(self, limit: int = 5) -> list[JobRecord]:
    """Return the oldest pending jobs, oldest first."""

  async def list_stale(self, older_than: timedelta) -> list[JobRecord]:
    """Return running jobs not updated within ``older_than``."""

  async def requeue_stale(self, job_id: str, older_than: timedelta) -> bool:
    """Reset one stuck running job back to pending (recovery only)."""

  async def list_events(self, job_id: str, limit: int = 100) -> list[JobEvent]:
    """List the transition timeline of a job, oldest first."""
