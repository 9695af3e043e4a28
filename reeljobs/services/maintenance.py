"""Maintenance services for scheduled background cleanup tasks."""

from __future__ import annotations

import logging
from datetime import timedelta

from reeljobs.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


async def requeue_stale_jobs(jobs_repo: JobsRepository, *, stale_after_seconds: int = 600) -> list[str]:
  """Reset running jobs that stopped making progress back to pending.

  How/Why:
    - A worker that dies mid-job leaves the record in ``running`` forever.
    - Each reset is a conditional update, so a job that finishes while this runs is left alone.
    - This is the only path that moves a job backwards; it is intended for an admin trigger or a scheduler.
  """
  older_than = timedelta(seconds=stale_after_seconds)
  stale = await jobs_repo.list_stale(older_than)
  requeued: list[str] = []
  for job in stale:
    if await jobs_repo.requeue_stale(job.job_id, older_than):
      logger.warning("recovery: requeued stale job %s (kind=%s, last update %s, attempts=%d)", job.job_id, job.kind, job.updated_at.isoformat(), job.attempt_count)
      requeued.append(job.job_id)
  if stale:
    logger.info("Stale job recovery requeued %d of %d candidate(s)", len(requeued), len(stale))
  return requeued
