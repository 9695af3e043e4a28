"""Queue dispatcher: claims pending jobs and runs their handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from reeljobs.config import Settings
from reeljobs.jobs.dispatch import JobHandlerRegistry
from reeljobs.jobs.errors import UnknownJobKindError
from reeljobs.jobs.handlers.audio_clean import AudioCleanHandler
from reeljobs.jobs.handlers.base import JobHandler, SleepFn, execute_job, notify_finished
from reeljobs.jobs.handlers.color_grade import ColorGradeHandler
from reeljobs.jobs.handlers.mesh import MeshHandler
from reeljobs.jobs.handlers.roto import RotoHandler
from reeljobs.jobs.handlers.script_breakdown import ScriptBreakdownHandler
from reeljobs.jobs.models import JobRecord
from reeljobs.notifications.contracts import Notifier
from reeljobs.providers.chat_gateway import ChatGatewayProvider
from reeljobs.providers.contracts import InferenceProvider
from reeljobs.providers.replicate import ReplicateProvider
from reeljobs.services.storage_client import ArtifactStore
from reeljobs.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


@dataclass
class DispatchSummary:
  """Counts for one dispatcher pass."""

  processed: int = 0
  skipped: int = 0
  done: int = 0
  failed: int = 0
  job_ids: list[str] = field(default_factory=list)

  def merge(self, other: DispatchSummary) -> None:
    self.processed += other.processed
    self.skipped += other.skipped
    self.done += other.done
    self.failed += other.failed
    self.job_ids.extend(other.job_ids)

  def as_dict(self) -> dict[str, object]:
    return {"processed": self.processed, "skipped": self.skipped, "done": self.done, "failed": self.failed, "job_ids": list(self.job_ids)}


class JobDispatcher:
  """Coordinates execution of pending jobs, oldest first, one at a time."""

  def __init__(self, *, jobs_repo: JobsRepository, registry: JobHandlerRegistry, notifier: Notifier, batch_size: int = 5) -> None:
    self._jobs_repo = jobs_repo
    self._registry = registry
    self._notifier = notifier
    self._batch_size = batch_size

  async def process_queue(self, limit: int | None = None) -> DispatchSummary:
    """Process a small batch of pending jobs."""
    pending = await self._jobs_repo.list_pending(limit=limit or self._batch_size)
    summary = DispatchSummary()
    logger.info("Found %d pending job(s)", len(pending))
    for job in pending:
      try:
        summary.merge(await self.process_job(job))
      except Exception:  # noqa: BLE001
        # A store fault leaves the job pending or running; the next pass or stale recovery picks it up.
        logger.error("Dispatch of job %s aborted by a store error; continuing with the batch", job.job_id, exc_info=True)
        summary.skipped += 1
    return summary

  async def process_job(self, job: JobRecord) -> DispatchSummary:
    """Claim and execute a single job; a lost claim is skipped."""
    summary = DispatchSummary()
    attempt = await self._jobs_repo.claim(job.job_id)
    if attempt is None:
      logger.debug("Claim lost for job %s; another worker has it", job.job_id)
      summary.skipped += 1
      return summary

    summary.processed += 1
    summary.job_ids.append(job.job_id)
    try:
      handler = self._registry.resolve(job.kind)
    except UnknownJobKindError as exc:
      logger.warning("Job %s has unknown kind %r", job.job_id, exc.kind)
      if await self._jobs_repo.fail(job.job_id, str(exc), attempt=attempt):
        await notify_finished(job.job_id, jobs_repo=self._jobs_repo, notifier=self._notifier)
      summary.failed += 1
      return summary

    try:
      outcome = await execute_job(job, handler, jobs_repo=self._jobs_repo, notifier=self._notifier, attempt=attempt)
    except Exception as exc:  # noqa: BLE001
      logger.error("Job dispatch failed for job %s", job.job_id, exc_info=True)
      try:
        if await self._jobs_repo.fail(job.job_id, f"internal error: {exc}", attempt=attempt):
          await notify_finished(job.job_id, jobs_repo=self._jobs_repo, notifier=self._notifier)
      except Exception:  # noqa: BLE001
        logger.error("Could not record failure for job %s; it will be recovered as stale", job.job_id, exc_info=True)
      summary.failed += 1
      return summary

    if outcome.status == "done":
      summary.done += 1
    elif outcome.status == "failed":
      summary.failed += 1
    return summary


def build_default_registry(
  settings: Settings,
  *,
  jobs_repo: JobsRepository,
  artifact_store: ArtifactStore | None,
  replicate: InferenceProvider | None = None,
  chat: InferenceProvider | None = None,
  sleep: SleepFn | None = None,
) -> JobHandlerRegistry:
  """Wire the per-kind handlers to the configured providers."""
  replicate = replicate or ReplicateProvider(api_key=settings.replicate_api_key, base_url=settings.replicate_base_url, timeout_seconds=settings.provider_timeout_seconds)
  chat = chat or ChatGatewayProvider(api_key=settings.llm_api_key, base_url=settings.llm_base_url, model=settings.llm_model, timeout_seconds=settings.provider_timeout_seconds)
  common: dict = {
    "jobs_repo": jobs_repo,
    "artifact_store": artifact_store,
    "poll_interval_seconds": settings.provider_poll_interval_seconds,
    "max_poll_attempts": settings.provider_max_poll_attempts,
    "download_timeout_seconds": settings.provider_timeout_seconds,
  }
  if sleep is not None:
    common["sleep"] = sleep

  handlers: dict[str, JobHandler] = {
    "script-breakdown": ScriptBreakdownHandler(chat, chunk_chars=settings.script_chunk_chars, **common),
    "roto": RotoHandler(replicate, **common),
    "color-grade": ColorGradeHandler(replicate, **common),
    "mesh-generate": MeshHandler(replicate, **common),
    "audio-clean": AudioCleanHandler(replicate, model=settings.audio_clean_model, **common),
  }
  return JobHandlerRegistry(handlers)
