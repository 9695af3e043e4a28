"""Job handler contract and the submit/poll/finalize machinery shared by all kinds."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol

import httpx

from reeljobs.jobs.errors import ArtifactStorageError, JobCanceledError, JobExecutionError, ProviderError, ProviderTimeoutError, ProviderTransientError
from reeljobs.jobs.models import JobRecord
from reeljobs.notifications.contracts import Notifier
from reeljobs.providers.contracts import InferenceProvider, ProviderHandle, ProviderPoll
from reeljobs.services.storage_client import ArtifactStore
from reeljobs.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class JobHandler(Protocol):
  """Executes one kind of job and returns its structured output."""

  kind: str

  async def run(self, job: JobRecord) -> dict[str, Any]:
    """Produce the output of a running job or raise a ``JobExecutionError``."""


@dataclass(frozen=True)
class HandlerOutcome:
  """What ``execute_job`` did with one job."""

  job_id: str
  status: Literal["done", "failed", "skipped"]
  error: str | None = None


class ProviderJobHandler:
  """Base for handlers that drive remote work through an inference provider.

  Subclasses supply ``build_request`` (input validation + provider request) and ``finalize``
  (turn the provider result into the job output, storing artifacts as needed), or override
  ``run`` when one job needs several provider calls. Between polls the handler re-reads
  the job so a cancellation, or a reclaim by a later attempt, stops it at the next poll.
  """

  kind: str = ""

  def __init__(
    self,
    provider: InferenceProvider,
    *,
    jobs_repo: JobsRepository,
    artifact_store: ArtifactStore | None = None,
    poll_interval_seconds: float = 5.0,
    max_poll_attempts: int = 60,
    download_timeout_seconds: float = 60.0,
    sleep: SleepFn = asyncio.sleep,
    http_transport: httpx.AsyncBaseTransport | None = None,
  ) -> None:
    self._provider = provider
    self._jobs_repo = jobs_repo
    self._artifact_store = artifact_store
    self._poll_interval = poll_interval_seconds
    self._max_poll_attempts = max_poll_attempts
    self._download_timeout = download_timeout_seconds
    self._sleep = sleep
    self._http_transport = http_transport

  def build_request(self, job: JobRecord) -> Any:
    raise NotImplementedError

  async def finalize(self, job: JobRecord, handle: ProviderHandle, result: Any) -> dict[str, Any]:
    raise NotImplementedError

  async def run(self, job: JobRecord) -> dict[str, Any]:
    request = self.build_request(job)
    handle = await self._provider.submit(request)
    poll = await self.wait_for_result(job, handle)
    return await self.finalize(job, handle, poll.result)

  async def wait_for_result(self, job: JobRecord, handle: ProviderHandle) -> ProviderPoll:
    """Poll until the provider reports a terminal status; raise unless it succeeded."""
    poll = handle.initial
    attempts = 0
    while not poll.is_terminal:
      if attempts >= self._max_poll_attempts:
        budget = self._poll_interval * self._max_poll_attempts
        raise ProviderTimeoutError(f"timeout: provider did not finish after {self._max_poll_attempts} polls ({budget:g}s)")
      await self._sleep(self._poll_interval)
      attempts += 1
      await self.ensure_still_running(job)
      try:
        poll = await self._provider.poll(handle)
      except ProviderTransientError as exc:
        logger.warning("Transient poll error for job %s (attempt %d/%d): %s", job.job_id, attempts, self._max_poll_attempts, exc)
        continue
      logger.debug("Job %s provider status %s (attempt %d/%d)", job.job_id, poll.status, attempts, self._max_poll_attempts)

    if poll.status != "succeeded":
      raise ProviderError(poll.error or f"provider reported {poll.status}")
    return poll

  async def ensure_still_running(self, job: JobRecord) -> None:
    """Raise ``JobCanceledError`` once this attempt no longer owns the running job."""
    current = await self._jobs_repo.get_job(job.job_id)
    if current is None or current.status != "running":
      status = current.status if current is not None else "missing"
      raise JobCanceledError(f"job {job.job_id} is no longer running (status={status})")
    if current.attempt_count != job.attempt_count:
      raise JobCanceledError(f"job {job.job_id} was reclaimed by attempt {current.attempt_count} (this is attempt {job.attempt_count})")

  async def download(self, url: str) -> httpx.Response:
    async with httpx.AsyncClient(timeout=self._download_timeout, transport=self._http_transport, follow_redirects=True) as client:
      return await client.get(url)

  async def store_artifact(self, url: str, object_name: str, content_type: str) -> str:
    """Copy a provider-hosted file into artifact storage and return its durable URL."""
    if self._artifact_store is None:
      raise ArtifactStorageError("Failed to upload output: artifact storage is not configured")
    try:
      response = await self.download(url)
    except httpx.RequestError as exc:
      raise ArtifactStorageError(f"Failed to download output: {exc}") from exc
    if response.status_code >= 400:
      raise ArtifactStorageError(f"Failed to download output: HTTP {response.status_code}")
    try:
      return await self._artifact_store.upload_bytes(response.content, object_name, content_type)
    except Exception as exc:  # noqa: BLE001
      raise ArtifactStorageError(f"Failed to upload output: {exc}") from exc


async def execute_job(job: JobRecord, handler: JobHandler, *, jobs_repo: JobsRepository, notifier: Notifier, attempt: int | None = None) -> HandlerOutcome:
  """Run a handler for a claimed job and record exactly one terminal write.

  ``attempt`` is the number returned by the claim. Jobs that are not running, or that a
  later attempt has reclaimed, are skipped without calling the handler. Terminal writes are
  fenced on the attempt, and the owner is notified only when this call's write landed.
  """
  current = await jobs_repo.get_job(job.job_id)
  if current is None or current.status != "running":
    logger.info("Skipping job %s: not running (status=%s)", job.job_id, current.status if current else "missing")
    return HandlerOutcome(job_id=job.job_id, status="skipped")
  if attempt is not None and current.attempt_count != attempt:
    logger.info("Skipping job %s: attempt %d no longer owns it (current attempt %d)", job.job_id, attempt, current.attempt_count)
    return HandlerOutcome(job_id=job.job_id, status="skipped")
  owned = current.attempt_count

  try:
    output = await handler.run(current)
  except JobCanceledError as exc:
    logger.info("Job %s stopped: %s", job.job_id, exc)
    return HandlerOutcome(job_id=job.job_id, status="skipped", error=str(exc))
  except JobExecutionError as exc:
    error = str(exc) or exc.__class__.__name__
    logger.warning("Job %s (%s) failed: %s", job.job_id, current.kind, error)
    written = await jobs_repo.fail(job.job_id, error, attempt=owned)
    outcome = HandlerOutcome(job_id=job.job_id, status="failed", error=error)
  except Exception as exc:  # noqa: BLE001
    error = f"internal error: {exc}"
    logger.error("Job %s (%s) raised unexpectedly", job.job_id, current.kind, exc_info=True)
    written = await jobs_repo.fail(job.job_id, error, attempt=owned)
    outcome = HandlerOutcome(job_id=job.job_id, status="failed", error=error)
  else:
    written = await jobs_repo.complete(job.job_id, output, attempt=owned)
    outcome = HandlerOutcome(job_id=job.job_id, status="done")

  if not written:
    logger.info("Terminal write for job %s was a no-op; the job left the running state or was reclaimed", job.job_id)
    return HandlerOutcome(job_id=job.job_id, status="skipped", error=outcome.error)

  await notify_finished(job.job_id, jobs_repo=jobs_repo, notifier=notifier)
  return outcome


async def notify_finished(job_id: str, *, jobs_repo: JobsRepository, notifier: Notifier) -> None:
  """Send the terminal notification for a job; failures are logged only."""
  try:
    finished = await jobs_repo.get_job(job_id)
    if finished is not None:
      await notifier.notify_job_finished(finished)
  except Exception:  # noqa: BLE001
    logger.error("Notification for job %s failed", job_id, exc_info=True)
