"""Job submission, status and cancellation for the HTTP surface."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from reeljobs.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse
from reeljobs.config import Settings
from reeljobs.jobs.models import JOB_KINDS, JobRecord, canonical_kind, utc_now
from reeljobs.jobs.worker import DispatchSummary, JobDispatcher, build_default_registry
from reeljobs.notifications.contracts import Notifier
from reeljobs.services.storage_client import ArtifactStore, build_storage_client
from reeljobs.storage.jobs_repo import JobsRepository
from reeljobs.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."


def _to_status_response(record: JobRecord) -> JobStatusResponse:
  return JobStatusResponse(
    job_id=record.job_id,
    kind=record.kind,
    status=record.status,
    scope_id=record.scope_id,
    output=record.output,
    error=record.error,
    created_at=record.created_at,
    updated_at=record.updated_at,
    completed_at=record.completed_at,
  )


async def _get_owned_job(job_id: str, owner_id: str, jobs_repo: JobsRepository) -> JobRecord:
  record = await jobs_repo.get_job(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  if record.owner_id != owner_id:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Job belongs to another owner.")
  return record


async def create_job(request: JobCreateRequest, *, owner_id: str, jobs_repo: JobsRepository) -> JobCreateResponse:
  """Persist a new pending job; workers pick it up on their next pass."""
  kind = canonical_kind(request.kind)
  if kind not in JOB_KINDS:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported job kind: {request.kind}")

  now = utc_now()
  record = JobRecord(job_id=generate_job_id(), owner_id=owner_id, scope_id=request.scope_id, kind=kind, input=dict(request.input), status="pending", created_at=now, updated_at=now)
  await jobs_repo.create_job(record)
  logger.info("Created %s job %s for owner %s", kind, record.job_id, owner_id)
  return JobCreateResponse(job_id=record.job_id, status=record.status)


async def get_job_status(job_id: str, *, owner_id: str, jobs_repo: JobsRepository) -> JobStatusResponse:
  return _to_status_response(await _get_owned_job(job_id, owner_id, jobs_repo))


async def cancel_job(job_id: str, *, owner_id: str, jobs_repo: JobsRepository, reason: str = "requested by owner") -> JobStatusResponse:
  """Fail a pending or running job; a handler in flight stops at its next poll."""
  record = await _get_owned_job(job_id, owner_id, jobs_repo)
  if record.is_terminal or not await jobs_repo.cancel(job_id, reason):
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Job already finished.")
  logger.info("Canceled job %s for owner %s", job_id, owner_id)
  return _to_status_response(await _get_owned_job(job_id, owner_id, jobs_repo))


async def process_job_now(job_id: str, *, jobs_repo: JobsRepository, dispatcher: JobDispatcher) -> DispatchSummary:
  """Run one specific pending job immediately."""
  record = await jobs_repo.get_job(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return await dispatcher.process_job(record)


def build_artifact_store(settings: Settings) -> ArtifactStore | None:
  """Return the GCS artifact store, or None when the client cannot be created here."""
  try:
    return build_storage_client(settings)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Artifact storage unavailable; media jobs will fail until it is configured: %s", exc)
    return None


def build_dispatcher(settings: Settings, *, jobs_repo: JobsRepository, notifier: Notifier, artifact_store: ArtifactStore | None = None) -> JobDispatcher:
  """Wire a dispatcher with the default handlers for the configured providers."""
  store = artifact_store if artifact_store is not None else build_artifact_store(settings)
  registry = build_default_registry(settings, jobs_repo=jobs_repo, artifact_store=store)
  return JobDispatcher(jobs_repo=jobs_repo, registry=registry, notifier=notifier, batch_size=settings.dispatch_batch_size)
