from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from reeljobs.api.deps import get_dispatcher, get_jobs_repo, require_task_secret
from reeljobs.api.models import DispatchSummaryResponse, TaskPayload
from reeljobs.jobs.worker import JobDispatcher
from reeljobs.services.jobs import process_job_now
from reeljobs.storage.jobs_repo import JobsRepository

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/process-jobs", response_model=DispatchSummaryResponse, status_code=status.HTTP_200_OK)
async def process_jobs_task(dispatcher: Annotated[JobDispatcher, Depends(get_dispatcher)]) -> DispatchSummaryResponse:
  """Run one dispatcher pass over the oldest pending jobs (scheduler or manual trigger)."""
  summary = await dispatcher.process_queue()
  logger.info("Triggered dispatcher pass processed %d job(s)", summary.processed)
  return DispatchSummaryResponse(**summary.as_dict())


@router.post("/process-job", response_model=DispatchSummaryResponse, status_code=status.HTTP_200_OK)
async def process_job_task(payload: TaskPayload, dispatcher: Annotated[JobDispatcher, Depends(get_dispatcher)], jobs_repo: Annotated[JobsRepository, Depends(get_jobs_repo)]) -> DispatchSummaryResponse:
  """Run one specific job now."""
  logger.info("Received task for job %s", payload.job_id)
  summary = await process_job_now(payload.job_id, jobs_repo=jobs_repo, dispatcher=dispatcher)
  return DispatchSummaryResponse(**summary.as_dict())
