from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from reeljobs.api.deps import get_jobs_repo, require_task_secret
from reeljobs.api.models import RequeueStaleResponse
from reeljobs.config import Settings, get_settings
from reeljobs.services.maintenance import requeue_stale_jobs
from reeljobs.storage.jobs_repo import JobsRepository

router = APIRouter(dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/jobs/requeue-stale", response_model=RequeueStaleResponse)
async def requeue_stale(settings: Annotated[Settings, Depends(get_settings)], jobs_repo: Annotated[JobsRepository, Depends(get_jobs_repo)], stale_after_seconds: int | None = None) -> RequeueStaleResponse:
  """Reset running jobs that stopped making progress back to pending."""
  window = stale_after_seconds if stale_after_seconds and stale_after_seconds > 0 else settings.stale_after_seconds
  requeued = await requeue_stale_jobs(jobs_repo, stale_after_seconds=window)
  return RequeueStaleResponse(requeued=requeued, count=len(requeued))
