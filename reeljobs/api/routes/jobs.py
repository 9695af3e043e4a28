import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from reeljobs.api.deps import get_jobs_repo, get_owner_id
from reeljobs.api.models import JobCreateRequest, JobCreateResponse, JobStatusResponse
from reeljobs.services import jobs as job_service
from reeljobs.storage.jobs_repo import JobsRepository

router = APIRouter()
logger = logging.getLogger("reeljobs.api.routes.jobs")

OwnerId = Annotated[str, Depends(get_owner_id)]
JobsRepo = Annotated[JobsRepository, Depends(get_jobs_repo)]


@router.post("", response_model=JobCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_job(request: JobCreateRequest, owner_id: OwnerId, jobs_repo: JobsRepo) -> JobCreateResponse:
  """Create a pending background job."""
  return await job_service.create_job(request, owner_id=owner_id, jobs_repo=jobs_repo)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, owner_id: OwnerId, jobs_repo: JobsRepo) -> JobStatusResponse:
  """Fetch the status and result of a background job."""
  return await job_service.get_job_status(job_id, owner_id=owner_id, jobs_repo=jobs_repo)


@router.post("/{job_id}/cancel", response_model=JobStatusResponse)
async def cancel_job(job_id: str, owner_id: OwnerId, jobs_repo: JobsRepo) -> JobStatusResponse:
  """Cancel a pending or running job."""
  return await job_service.cancel_job(job_id, owner_id=owner_id, jobs_repo=jobs_repo)
