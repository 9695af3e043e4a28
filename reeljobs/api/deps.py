"""FastAPI dependencies shared by the job routes."""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from reeljobs.config import Settings, get_settings
from reeljobs.jobs.worker import JobDispatcher
from reeljobs.notifications.contracts import Notifier
from reeljobs.notifications.factory import build_notification_service
from reeljobs.services.jobs import build_dispatcher
from reeljobs.storage.factory import build_jobs_repo
from reeljobs.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


def get_jobs_repo(settings: Annotated[Settings, Depends(get_settings)]) -> JobsRepository:
  return build_jobs_repo(settings)


def get_notifier(settings: Annotated[Settings, Depends(get_settings)]) -> Notifier:
  return build_notification_service(settings)


def get_dispatcher(settings: Annotated[Settings, Depends(get_settings)], jobs_repo: Annotated[JobsRepository, Depends(get_jobs_repo)], notifier: Annotated[Notifier, Depends(get_notifier)]) -> JobDispatcher:
  return build_dispatcher(settings, jobs_repo=jobs_repo, notifier=notifier)


def get_owner_id(x_owner_id: str | None = Header(default=None)) -> str:
  """Return the caller's owner id; authentication sits in front of this service."""
  owner_id = (x_owner_id or "").strip()
  if not owner_id:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Owner-Id header.")
  return owner_id


def require_task_secret(settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None)) -> None:
  """Guard internal and admin endpoints with the shared task secret."""
  # Secure-by-default: without a configured secret nothing can trigger workers over HTTP.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  if not secrets.compare_digest(authorization or "", f"Bearer {settings.task_secret}"):
    logger.warning("Unauthorized access attempt to an internal endpoint")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")
