"""Factory helpers for selecting the configured jobs repository."""

from __future__ import annotations

import logging
from functools import lru_cache

from reeljobs.config import Settings
from reeljobs.storage.jobs_repo import JobsRepository
from reeljobs.storage.memory_jobs_repo import InMemoryJobsRepository
from reeljobs.storage.postgres_jobs_repo import PostgresJobsRepository

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _process_local_repo() -> InMemoryJobsRepository:
  logger.warning("REEL_PG_DSN is not set; jobs are kept in process memory and will not survive a restart.")
  return InMemoryJobsRepository()


def build_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the Postgres repository when a DSN is configured, else a process-local one."""
  if settings.pg_dsn:
    return PostgresJobsRepository()
  return _process_local_repo()
