"""Shared fixtures for unit and integration tests."""

from __future__ import annotations

import os
from dataclasses import replace

import pytest

from reeljobs.config import Settings, get_settings
from reeljobs.notifications.in_app_repo import MemoryInAppNotificationRepository
from reeljobs.notifications.service import NotificationService
from reeljobs.services.storage_client import MemoryArtifactStore
from reeljobs.storage.memory_jobs_repo import InMemoryJobsRepository
from tests.fakes import FakeClock


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def settings(monkeypatch, tmp_path) -> Settings:
  for key in list(os.environ):
    if key.startswith("REEL_"):
      monkeypatch.delenv(key, raising=False)
  get_settings.cache_clear()
  loaded = get_settings()
  get_settings.cache_clear()
  return replace(loaded, task_secret="test-task-secret", log_dir=str(tmp_path / "logs"), reconciler_state_dir=str(tmp_path / "watches"))


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def jobs_repo(clock) -> InMemoryJobsRepository:
  return InMemoryJobsRepository(clock=clock)


@pytest.fixture
def in_app_repo() -> MemoryInAppNotificationRepository:
  return MemoryInAppNotificationRepository()


@pytest.fixture
def notifier(in_app_repo) -> NotificationService:
  return NotificationService(in_app_repo=in_app_repo)


@pytest.fixture
def artifact_store() -> MemoryArtifactStore:
  return MemoryArtifactStore()
