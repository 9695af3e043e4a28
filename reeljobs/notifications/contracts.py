"""Contracts for job notification delivery."""

from __future__ import annotations

from typing import Any, Protocol

from reeljobs.jobs.models import JobRecord


class Notifier(Protocol):
  """Fire-and-forget delivery of owner-addressed job notifications."""

  async def notify(self, owner_id: str, title: str, message: str, *, data: dict[str, Any] | None = None) -> None:
    """Record a free-form notification for an owner."""

  async def notify_job_finished(self, job: JobRecord) -> None:
    """Record that a job reached a terminal state."""
