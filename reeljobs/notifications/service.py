"""Notification orchestration for job lifecycle events."""

from __future__ import annotations

import logging
from typing import Any

from reeljobs.jobs.models import JobRecord
from reeljobs.notifications.contracts import Notifier
from reeljobs.notifications.in_app_repo import InAppNotificationEntry, InAppNotificationRepository
from reeljobs.notifications.in_app_templates import done_template_for_kind, render_in_app_template

logger = logging.getLogger(__name__)


def _kind_title(kind: str) -> str:
  return " ".join(part.capitalize() for part in kind.replace("_", "-").split("-") if part) or "Job"


class NotificationService(Notifier):
  """Writes in-app notifications for job owners.

  Delivery is best effort: a failed write is logged and dropped, never raised, because the
  job's own terminal state has already been committed and must not be affected.
  """

  def __init__(self, *, in_app_repo: InAppNotificationRepository) -> None:
    self._in_app_repo = in_app_repo

  async def notify(self, owner_id: str, title: str, message: str, *, data: dict[str, Any] | None = None, template_id: str = "custom") -> None:
    """Persist one notification row for an owner."""
    entry = InAppNotificationEntry(owner_id=owner_id, template_id=template_id, title=title, body=message, data=dict(data or {}))
    try:
      await self._in_app_repo.insert(entry)
    except Exception as exc:  # noqa: BLE001
      logger.error("In-app notification insert failed owner_id=%s template_id=%s error=%s", owner_id, template_id, exc, exc_info=True)

  async def notify_job_finished(self, job: JobRecord) -> None:
    """Notify the owner that a job finished, choosing the template from its status and kind."""
    data: dict[str, Any] = {"job_id": job.job_id, "kind": job.kind}
    if job.status == "done":
      template_id = done_template_for_kind(job.kind)
      if job.kind == "script-breakdown":
        data["scene_count"] = len((job.output or {}).get("scenes") or [])
    elif job.status == "failed":
      template_id = "job_failed_v1"
      data["kind_title"] = _kind_title(job.kind)
      data["error"] = job.error or "Unknown error"
    else:
      logger.warning("Skipping notification for job %s in non-terminal status %s", job.job_id, job.status)
      return

    try:
      title, body = render_in_app_template(template_id=template_id, data=data)
    except ValueError as exc:
      logger.error("In-app template render failed template_id=%s job_id=%s error=%s", template_id, job.job_id, exc)
      return
    await self.notify(job.owner_id, title, body, data=data, template_id=template_id)
