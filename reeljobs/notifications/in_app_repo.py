"""Repository helpers for in-app notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reeljobs.core.database import get_session_factory
from reeljobs.schema.notifications import InAppNotification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InAppNotificationEntry:
  """Capture a single in-app notification entry."""

  owner_id: str
  template_id: str
  title: str
  body: str
  data: dict


class InAppNotificationRepository:
  """Persist in-app notifications to Postgres."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory

  async def insert(self, entry: InAppNotificationEntry) -> None:
    """Insert a new in-app notification row."""
    session_factory = self._session_factory or get_session_factory()
    if session_factory is None:
      return
    async with session_factory() as session:
      record = InAppNotification(owner_id=entry.owner_id, template_id=entry.template_id, title=entry.title, body=entry.body, data_json=entry.data, read=False)
      session.add(record)
      await session.commit()


class MemoryInAppNotificationRepository(InAppNotificationRepository):
  """Keeps notifications in a list; used by single-process deployments and tests."""

  def __init__(self) -> None:
    super().__init__()
    self.entries: list[InAppNotificationEntry] = []

  async def insert(self, entry: InAppNotificationEntry) -> None:
    self.entries.append(entry)


class NullInAppNotificationRepository(InAppNotificationRepository):
  """No-op repository when persistence is unavailable."""

  async def insert(self, entry: InAppNotificationEntry) -> None:
    logger.debug("In-app notification persistence disabled; dropping template_id=%s", entry.template_id)
