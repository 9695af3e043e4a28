"""SQLAlchemy repositories against a throwaway SQLite database."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from reeljobs.core.database import Base
from reeljobs.jobs.models import JobRecord
from reeljobs.notifications.in_app_repo import InAppNotificationEntry, InAppNotificationRepository
from reeljobs.schema.jobs import Job
from reeljobs.schema.notifications import InAppNotification
from reeljobs.storage.postgres_jobs_repo import PostgresJobsRepository

pytest.importorskip("aiosqlite")


@pytest.fixture
async def session_factory(tmp_path):
  engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
  yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
  await engine.dispose()


@pytest.fixture
def sql_repo(session_factory) -> PostgresJobsRepository:
  return PostgresJobsRepository(session_factory)


def _record(job_id: str, *, minutes: int = 0, kind: str = "roto") -> JobRecord:
  created = datetime(2026, 1, 1, 9, 0, tzinfo=UTC) + timedelta(minutes=minutes)
  return JobRecord(job_id=job_id, owner_id="owner-1", kind=kind, input={"file_url": "https://in/x.mp4"}, status="pending", created_at=created, updated_at=created)


@pytest.mark.anyio
async def test_lifecycle_and_events(sql_repo):
  await sql_repo.create_job(_record("job-1"))

  assert await sql_repo.claim("job-1")
  assert not await sql_repo.claim("job-1")
  assert await sql_repo.complete("job-1", {"output_url": "memory://outputs/roto/job-1.mp4"})
  assert not await sql_repo.fail("job-1", "late")

  record = await sql_repo.get_job("job-1")
  assert record.status == "done"
  assert record.output == {"output_url": "memory://outputs/roto/job-1.mp4"}
  assert record.attempt_count == 1
  assert record.started_at is not None
  assert record.completed_at is not None
  assert [event.event_type for event in await sql_repo.list_events("job-1")] == ["created", "claimed", "done"]


@pytest.mark.anyio
async def test_concurrent_claims_have_one_winner(sql_repo):
  await sql_repo.create_job(_record("job-1"))

  results = await asyncio.gather(*(sql_repo.claim("job-1") for _ in range(5)))

  assert [attempt for attempt in results if attempt is not None] == [1]


@pytest.mark.anyio
async def test_pending_jobs_come_back_oldest_first(sql_repo):
  await sql_repo.create_job(_record("late", minutes=5))
  await sql_repo.create_job(_record("early", minutes=1))
  await sql_repo.create_job(_record("middle", minutes=3))

  assert [job.job_id for job in await sql_repo.list_pending(limit=2)] == ["early", "middle"]


@pytest.mark.anyio
async def test_cancel_records_reason(sql_repo):
  await sql_repo.create_job(_record("job-1"))

  assert await sql_repo.cancel("job-1", "wrong file")
  assert not await sql_repo.cancel("job-1", "again")

  record = await sql_repo.get_job("job-1")
  assert record.status == "failed"
  assert record.error == "canceled: wrong file"


@pytest.mark.anyio
async def test_stale_running_jobs_are_requeued(sql_repo, session_factory):
  await sql_repo.create_job(_record("stuck"))
  await sql_repo.create_job(_record("busy", minutes=1))
  await sql_repo.claim("stuck")
  await sql_repo.claim("busy")
  async with session_factory() as session:
    await session.execute(update(Job).where(Job.job_id == "stuck").values(updated_at="2026-01-01T09:00:00.000000Z"))
    await session.commit()

  stale = await sql_repo.list_stale(timedelta(minutes=10))
  assert [job.job_id for job in stale] == ["stuck"]
  assert await sql_repo.requeue_stale("stuck", timedelta(minutes=10))
  assert not await sql_repo.requeue_stale("busy", timedelta(minutes=10))

  record = await sql_repo.get_job("stuck")
  assert record.status == "pending"
  assert record.started_at is None
  assert (await sql_repo.list_events("stuck"))[-1].event_type == "requeued"


@pytest.mark.anyio
async def test_notification_rows_are_persisted(session_factory):
  repo = InAppNotificationRepository(session_factory)

  await repo.insert(InAppNotificationEntry(owner_id="owner-1", template_id="roto_done_v1", title="Roto Processing Complete", body="ready", data={"job_id": "job-1"}))

  async with session_factory() as session:
    rows = (await session.execute(select(InAppNotification))).scalars().all()
  assert [(row.owner_id, row.title, row.read) for row in rows] == [("owner-1", "Roto Processing Complete", False)]
  assert rows[0].data_json == {"job_id": "job-1"}


@pytest.mark.anyio
async def test_terminal_writes_are_fenced_on_the_claiming_attempt(sql_repo, session_factory):
  await sql_repo.create_job(_record("job-1"))
  assert await sql_repo.claim("job-1") == 1
  async with session_factory() as session:
    await session.execute(update(Job).where(Job.job_id == "job-1").values(updated_at="2026-01-01T09:00:00.000000Z"))
    await session.commit()
  assert await sql_repo.requeue_stale("job-1", timedelta(minutes=10))
  assert await sql_repo.claim("job-1") == 2

  assert not await sql_repo.complete("job-1", {"output_url": "first"}, attempt=1)
  assert not await sql_repo.fail("job-1", "first attempt gave up", attempt=1)
  assert await sql_repo.fail("job-1", "provider error", attempt=2)

  record = await sql_repo.get_job("job-1")
  assert record.status == "failed"
  assert record.error == "provider error"
