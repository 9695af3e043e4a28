"""Postgres-backed repository for background jobs using SQLAlchemy."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reeljobs.core.database import get_session_factory
from reeljobs.jobs.models import JobEvent, JobEventType, JobRecord, utc_now
from reeljobs.schema.jobs import Job, JobEventRow
from reeljobs.storage.jobs_repo import JobsRepository

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _to_db_timestamp(value: datetime) -> str:
  return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


def _from_db_timestamp(value: str | None) -> datetime | None:
  if value is None:
    return None
  return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def _owned_by(job_id: str, attempt: int | None) -> list[Any]:
  clauses = [Job.job_id == job_id, Job.status == "running"]
  if attempt is not None:
    clauses.append(Job.attempt_count == attempt)
  return clauses


class PostgresJobsRepository(JobsRepository):
  """Persist jobs and their event timeline to Postgres using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> None:
    async with self._session_factory() as session:
      session.add(
        Job(
          job_id=record.job_id,
          owner_id=record.owner_id,
          scope_id=record.scope_id,
          kind=record.kind,
          status=record.status,
          input_json=record.input,
          output_json=record.output,
          error=record.error,
          attempt_count=record.attempt_count,
          created_at=_to_db_timestamp(record.created_at),
          updated_at=_to_db_timestamp(record.updated_at),
        )
      )
      # The parent row must exist before the event row references it.
      await session.flush()
      self._add_event(session, job_id=record.job_id, event_type="created", message=f"Job created with kind {record.kind}.")
      await session.commit()

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Job, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def claim(self, job_id: str) -> int | None:
    now = _to_db_timestamp(utc_now())
    stmt = update(Job).where(Job.job_id == job_id, Job.status == "pending").values(status="running", started_at=now, updated_at=now, attempt_count=Job.attempt_count + 1).returning(Job.attempt_count)
    async with self._session_factory() as session:
      attempt = (await session.execute(stmt.execution_options(synchronize_session=False))).scalar_one_or_none()
      if attempt is None:
        await session.rollback()
        return None
      self._add_event(session, job_id=job_id, event_type="claimed", message=f"Claimed for attempt {attempt}.")
      await session.commit()
      return int(attempt)

  async def complete(self, job_id: str, output: dict[str, Any], *, attempt: int | None = None) -> bool:
    now = _to_db_timestamp(utc_now())
    stmt = update(Job).where(*_owned_by(job_id, attempt)).values(status="done", output_json=output, error=None, updated_at=now, completed_at=now)
    return await self._conditional_update(stmt, job_id=job_id, event_type="done", message="Job completed.")

  async def fail(self, job_id: str, error: str, *, attempt: int | None = None) -> bool:
    now = _to_db_timestamp(utc_now())
    stmt = update(Job).where(*_owned_by(job_id, attempt)).values(status="failed", output_json=None, error=error, updated_at=now, completed_at=now)
    return await self._conditional_update(stmt, job_id=job_id, event_type="failed", message=error)

  async def cancel(self, job_id: str, reason: str) -> bool:
    now = _to_db_timestamp(utc_now())
    stmt = update(Job).where(Job.job_id == job_id, Job.status.in_(("pending", "running"))).values(status="failed", output_json=None, error=f"canceled: {reason}", updated_at=now, completed_at=now)
    return await self._conditional_update(stmt, job_id=job_id, event_type="canceled", message=reason)

  async def list_pending(self, limit: int = 5) -> list[JobRecord]:
    async with self._session_factory() as session:
      stmt = select(Job).where(Job.status == "pending").order_by(Job.created_at.asc(), Job.job_id.asc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

  async def list_stale(self, older_than: timedelta) -> list[JobRecord]:
    cutoff = _to_db_timestamp(utc_now() - older_than)
    async with self._session_factory() as session:
      stmt = select(Job).where(Job.status == "running", Job.updated_at < cutoff).order_by(Job.updated_at.asc())
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

  async def requeue_stale(self, job_id: str, older_than: timedelta) -> bool:
    now = utc_now()
    cutoff = _to_db_timestamp(now - older_than)
    # Re-check staleness in the same statement so a job that just progressed is left alone.
    stmt = update(Job).where(Job.job_id == job_id, Job.status == "running", Job.updated_at < cutoff).values(status="pending", started_at=None, updated_at=_to_db_timestamp(now))
    return await self._conditional_update(stmt, job_id=job_id, event_type="requeued", message=f"Recovered after no update since {cutoff}.")

  async def list_events(self, job_id: str, limit: int = 100) -> list[JobEvent]:
    async with self._session_factory() as session:
      stmt = select(JobEventRow).where(JobEventRow.job_id == job_id).order_by(JobEventRow.id.asc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [JobEvent(job_id=row.job_id, event_type=row.event_type, message=row.message, created_at=row.created_at, payload=row.payload_json) for row in rows]  # type: ignore[arg-type]

  async def _conditional_update(self, stmt: Any, *, job_id: str, event_type: JobEventType, message: str) -> bool:
    """Run a guarded UPDATE and record the event only when exactly one row changed."""
    async with self._session_factory() as session:
      result = await session.execute(stmt.execution_options(synchronize_session=False))
      if result.rowcount != 1:
        await session.rollback()
        return False
      self._add_event(session, job_id=job_id, event_type=event_type, message=message)
      await session.commit()
      return True

  @staticmethod
  def _add_event(session: AsyncSession, *, job_id: str, event_type: JobEventType, message: str) -> None:
    session.add(JobEventRow(job_id=job_id, event_type=event_type, message=message, created_at=utc_now()))

  @staticmethod
  def _model_to_record(row: Job) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      owner_id=row.owner_id,
      scope_id=row.scope_id,
      kind=row.kind,
      status=row.status,  # type: ignore[arg-type]
      input=dict(row.input_json or {}),
      output=row.output_json,
      error=row.error,
      attempt_count=int(row.attempt_count or 0),
      created_at=_from_db_timestamp(row.created_at) or utc_now(),
      updated_at=_from_db_timestamp(row.updated_at) or utc_now(),
      started_at=_from_db_timestamp(row.started_at),
      completed_at=_from_db_timestamp(row.completed_at),
    )
