from __future__ import annotations

import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from reeljobs.core.database import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in local runs and tests).
JsonColumn = JSON().with_variant(JSONB(), "postgresql")


class Job(Base):
  __tablename__ = "jobs"
  __table_args__ = (
    CheckConstraint("status IN ('pending', 'running', 'done', 'failed')", name="ck_jobs_status"),
    Index("ix_jobs_status_created_at", "status", "created_at"),
    Index("ix_jobs_status_updated_at", "status", "updated_at"),
  )

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  scope_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  kind: Mapped[str] = mapped_column(String, nullable=False, index=True)
  status: Mapped[str] = mapped_column(String, nullable=False)
  input_json: Mapped[dict] = mapped_column(JsonColumn, nullable=False)
  output_json: Mapped[dict | None] = mapped_column(JsonColumn, nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  # Fixed-width UTC ISO strings so FIFO ordering and staleness cutoffs compare lexicographically.
  created_at: Mapped[str] = mapped_column(String, nullable=False)
  updated_at: Mapped[str] = mapped_column(String, nullable=False)
  started_at: Mapped[str | None] = mapped_column(String, nullable=True)
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)


class JobEventRow(Base):
  __tablename__ = "job_events"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  job_id: Mapped[str] = mapped_column(ForeignKey("jobs.job_id", ondelete="CASCADE"), nullable=False, index=True)
  event_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  message: Mapped[str] = mapped_column(Text, nullable=False)
  payload_json: Mapped[dict | None] = mapped_column(JsonColumn, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
