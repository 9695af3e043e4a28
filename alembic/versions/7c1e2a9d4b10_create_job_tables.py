"""Create jobs, job events and notifications tables.

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "7c1e2a9d4b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "jobs",
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("owner_id", sa.String(), nullable=False),
    sa.Column("scope_id", sa.String(), nullable=True),
    sa.Column("kind", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("input_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("output_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("error", sa.Text(), nullable=True),
    sa.Column("attempt_count", sa.Integer(), server_default="0", nullable=False),
    sa.Column("created_at", sa.String(), nullable=False),
    sa.Column("updated_at", sa.String(), nullable=False),
    sa.Column("started_at", sa.String(), nullable=True),
    sa.Column("completed_at", sa.String(), nullable=True),
    sa.CheckConstraint("status IN ('pending', 'running', 'done', 'failed')", name="ck_jobs_status"),
    sa.PrimaryKeyConstraint("job_id"),
  )
  op.create_index(op.f("ix_jobs_owner_id"), "jobs", ["owner_id"], unique=False)
  op.create_index(op.f("ix_jobs_scope_id"), "jobs", ["scope_id"], unique=False)
  op.create_index(op.f("ix_jobs_kind"), "jobs", ["kind"], unique=False)
  op.create_index("ix_jobs_status_created_at", "jobs", ["status", "created_at"], unique=False)
  op.create_index("ix_jobs_status_updated_at", "jobs", ["status", "updated_at"], unique=False)

  op.create_table(
    "job_events",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("event_type", sa.String(), nullable=False),
    sa.Column("message", sa.Text(), nullable=False),
    sa.Column("payload_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.ForeignKeyConstraint(["job_id"], ["jobs.job_id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_job_events_job_id"), "job_events", ["job_id"], unique=False)
  op.create_index(op.f("ix_job_events_event_type"), "job_events", ["event_type"], unique=False)

  op.create_table(
    "notifications",
    sa.Column("id", sa.Uuid(), nullable=False),
    sa.Column("owner_id", sa.String(), nullable=False),
    sa.Column("template_id", sa.String(), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("body", sa.Text(), nullable=False),
    sa.Column("data_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_notifications_owner_id"), "notifications", ["owner_id"], unique=False)
  op.create_index(op.f("ix_notifications_template_id"), "notifications", ["template_id"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index(op.f("ix_notifications_template_id"), table_name="notifications")
  op.drop_index(op.f("ix_notifications_owner_id"), table_name="notifications")
  op.drop_table("notifications")
  op.drop_index(op.f("ix_job_events_event_type"), table_name="job_events")
  op.drop_index(op.f("ix_job_events_job_id"), table_name="job_events")
  op.drop_table("job_events")
  op.drop_index("ix_jobs_status_updated_at", table_name="jobs")
  op.drop_index("ix_jobs_status_created_at", table_name="jobs")
  op.drop_index(op.f("ix_jobs_kind"), table_name="jobs")
  op.drop_index(op.f("ix_jobs_scope_id"), table_name="jobs")
  op.drop_index(op.f("ix_jobs_owner_id"), table_name="jobs")
  op.drop_table("jobs")
