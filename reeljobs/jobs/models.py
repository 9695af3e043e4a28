"""Domain models for background transformation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal, get_args

JobStatus = Literal["pending", "running", "done", "failed"]
JobKind = Literal["script-breakdown", "roto", "color-grade", "mesh-generate", "audio-clean"]
JobEventType = Literal["created", "claimed", "done", "failed", "canceled", "requeued", "log"]

JOB_KINDS: tuple[str, ...] = get_args(JobKind)
TERMINAL_STATUSES: frozenset[str] = frozenset({"done", "failed"})

# Legacy kind names still written by older submission paths.
KIND_ALIASES: dict[str, str] = {
  "super_breakdown": "script-breakdown",
  "breakdown": "script-breakdown",
  "mesh": "mesh-generate",
  "mesh-generation": "mesh-generate",
  "audio-cleanup": "audio-clean",
}

_FORWARD_TRANSITIONS: dict[str, frozenset[str]] = {
  "pending": frozenset({"running", "failed"}),
  "running": frozenset({"done", "failed"}),
  "done": frozenset(),
  "failed": frozenset(),
}


def utc_now() -> datetime:
  return datetime.now(UTC)


def is_terminal(status: str) -> bool:
  """Return True when a status can never change again."""
  return status in TERMINAL_STATUSES


def can_transition(src: str, dst: str, *, recovery: bool = False) -> bool:
  """Check a status change against the job state machine.

  Forward moves are pending -> running -> done|failed, plus pending -> failed for
  cancellation of a job nobody claimed yet. The only backward move is the stuck-job
  recovery running -> pending, allowed only when ``recovery`` is set.
  """
  if recovery:
    return src == "running" and dst == "pending"
  return dst in _FORWARD_TRANSITIONS.get(src, frozenset())


def canonical_kind(raw_kind: str) -> str:
  """Map legacy kind names onto the canonical kind; unknown kinds pass through unchanged."""
  normalized = str(raw_kind or "").strip()
  return KIND_ALIASES.get(normalized, normalized)


@dataclass
class JobRecord:
  """Represents one durable transformation job."""

  job_id: str
  owner_id: str
  kind: str
  input: dict[str, Any]
  status: JobStatus
  created_at: datetime
  updated_at: datetime
  scope_id: str | None = None
  output: dict[str, Any] | None = None
  error: str | None = None
  started_at: datetime | None = None
  completed_at: datetime | None = None
  attempt_count: int = 0

  @property
  def is_terminal(self) -> bool:
    return is_terminal(self.status)


@dataclass(frozen=True)
class JobEvent:
  """One entry in a job's transition timeline."""

  job_id: str
  event_type: JobEventType
  message: str
  created_at: datetime = field(default_factory=utc_now)
  payload: dict[str, Any] | None = None
