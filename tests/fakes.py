"""In-memory stand-ins for providers, clocks and sleeps used across the suite."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from reeljobs.jobs.models import JobRecord
from reeljobs.providers.contracts import ProviderHandle, ProviderPoll
from reeljobs.storage.jobs_repo import JobsRepository


class FakeClock:
  def __init__(self, start: datetime | None = None) -> None:
    self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

  def __call__(self) -> datetime:
    return self.now

  def advance(self, seconds: float) -> None:
    self.now = self.now + timedelta(seconds=seconds)


class SleepRecorder:
  """Async sleep replacement that records delays and optionally advances a clock."""

  def __init__(self, clock: FakeClock | None = None, on_sleep: Callable[[int], Any] | None = None) -> None:
    self.calls: list[float] = []
    self._clock = clock
    self._on_sleep = on_sleep

  async def __call__(self, seconds: float) -> None:
    self.calls.append(seconds)
    if self._clock is not None:
      self._clock.advance(seconds)
    if self._on_sleep is not None:
      result = self._on_sleep(len(self.calls))
      if hasattr(result, "__await__"):
        await result


class ScriptedProvider:
  """Provider whose submit/poll results are scripted by the test."""

  name = "scripted"

  def __init__(self, *, initial: ProviderPoll | None = None, polls: list[ProviderPoll | Exception] | None = None, submit_error: Exception | None = None) -> None:
    self.initial = initial or ProviderPoll(status="queued")
    self.polls = list(polls or [])
    self.submit_error = submit_error
    self.requests: list[Any] = []
    self.poll_calls = 0

  async def submit(self, request: Any) -> ProviderHandle:
    self.requests.append(request)
    if self.submit_error is not None:
      raise self.submit_error
    return ProviderHandle(provider=self.name, handle_id=f"pred-{len(self.requests)}", initial=self.initial)

  async def poll(self, handle: ProviderHandle) -> ProviderPoll:
    self.poll_calls += 1
    if not self.polls:
      return ProviderPoll(status="running")
    item = self.polls.pop(0)
    if isinstance(item, Exception):
      raise item
    return item


class ChatScriptProvider:
  """Synchronous chat provider returning canned completions in order."""

  name = "chat-script"
  model = "test/chat-model"

  def __init__(self, responses: list[str]) -> None:
    self.responses = list(responses)
    self.requests: list[Any] = []

  async def submit(self, request: Any) -> ProviderHandle:
    self.requests.append(request)
    content = self.responses.pop(0) if self.responses else ""
    return ProviderHandle(provider=self.name, handle_id=f"chat-{len(self.requests)}", initial=ProviderPoll(status="succeeded", result=content))

  async def poll(self, handle: ProviderHandle) -> ProviderPoll:
    return handle.initial


async def add_job(jobs_repo: JobsRepository, *, job_id: str, kind: str, input: dict[str, Any] | None = None, owner_id: str = "owner-1", created_at: datetime | None = None) -> JobRecord:
  created = created_at or datetime(2026, 1, 1, 11, 0, tzinfo=UTC)
  record = JobRecord(job_id=job_id, owner_id=owner_id, kind=kind, input=dict(input or {}), status="pending", created_at=created, updated_at=created)
  await jobs_repo.create_job(record)
  return record


async def add_running_job(jobs_repo: JobsRepository, **kwargs: Any) -> JobRecord:
  record = await add_job(jobs_repo, **kwargs)
  assert await jobs_repo.claim(record.job_id)
  current = await jobs_repo.get_job(record.job_id)
  assert current is not None
  return current
