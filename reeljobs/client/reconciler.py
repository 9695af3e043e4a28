"""Client-side watcher that reports when a job reaches a terminal state."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from reeljobs.client.status_source import JobStatusSource
from reeljobs.client.watch_state import WatchRecord, WatchStateStore
from reeljobs.jobs.models import utc_now

logger = logging.getLogger(__name__)

ReconcileOutcome = Literal["done", "failed", "expired"]


@dataclass(frozen=True)
class ReconcileEvent:
  """The single result of one watch."""

  job_id: str
  outcome: ReconcileOutcome
  output: dict[str, Any] | None = None
  error: str | None = None
  elapsed_seconds: float = 0.0


Listener = Callable[[ReconcileEvent], Awaitable[None] | None]


class JobStatusReconciler:
  """Polls a status source until a job is done, failed, or the watch window runs out.

  Watches are persisted with their start time, so a restarted client resumes with the
  original deadline rather than a fresh one. The reconciler never writes to the job store.
  """

  def __init__(
    self,
    source: JobStatusSource,
    state_store: WatchStateStore,
    *,
    poll_interval_seconds: float = 3.0,
    max_watch_seconds: float = 900.0,
    clock: Callable[[], datetime] = utc_now,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  ) -> None:
    self._source = source
    self._state_store = state_store
    self._poll_interval = poll_interval_seconds
    self._max_watch = max_watch_seconds
    self._clock = clock
    self._sleep = sleep
    self._listeners: list[Listener] = []
    self._active: dict[str, asyncio.Task[ReconcileEvent]] = {}

  def add_listener(self, listener: Listener) -> None:
    self._listeners.append(listener)

  async def watch(self, job_id: str) -> ReconcileEvent:
    record = self._state_store.load(job_id)
    if record is None:
      record = WatchRecord(job_id=job_id, start_time=self._clock())
      self._state_store.save(record)
    else:
      logger.info("Resuming watch for job %s started at %s", job_id, record.start_time.isoformat())

    event = await self._poll_until_settled(record)
    self._state_store.delete(job_id)
    await self._emit(event)
    return event

  def start(self, job_id: str) -> asyncio.Task[ReconcileEvent]:
    """Watch in the background; a job already being watched returns the existing task."""
    existing = self._active.get(job_id)
    if existing is not None and not existing.done():
      return existing
    task = asyncio.create_task(self.watch(job_id), name=f"watch-{job_id}")
    self._active[job_id] = task
    task.add_done_callback(lambda finished: self._forget(job_id, finished))
    return task

  async def resume_all(self) -> list[ReconcileEvent]:
    """Resume every persisted watch concurrently and wait for all of them."""
    records = self._state_store.list_all()
    if not records:
      return []
    logger.info("Resuming %d persisted job watch(es)", len(records))
    return list(await asyncio.gather(*(self.start(record.job_id) for record in records)))

  async def _poll_until_settled(self, record: WatchRecord) -> ReconcileEvent:
    while True:
      try:
        snapshot = await self._source.get_status(record.job_id)
      except Exception as exc:  # noqa: BLE001
        logger.warning("Status read for job %s failed; retrying: %s", record.job_id, exc)
        snapshot = None
      else:
        if snapshot is None:
          logger.warning("Job %s not found; retrying", record.job_id)

      elapsed = (self._clock() - record.start_time).total_seconds()
      if snapshot is not None and snapshot.status == "done":
        return ReconcileEvent(job_id=record.job_id, outcome="done", output=snapshot.output, elapsed_seconds=elapsed)
      if snapshot is not None and snapshot.status == "failed":
        return ReconcileEvent(job_id=record.job_id, outcome="failed", error=snapshot.error or "Unknown error", elapsed_seconds=elapsed)
      if elapsed > self._max_watch:
        logger.info("Stopped watching job %s after %.0fs; it may still finish later", record.job_id, elapsed)
        return ReconcileEvent(job_id=record.job_id, outcome="expired", elapsed_seconds=elapsed)

      await self._sleep(self._poll_interval)

  async def _emit(self, event: ReconcileEvent) -> None:
    for listener in list(self._listeners):
      try:
        result = listener(event)
        if inspect.isawaitable(result):
          await result
      except Exception:  # noqa: BLE001
        logger.error("Reconcile listener failed for job %s", event.job_id, exc_info=True)

  def _forget(self, job_id: str, finished: asyncio.Task[ReconcileEvent]) -> None:
    if self._active.get(job_id) is finished:
      del self._active[job_id]
