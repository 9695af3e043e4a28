"""Worker loop driving dispatcher passes, on demand or on an interval."""

from __future__ import annotations

import asyncio
import logging

from reeljobs.jobs.worker import DispatchSummary, JobDispatcher

logger = logging.getLogger(__name__)


class WorkerLoop:
  """Runs dispatcher passes once (triggered mode) or until stopped (continuous mode)."""

  def __init__(self, dispatcher: JobDispatcher, *, interval_seconds: float = 10.0) -> None:
    self._dispatcher = dispatcher
    self._interval = interval_seconds
    self.passes = 0

  async def run_once(self) -> DispatchSummary:
    summary = await self._dispatcher.process_queue()
    self.passes += 1
    logger.info("Worker pass %d: processed=%d skipped=%d done=%d failed=%d", self.passes, summary.processed, summary.skipped, summary.done, summary.failed)
    return summary

  async def run_forever(self, stop_event: asyncio.Event | None = None) -> None:
    """Pass, sleep, repeat. Errors in a pass are logged and the loop carries on."""
    stop_event = stop_event or asyncio.Event()
    logger.info("Worker loop started (interval=%ss)", self._interval)
    while not stop_event.is_set():
      try:
        await self.run_once()
      except Exception:  # noqa: BLE001
        logger.error("Worker pass failed", exc_info=True)
      try:
        await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
      except TimeoutError:
        pass
    logger.info("Worker loop stopped after %d pass(es)", self.passes)
