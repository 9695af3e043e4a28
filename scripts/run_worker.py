"""Run the job worker: one pass, a continuous loop, or a stale-job recovery sweep."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from reeljobs.config import get_settings
from reeljobs.core.logging import initialize_logging
from reeljobs.jobs.loop import WorkerLoop
from reeljobs.notifications.factory import build_notification_service
from reeljobs.services.jobs import build_dispatcher
from reeljobs.services.maintenance import requeue_stale_jobs
from reeljobs.storage.factory import build_jobs_repo

logger = logging.getLogger("scripts.run_worker")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description=__doc__)
  mode = parser.add_mutually_exclusive_group()
  mode.add_argument("--once", action="store_true", help="Run a single dispatcher pass and exit.")
  mode.add_argument("--requeue-stale", action="store_true", help="Reset stuck running jobs to pending and exit.")
  parser.add_argument("--interval", type=float, default=None, help="Seconds between passes in continuous mode.")
  parser.add_argument("--stale-after", type=int, default=None, help="Staleness window in seconds for --requeue-stale.")
  return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
  settings = get_settings()
  initialize_logging(settings, prefix="worker")
  jobs_repo = build_jobs_repo(settings)

  if args.requeue_stale:
    requeued = await requeue_stale_jobs(jobs_repo, stale_after_seconds=args.stale_after or settings.stale_after_seconds)
    print(f"Requeued {len(requeued)} stale job(s)")
    return 0

  dispatcher = build_dispatcher(settings, jobs_repo=jobs_repo, notifier=build_notification_service(settings))
  loop = WorkerLoop(dispatcher, interval_seconds=args.interval or settings.worker_interval_seconds)

  if args.once:
    summary = await loop.run_once()
    print(f"processed={summary.processed} skipped={summary.skipped} done={summary.done} failed={summary.failed}")
    return 0

  stop_event = asyncio.Event()
  running_loop = asyncio.get_running_loop()
  for signum in (signal.SIGINT, signal.SIGTERM):
    try:
      running_loop.add_signal_handler(signum, stop_event.set)
    except NotImplementedError:
      logger.warning("Signal handlers unavailable on this platform; use Ctrl+C to stop")
  await loop.run_forever(stop_event)
  return 0


def main(argv: list[str] | None = None) -> int:
  return asyncio.run(_run(_parse_args(argv)))


if __name__ == "__main__":
  sys.exit(main())
