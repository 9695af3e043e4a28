"""Watch jobs until they finish, resuming watches left over from a previous run."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from reeljobs.client.reconciler import JobStatusReconciler, ReconcileEvent
from reeljobs.client.status_source import HttpJobStatusSource
from reeljobs.client.watch_state import FileWatchStateStore
from reeljobs.config import get_settings
from reeljobs.core.logging import initialize_logging


def _print_event(event: ReconcileEvent) -> None:
  if event.outcome == "done":
    print(f"{event.job_id}: done after {event.elapsed_seconds:.0f}s")
    print(json.dumps(event.output or {}, indent=2))
  elif event.outcome == "failed":
    print(f"{event.job_id}: failed: {event.error}")
  else:
    print(f"{event.job_id}: still not finished after {event.elapsed_seconds:.0f}s; check again later")


async def _run(args: argparse.Namespace) -> int:
  settings = get_settings()
  initialize_logging(settings, prefix="watch")
  reconciler = JobStatusReconciler(
    HttpJobStatusSource(args.api_base_url or settings.api_base_url, args.owner_id),
    FileWatchStateStore(settings.reconciler_state_dir),
    poll_interval_seconds=settings.reconciler_poll_interval_seconds,
    max_watch_seconds=settings.reconciler_max_watch_seconds,
  )
  reconciler.add_listener(_print_event)

  if args.resume:
    events = await reconciler.resume_all()
  else:
    if not args.job_id:
      print("error: a job id is required unless --resume is given", file=sys.stderr)
      return 2
    events = list(await asyncio.gather(*(reconciler.start(job_id) for job_id in args.job_id)))
  return 1 if any(event.outcome == "failed" for event in events) else 0


def main(argv: list[str] | None = None) -> int:
  parser = argparse.ArgumentParser(description=__doc__)
  parser.add_argument("job_id", nargs="*", help="Job ids to watch.")
  parser.add_argument("--owner-id", required=True, help="Owner id sent as X-Owner-Id.")
  parser.add_argument("--api-base-url", default=None, help="Jobs API base URL (defaults to REEL_API_BASE_URL).")
  parser.add_argument("--resume", action="store_true", help="Resume every persisted watch instead.")
  return asyncio.run(_run(parser.parse_args(argv)))


if __name__ == "__main__":
  sys.exit(main())
