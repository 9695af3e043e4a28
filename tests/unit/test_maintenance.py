import logging

import pytest

from reeljobs.services.maintenance import requeue_stale_jobs
from tests.fakes import add_job, add_running_job


@pytest.mark.anyio
async def test_requeue_stale_jobs_logs_each_recovery(jobs_repo, clock, caplog):
  await add_running_job(jobs_repo, job_id="stuck", kind="mesh-generate")
  await add_job(jobs_repo, job_id="waiting", kind="roto")
  clock.advance(601)
  await add_running_job(jobs_repo, job_id="busy", kind="roto")

  with caplog.at_level(logging.WARNING, logger="reeljobs.services.maintenance"):
    requeued = await requeue_stale_jobs(jobs_repo, stale_after_seconds=600)

  assert requeued == ["stuck"]
  assert (await jobs_repo.get_job("stuck")).status == "pending"
  assert (await jobs_repo.get_job("busy")).status == "running"
  assert (await jobs_repo.get_job("waiting")).status == "pending"
  assert "recovery: requeued stale job stuck" in caplog.text
  assert [event.event_type for event in await jobs_repo.list_events("stuck")][-1] == "requeued"


@pytest.mark.anyio
async def test_requeued_job_can_be_claimed_again(jobs_repo, clock):
  await add_running_job(jobs_repo, job_id="stuck", kind="roto")
  clock.advance(700)
  await requeue_stale_jobs(jobs_repo, stale_after_seconds=600)

  assert await jobs_repo.claim("stuck")
  assert (await jobs_repo.get_job("stuck")).attempt_count == 2


@pytest.mark.anyio
async def test_finished_jobs_are_never_requeued(jobs_repo, clock):
  await add_running_job(jobs_repo, job_id="done", kind="roto")
  await jobs_repo.complete("done", {"output_url": "x"})
  clock.advance(10_000)

  assert await requeue_stale_jobs(jobs_repo, stale_after_seconds=600) == []
  assert (await jobs_repo.get_job("done")).status == "done"
