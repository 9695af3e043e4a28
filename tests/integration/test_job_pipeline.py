"""Submission through dispatch to client-side reconciliation, with in-memory backends."""

from __future__ import annotations

import json

import pytest

from reeljobs.api.models import JobCreateRequest
from reeljobs.client.reconciler import JobStatusReconciler
from reeljobs.client.status_source import RepositoryJobStatusSource
from reeljobs.client.watch_state import MemoryWatchStateStore
from reeljobs.jobs.worker import JobDispatcher, build_default_registry
from reeljobs.providers.contracts import ProviderPoll
from reeljobs.services.jobs import create_job
from tests.fakes import ChatScriptProvider, ScriptedProvider, SleepRecorder

BREAKDOWN = {
  "scenes": [{"scene_number": 1, "location": "ADA'S FLAT"}, {"scene_number": 2, "location": "MARKET"}],
  "characters": [{"name": "ADA", "role": "LEAD"}],
  "locations": [{"name": "ADA'S FLAT"}, {"name": "MARKET"}],
  "props": [{"name": "phone"}],
  "summary": {"total_scenes": 2, "budget_estimate": "LOW"},
}


def _dispatcher(settings, jobs_repo, notifier, artifact_store, *, chat=None, replicate=None):
  registry = build_default_registry(
    settings,
    jobs_repo=jobs_repo,
    artifact_store=artifact_store,
    chat=chat or ChatScriptProvider([]),
    replicate=replicate or ScriptedProvider(),
    sleep=SleepRecorder(),
  )
  return JobDispatcher(jobs_repo=jobs_repo, registry=registry, notifier=notifier)


def _reconciler(jobs_repo, clock):
  reconciler = JobStatusReconciler(RepositoryJobStatusSource(jobs_repo), MemoryWatchStateStore(), poll_interval_seconds=3.0, max_watch_seconds=900.0, clock=clock, sleep=SleepRecorder(clock=clock))
  events = []
  reconciler.add_listener(events.append)
  return reconciler, events


@pytest.mark.anyio
async def test_script_breakdown_end_to_end(settings, jobs_repo, notifier, in_app_repo, artifact_store, clock):
  chat = ChatScriptProvider([f"```json\n{json.dumps(BREAKDOWN)}\n```"])
  created = await create_job(JobCreateRequest(kind="script-breakdown", input={"text": "INT. ADA'S FLAT - NIGHT"}), owner_id="owner-1", jobs_repo=jobs_repo)

  summary = await _dispatcher(settings, jobs_repo, notifier, artifact_store, chat=chat).process_queue()
  assert summary.done == 1

  reconciler, events = _reconciler(jobs_repo, clock)
  event = await reconciler.watch(created.job_id)

  assert event.outcome == "done"
  assert [scene["scene_number"] for scene in event.output["scenes"]] == [1, 2]
  assert event.output["model_used"] == "test/chat-model"
  assert events == [event]
  assert [(entry.owner_id, entry.title) for entry in in_app_repo.entries] == [("owner-1", "Script Breakdown Complete")]
  assert [item.event_type for item in await jobs_repo.list_events(created.job_id)] == ["created", "claimed", "done"]


@pytest.mark.anyio
async def test_provider_failure_reaches_the_client(settings, jobs_repo, notifier, in_app_repo, artifact_store, clock):
  replicate = ScriptedProvider(polls=[ProviderPoll(status="running"), ProviderPoll(status="failed", error="NSFW content detected")])
  created = await create_job(JobCreateRequest(kind="roto", input={"file_url": "https://in/clip.mp4"}), owner_id="owner-1", jobs_repo=jobs_repo)

  summary = await _dispatcher(settings, jobs_repo, notifier, artifact_store, replicate=replicate).process_queue()
  assert summary.failed == 1

  reconciler, events = _reconciler(jobs_repo, clock)
  event = await reconciler.watch(created.job_id)

  assert event.outcome == "failed"
  assert event.error == "NSFW content detected"
  assert len(events) == 1
  assert artifact_store.objects == {}
  [entry] = in_app_repo.entries
  assert entry.template_id == "job_failed_v1"
  assert "NSFW content detected" in entry.body


@pytest.mark.anyio
async def test_second_pass_does_not_rerun_finished_jobs(settings, jobs_repo, notifier, in_app_repo, artifact_store):
  chat = ChatScriptProvider([json.dumps(BREAKDOWN), json.dumps(BREAKDOWN)])
  await create_job(JobCreateRequest(kind="breakdown", input={"text": "EXT. BEACH - DAY"}), owner_id="owner-1", jobs_repo=jobs_repo)
  dispatcher = _dispatcher(settings, jobs_repo, notifier, artifact_store, chat=chat)

  first = await dispatcher.process_queue()
  second = await dispatcher.process_queue()

  assert first.done == 1
  assert second.processed == 0
  assert len(chat.requests) == 1
  assert len(in_app_repo.entries) == 1
