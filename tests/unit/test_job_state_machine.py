import pytest

from reeljobs.jobs.models import JOB_KINDS, can_transition, canonical_kind, is_terminal


@pytest.mark.parametrize(
  ("src", "dst", "allowed"),
  [
    ("pending", "running", True),
    ("pending", "failed", True),
    ("pending", "done", False),
    ("running", "done", True),
    ("running", "failed", True),
    ("running", "pending", False),
    ("done", "failed", False),
    ("done", "running", False),
    ("failed", "done", False),
    ("failed", "pending", False),
  ],
)
def test_forward_transitions(src, dst, allowed):
  assert can_transition(src, dst) is allowed


def test_recovery_only_moves_running_back_to_pending():
  assert can_transition("running", "pending", recovery=True)
  assert not can_transition("done", "pending", recovery=True)
  assert not can_transition("failed", "pending", recovery=True)
  assert not can_transition("running", "done", recovery=True)


def test_terminal_statuses():
  assert is_terminal("done")
  assert is_terminal("failed")
  assert not is_terminal("pending")
  assert not is_terminal("running")


def test_legacy_kinds_resolve_to_canonical_kinds():
  assert canonical_kind("super_breakdown") == "script-breakdown"
  assert canonical_kind("breakdown") == "script-breakdown"
  assert canonical_kind("mesh") == "mesh-generate"
  assert canonical_kind("mesh-generation") == "mesh-generate"
  assert canonical_kind("audio-cleanup") == "audio-clean"
  assert canonical_kind(" roto ") == "roto"
  assert canonical_kind("teleport") == "teleport"
  assert set(JOB_KINDS) == {"script-breakdown", "roto", "color-grade", "mesh-generate", "audio-clean"}
