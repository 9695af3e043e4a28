import pytest

from reeljobs.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
  for key in ("REEL_PROVIDER_POLL_INTERVAL_SECONDS", "REEL_PROVIDER_MAX_POLL_ATTEMPTS", "REEL_RECONCILER_MAX_WATCH_SECONDS", "REEL_STALE_AFTER_SECONDS", "REEL_ALLOWED_ORIGINS", "REEL_TASK_SECRET"):
    monkeypatch.delenv(key, raising=False)
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def test_defaults_keep_watch_window_above_poll_budget():
  settings = get_settings()
  assert settings.handler_poll_budget_seconds == 300
  assert settings.reconciler_max_watch_seconds > settings.handler_poll_budget_seconds


def test_watch_window_must_exceed_poll_budget(monkeypatch):
  monkeypatch.setenv("REEL_PROVIDER_POLL_INTERVAL_SECONDS", "10")
  monkeypatch.setenv("REEL_PROVIDER_MAX_POLL_ATTEMPTS", "90")
  monkeypatch.setenv("REEL_RECONCILER_MAX_WATCH_SECONDS", "900")

  with pytest.raises(ValueError, match="REEL_RECONCILER_MAX_WATCH_SECONDS"):
    get_settings()


def test_wildcard_origins_are_rejected(monkeypatch):
  monkeypatch.setenv("REEL_ALLOWED_ORIGINS", "https://app.example, *")
  with pytest.raises(ValueError, match="wildcard"):
    get_settings()


def test_blank_secret_is_treated_as_unset(monkeypatch):
  monkeypatch.setenv("REEL_TASK_SECRET", "   ")
  assert get_settings().task_secret is None


def test_stale_window_must_exceed_poll_budget(monkeypatch):
  monkeypatch.setenv("REEL_STALE_AFTER_SECONDS", "300")

  with pytest.raises(ValueError, match="REEL_STALE_AFTER_SECONDS"):
    get_settings()
