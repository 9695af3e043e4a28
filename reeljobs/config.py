"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
  """Typed settings for the reel-jobs service and workers."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  pg_dsn: str | None
  pg_connect_timeout: int
  task_secret: str | None
  dispatch_batch_size: int
  worker_interval_seconds: float
  stale_after_seconds: int
  provider_poll_interval_seconds: float
  provider_max_poll_attempts: int
  provider_timeout_seconds: float
  reconciler_poll_interval_seconds: float
  reconciler_max_watch_seconds: float
  reconciler_state_dir: str
  replicate_api_key: str | None
  replicate_base_url: str
  llm_api_key: str | None
  llm_base_url: str
  llm_model: str
  script_chunk_chars: int
  audio_clean_model: str
  artifact_bucket: str
  artifact_public_base_url: str | None
  gcs_storage_host: str | None
  gcp_project_id: str | None
  api_base_url: str

  @property
  def handler_poll_budget_seconds(self) -> float:
    """Return the worst-case provider polling time of one handler invocation."""
    return self.provider_poll_interval_seconds * self.provider_max_poll_attempts


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:8080",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("REEL_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("REEL_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("REEL_ENV", "development").lower()
  debug = _parse_bool(os.getenv("REEL_DEBUG"))

  log_backup_count = int(os.getenv("REEL_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("REEL_LOG_BACKUP_COUNT must be zero or a positive integer.")

  provider_poll_interval_seconds = _positive_float("REEL_PROVIDER_POLL_INTERVAL_SECONDS", "5")
  provider_max_poll_attempts = _positive_int("REEL_PROVIDER_MAX_POLL_ATTEMPTS", "60")
  reconciler_max_watch_seconds = _positive_float("REEL_RECONCILER_MAX_WATCH_SECONDS", "900")

  # A client that gives up before the worker does would miss legitimate completions.
  if reconciler_max_watch_seconds <= provider_poll_interval_seconds * provider_max_poll_attempts:
    raise ValueError("REEL_RECONCILER_MAX_WATCH_SECONDS must exceed the provider polling budget (poll interval * max poll attempts).")

  # Recovery must not requeue a job whose handler is still inside its polling budget.
  stale_after_seconds = _positive_int("REEL_STALE_AFTER_SECONDS", "600")
  if stale_after_seconds <= provider_poll_interval_seconds * provider_max_poll_attempts:
    raise ValueError("REEL_STALE_AFTER_SECONDS must exceed the provider polling budget (poll interval * max poll attempts).")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("REEL_ALLOWED_ORIGINS")),
    log_dir=(os.getenv("REEL_LOG_DIR") or "./logs").strip(),
    log_max_bytes=_positive_int("REEL_LOG_MAX_BYTES", "5242880"),
    log_backup_count=log_backup_count,
    pg_dsn=_optional_str(os.getenv("REEL_PG_DSN")),
    pg_connect_timeout=_positive_int("REEL_PG_CONNECT_TIMEOUT", "10"),
    task_secret=_optional_str(os.getenv("REEL_TASK_SECRET")),
    dispatch_batch_size=_positive_int("REEL_DISPATCH_BATCH_SIZE", "5"),
    worker_interval_seconds=_positive_float("REEL_WORKER_INTERVAL_SECONDS", "10"),
    stale_after_seconds=stale_after_seconds,
    provider_poll_interval_seconds=provider_poll_interval_seconds,
    provider_max_poll_attempts=provider_max_poll_attempts,
    provider_timeout_seconds=_positive_float("REEL_PROVIDER_TIMEOUT_SECONDS", "60"),
    reconciler_poll_interval_seconds=_positive_float("REEL_RECONCILER_POLL_INTERVAL_SECONDS", "3"),
    reconciler_max_watch_seconds=reconciler_max_watch_seconds,
    reconciler_state_dir=(os.getenv("REEL_RECONCILER_STATE_DIR") or "~/.reeljobs/watches").strip(),
    replicate_api_key=_optional_str(os.getenv("REEL_REPLICATE_API_KEY")),
    replicate_base_url=(os.getenv("REEL_REPLICATE_BASE_URL") or "https://api.replicate.com/v1").strip(),
    llm_api_key=_optional_str(os.getenv("REEL_LLM_API_KEY")),
    llm_base_url=(os.getenv("REEL_LLM_BASE_URL") or "https://ai.gateway.lovable.dev/v1").strip(),
    llm_model=(os.getenv("REEL_LLM_MODEL") or "google/gemini-2.5-flash").strip(),
    script_chunk_chars=_positive_int("REEL_SCRIPT_CHUNK_CHARS", "30000"),
    audio_clean_model=(os.getenv("REEL_AUDIO_CLEAN_MODEL") or "lucataco/resemble-enhance").strip(),
    artifact_bucket=(os.getenv("REEL_ARTIFACT_BUCKET") or "outputs").strip(),
    artifact_public_base_url=_optional_str(os.getenv("REEL_ARTIFACT_PUBLIC_BASE_URL")),
    gcs_storage_host=_optional_str(os.getenv("REEL_GCS_STORAGE_HOST")),
    gcp_project_id=_optional_str(os.getenv("REEL_GCP_PROJECT_ID")),
    api_base_url=(os.getenv("REEL_API_BASE_URL") or "http://localhost:8000").strip(),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load only the database settings, without validating the full service config."""

  return DatabaseSettings(debug=_parse_bool(os.getenv("REEL_DEBUG")), pg_dsn=_optional_str(os.getenv("REEL_PG_DSN")), pg_connect_timeout=int(os.getenv("REEL_PG_CONNECT_TIMEOUT", "10")))
