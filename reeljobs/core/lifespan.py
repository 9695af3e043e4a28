import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from reeljobs.core.logging import initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging after uvicorn starts and report the storage backends in use."""
  from reeljobs.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("reeljobs.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except Exception:  # noqa: BLE001
    logger.warning("Initial logging setup failed; continuing with default logging.", exc_info=True)

  logger.info("Job store: %s", "postgres " + _redact_dsn(settings.pg_dsn) if settings.pg_dsn else "in-memory (not durable)")
  logger.info("Provider polling budget %.0fs, reconciler window %.0fs", settings.handler_poll_budget_seconds, settings.reconciler_max_watch_seconds)

  yield


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"
  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"
  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
