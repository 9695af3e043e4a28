from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from reeljobs import __version__
from reeljobs.api.routes import admin, jobs, tasks
from reeljobs.config import get_settings
from reeljobs.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler
from reeljobs.core.lifespan import lifespan


def create_app() -> FastAPI:
  settings = get_settings()
  application = FastAPI(title="reel-jobs", version=__version__, lifespan=lifespan)

  application.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization", "x-owner-id"])

  application.add_exception_handler(Exception, global_exception_handler)
  application.add_exception_handler(HTTPException, http_exception_handler)
  application.add_exception_handler(RequestValidationError, request_validation_exception_handler)

  @application.get("/health", include_in_schema=False)
  async def health_check() -> dict[str, str]:
    """Return a simple health status."""
    return {"status": "ok", "version": __version__}

  application.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
  application.include_router(tasks.router, prefix="/internal", tags=["tasks"])
  application.include_router(admin.router, prefix="/admin", tags=["admin"])
  return application


app = create_app()
