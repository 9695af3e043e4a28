"""Dependency-injected handler registry keyed by job kind."""

from __future__ import annotations

from collections.abc import Mapping

from reeljobs.jobs.errors import UnknownJobKindError
from reeljobs.jobs.handlers.base import JobHandler
from reeljobs.jobs.models import JOB_KINDS, canonical_kind


class JobHandlerRegistry:
  """Registry mapping canonical job kinds to handlers.

  Construction fails unless every canonical kind has a handler, so a new kind cannot ship
  without one.
  """

  def __init__(self, handlers: Mapping[str, JobHandler]) -> None:
    missing = [kind for kind in JOB_KINDS if kind not in handlers]
    if missing:
      raise ValueError(f"Missing job handlers for kinds: {', '.join(missing)}")
    self._handlers = dict(handlers)

  @property
  def kinds(self) -> tuple[str, ...]:
    return tuple(self._handlers)

  def resolve(self, kind: str) -> JobHandler:
    """Resolve the handler for a job kind, accepting legacy aliases."""
    handler = self._handlers.get(canonical_kind(kind))
    if handler is None:
      raise UnknownJobKindError(kind)
    return handler
