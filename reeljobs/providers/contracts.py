"""Contracts shared by every inference provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

ProviderStatus = Literal["queued", "running", "succeeded", "failed", "canceled"]

_TERMINAL_PROVIDER_STATUSES: frozenset[str] = frozenset({"succeeded", "failed", "canceled"})


@dataclass(frozen=True)
class ProviderPoll:
  """A snapshot of remote work as reported by the provider."""

  status: ProviderStatus
  result: Any = None
  error: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in _TERMINAL_PROVIDER_STATUSES


@dataclass(frozen=True)
class ProviderHandle:
  """Reference to remote work returned by ``submit``.

  Synchronous providers return a handle whose ``initial`` snapshot is already terminal.
  """

  provider: str
  handle_id: str
  initial: ProviderPoll


class InferenceProvider(Protocol):
  """Submit/poll contract every transformation backend implements."""

  name: str

  async def submit(self, request: Any) -> ProviderHandle:
    """Start remote work and return a handle to it."""

  async def poll(self, handle: ProviderHandle) -> ProviderPoll:
    """Return the current state of previously submitted work."""
