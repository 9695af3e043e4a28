"""Failure taxonomy for job execution.

Every exception here ends up as the human-readable ``error`` of a failed job, so the
message is what users see.
"""

from __future__ import annotations


class JobExecutionError(Exception):
  """Base class for failures that terminate a job."""


class JobInputError(JobExecutionError):
  """The job input cannot be turned into a provider request."""


class UnknownJobKindError(JobExecutionError):
  """No handler is registered for the job kind."""

  def __init__(self, kind: str) -> None:
    super().__init__("unknown job kind")
    self.kind = kind


class ProviderError(JobExecutionError):
  """The inference provider reported a failure or returned something unusable."""


class ProviderCredentialsError(ProviderError):
  """The provider cannot be called because its credentials are not configured."""


class ProviderTransientError(ProviderError):
  """A provider call failed in a way that may succeed on the next poll."""


class ProviderTimeoutError(ProviderError):
  """The provider did not reach a terminal state within the polling budget."""


class ArtifactStorageError(JobExecutionError):
  """A produced artifact could not be downloaded or stored durably."""


class JobCanceledError(JobExecutionError):
  """The job was canceled while the handler was still waiting on the provider."""
