"""Object storage for job output artifacts."""

from __future__ import annotations

import os
from typing import Protocol
from urllib.parse import quote, urlparse, urlunparse

from google.auth.credentials import AnonymousCredentials
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from reeljobs.config import Settings


class ArtifactStore(Protocol):
  """Durable storage for files produced by jobs."""

  async def upload_bytes(self, data: bytes, object_name: str, content_type: str) -> str:
    """Store bytes under ``object_name`` and return their public URL."""


class StorageClient(ArtifactStore):
  """Thin wrapper over GCS and emulator access for artifact uploads."""

  def __init__(self, settings: Settings) -> None:
    self._bucket_name = settings.artifact_bucket
    self._storage_host = settings.gcs_storage_host
    self._public_base_url = settings.artifact_public_base_url
    # Real GCS buckets are provisioned out of band; the emulator starts empty.
    self._bucket_ready = not self._storage_host
    # Ensure emulator endpoint is visible to the SDK in local development.
    if self._storage_host:
      emulator_endpoint = _normalize_emulator_endpoint(self._storage_host)
      os.environ["STORAGE_EMULATOR_HOST"] = emulator_endpoint
      self._client = storage.Client(project=settings.gcp_project_id or "local-dev", credentials=AnonymousCredentials(), client_options={"api_endpoint": emulator_endpoint})
      if not self._public_base_url:
        self._public_base_url = f"{emulator_endpoint}/{self._bucket_name}"
    else:
      self._client = storage.Client(project=settings.gcp_project_id)

  @property
  def bucket_name(self) -> str:
    return self._bucket_name

  async def ensure_bucket(self) -> None:
    """Create the artifact bucket when missing in emulator mode."""
    if self._bucket_ready:
      return
    bucket = self._client.bucket(self._bucket_name)

    def _create_if_missing() -> None:
      if not bucket.exists(client=self._client):
        self._client.create_bucket(bucket)

    await run_in_threadpool(_create_if_missing)
    self._bucket_ready = True

  async def upload_bytes(self, data: bytes, object_name: str, content_type: str) -> str:
    await self.ensure_bucket()
    bucket = self._client.bucket(self._bucket_name)
    blob = bucket.blob(object_name)
    blob.cache_control = "public, max-age=3600"
    await run_in_threadpool(blob.upload_from_string, data, content_type)
    return self.public_url(object_name)

  def public_url(self, object_name: str) -> str:
    """Return the public URL of an object in the artifact bucket."""
    if self._public_base_url:
      return f"{self._public_base_url.rstrip('/')}/{quote(object_name)}"
    return f"https://storage.googleapis.com/{self._bucket_name}/{quote(object_name)}"


class MemoryArtifactStore(ArtifactStore):
  """Keeps uploaded artifacts in a dict; used by tests and local runs without GCS."""

  def __init__(self, base_url: str = "memory://outputs") -> None:
    self.base_url = base_url.rstrip("/")
    self.objects: dict[str, tuple[bytes, str]] = {}

  async def upload_bytes(self, data: bytes, object_name: str, content_type: str) -> str:
    self.objects[object_name] = (data, content_type)
    return f"{self.base_url}/{object_name}"


def build_storage_client(settings: Settings) -> StorageClient:
  """Create a storage client instance with environment-aware credentials."""
  return StorageClient(settings)


def _normalize_emulator_endpoint(raw_endpoint: str) -> str:
  """Normalize emulator endpoint so the SDK receives scheme+host+port only."""
  parsed = urlparse(raw_endpoint)
  if not parsed.scheme or not parsed.netloc:
    return raw_endpoint.rstrip("/")
  return urlunparse((parsed.scheme, parsed.netloc, "", "", "", "")).rstrip("/")
