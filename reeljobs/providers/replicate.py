"""Replicate predictions API provider used by the media transformation handlers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from reeljobs.jobs.errors import ProviderCredentialsError, ProviderError, ProviderTransientError
from reeljobs.providers.contracts import InferenceProvider, ProviderHandle, ProviderPoll, ProviderStatus

logger = logging.getLogger(__name__)

_VERSION_ID_RE = re.compile(r"^[0-9a-f]{64}$")

_STATUS_MAP: dict[str, ProviderStatus] = {"starting": "queued", "processing": "running", "succeeded": "succeeded", "failed": "failed", "canceled": "canceled"}

_TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class ReplicateRequest:
  """One prediction request.

  ``model`` is either a bare 64-hex version id, ``owner/name:version``, or ``owner/name``
  for official models that are addressed without a version.
  """

  model: str
  input: dict[str, Any] = field(default_factory=dict)


def _prediction_target(model: str) -> tuple[str, dict[str, Any]]:
  """Return the endpoint path and the extra body fields for a model reference."""
  if ":" in model:
    return "/predictions", {"version": model.split(":", 1)[1]}
  if _VERSION_ID_RE.fullmatch(model):
    return "/predictions", {"version": model}
  return f"/models/{model}/predictions", {}


def _to_poll(payload: dict[str, Any]) -> ProviderPoll:
  raw_status = str(payload.get("status") or "")
  status = _STATUS_MAP.get(raw_status)
  if status is None:
    raise ProviderError(f"Replicate returned an unknown prediction status: {raw_status!r}")
  error = payload.get("error")
  return ProviderPoll(status=status, result=payload.get("output"), error=str(error) if error else None)


class ReplicateProvider(InferenceProvider):
  """Thin async client over the Replicate predictions endpoints."""

  name = "replicate"

  def __init__(self, *, api_key: str | None, base_url: str = "https://api.replicate.com/v1", timeout_seconds: float = 60.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._api_key = api_key
    self._base_url = base_url.rstrip("/")
    self._timeout = timeout_seconds
    self._transport = transport

  def _client(self) -> httpx.AsyncClient:
    if not self._api_key:
      raise ProviderCredentialsError("REPLICATE_API_KEY not configured")
    headers = {"Authorization": f"Token {self._api_key}", "Content-Type": "application/json"}
    return httpx.AsyncClient(base_url=self._base_url, headers=headers, timeout=self._timeout, transport=self._transport, trust_env=False)

  async def submit(self, request: ReplicateRequest) -> ProviderHandle:
    path, body = _prediction_target(request.model)
    body["input"] = request.input
    async with self._client() as client:
      try:
        response = await client.post(path, json=body)
      except httpx.RequestError as exc:
        raise ProviderError(f"Replicate request failed: {exc}") from exc
    if response.status_code >= 400:
      raise ProviderError(f"Replicate API error: {response.status_code} {response.text}")
    payload = _json_body(response)
    prediction_id = str(payload.get("id") or "")
    if not prediction_id:
      raise ProviderError(f"Replicate API error: prediction id missing in response {payload}")
    logger.info("Created Replicate prediction %s for model %s", prediction_id, request.model)
    return ProviderHandle(provider=self.name, handle_id=prediction_id, initial=_to_poll(payload))

  async def poll(self, handle: ProviderHandle) -> ProviderPoll:
    async with self._client() as client:
      try:
        response = await client.get(f"/predictions/{handle.handle_id}")
      except httpx.RequestError as exc:
        raise ProviderTransientError(f"Replicate poll failed: {exc}") from exc
    if response.status_code in _TRANSIENT_STATUS_CODES:
      raise ProviderTransientError(f"Replicate poll returned {response.status_code}")
    if response.status_code >= 400:
      raise ProviderError(f"Replicate API error: {response.status_code} {response.text}")
    return _to_poll(_json_body(response))


def first_output_url(output: Any) -> str | None:
  """Pull a file URL out of the output shapes Replicate models return."""
  if isinstance(output, str):
    return output or None
  if isinstance(output, list):
    for item in output:
      url = first_output_url(item)
      if url:
        return url
    return None
  if isinstance(output, dict):
    for key in ("model", "output", "url", "mesh", "audio", "image", "video"):
      url = first_output_url(output.get(key))
      if url:
        return url
  return None


def _json_body(response: httpx.Response) -> dict[str, Any]:
  try:
    payload = response.json()
  except ValueError as exc:
    raise ProviderError(f"Replicate returned malformed JSON: {response.text[:200]}") from exc
  if not isinstance(payload, dict):
    raise ProviderError(f"Replicate returned malformed JSON: {response.text[:200]}")
  return payload
