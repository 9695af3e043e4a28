import json

import httpx
import pytest

from reeljobs.jobs.errors import ProviderCredentialsError, ProviderError, ProviderTransientError
from reeljobs.providers.contracts import ProviderHandle, ProviderPoll
from reeljobs.providers.replicate import ReplicateProvider, ReplicateRequest, first_output_url


def _provider(handler) -> ReplicateProvider:
  return ReplicateProvider(api_key="r8-test", base_url="https://replicate.test/v1", transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_submit_with_version_posts_to_predictions():
  seen = {}

  def handler(request: httpx.Request) -> httpx.Response:
    seen["path"] = request.url.path
    seen["auth"] = request.headers["authorization"]
    seen["body"] = json.loads(request.content)
    return httpx.Response(201, json={"id": "pred-1", "status": "starting"})

  handle = await _provider(handler).submit(ReplicateRequest(model="tencentarc/gfpgan:abc123", input={"img": "https://x/a.png"}))

  assert seen["path"] == "/v1/predictions"
  assert seen["auth"] == "Token r8-test"
  assert seen["body"] == {"version": "abc123", "input": {"img": "https://x/a.png"}}
  assert handle.handle_id == "pred-1"
  assert handle.initial == ProviderPoll(status="queued")


@pytest.mark.anyio
async def test_submit_official_model_uses_model_endpoint():
  seen = {}

  def handler(request: httpx.Request) -> httpx.Response:
    seen["path"] = request.url.path
    seen["body"] = json.loads(request.content)
    return httpx.Response(201, json={"id": "pred-2", "status": "processing"})

  handle = await _provider(handler).submit(ReplicateRequest(model="acme/cleaner", input={"input_audio": "u"}))

  assert seen["path"] == "/v1/models/acme/cleaner/predictions"
  assert "version" not in seen["body"]
  assert handle.initial.status == "running"


@pytest.mark.anyio
async def test_submit_error_is_not_retried():
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(422, json={"detail": "invalid input"})

  with pytest.raises(ProviderError, match="Replicate API error: 422"):
    await _provider(handler).submit(ReplicateRequest(model="a" * 64))


@pytest.mark.anyio
async def test_missing_api_key_raises_credentials_error():
  provider = ReplicateProvider(api_key=None)
  with pytest.raises(ProviderCredentialsError, match="REPLICATE_API_KEY"):
    await provider.submit(ReplicateRequest(model="a" * 64))


@pytest.mark.anyio
@pytest.mark.parametrize("status_code", [429, 500, 503])
async def test_poll_server_errors_are_transient(status_code):
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(status_code, text="busy")

  with pytest.raises(ProviderTransientError):
    await _provider(handler).poll(ProviderHandle(provider="replicate", handle_id="pred-1", initial=ProviderPoll(status="queued")))


@pytest.mark.anyio
async def test_poll_client_errors_are_fatal():
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, text="not found")

  with pytest.raises(ProviderError) as excinfo:
    await _provider(handler).poll(ProviderHandle(provider="replicate", handle_id="pred-1", initial=ProviderPoll(status="queued")))
  assert not isinstance(excinfo.value, ProviderTransientError)


@pytest.mark.anyio
async def test_poll_maps_failed_prediction_with_message():
  def handler(request: httpx.Request) -> httpx.Response:
    assert request.url.path == "/v1/predictions/pred-9"
    return httpx.Response(200, json={"id": "pred-9", "status": "failed", "error": "CUDA out of memory"})

  poll = await _provider(handler).poll(ProviderHandle(provider="replicate", handle_id="pred-9", initial=ProviderPoll(status="queued")))

  assert poll.status == "failed"
  assert poll.error == "CUDA out of memory"
  assert poll.is_terminal


@pytest.mark.anyio
async def test_non_json_replies_become_provider_errors():
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html>upstream maintenance</html>")

  provider = _provider(handler)
  with pytest.raises(ProviderError, match="Replicate returned malformed JSON: <html>upstream maintenance"):
    await provider.submit(ReplicateRequest(model="tencentarc/gfpgan:abc123", input={}))
  with pytest.raises(ProviderError, match="malformed JSON") as excinfo:
    await provider.poll(ProviderHandle(provider="replicate", handle_id="pred-1", initial=ProviderPoll(status="queued")))
  assert not isinstance(excinfo.value, ProviderTransientError)


def test_first_output_url_handles_known_shapes():
  assert first_output_url("https://x/out.mp4") == "https://x/out.mp4"
  assert first_output_url(["", "https://x/a.png"]) == "https://x/a.png"
  assert first_output_url({"model": "https://x/m.glb"}) == "https://x/m.glb"
  assert first_output_url({"video": ["https://x/v.mp4"]}) == "https://x/v.mp4"
  assert first_output_url(None) is None
  assert first_output_url({}) is None
