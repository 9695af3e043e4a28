"""OpenAI-compatible chat completions gateway used for text analysis jobs."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from reeljobs.jobs.errors import ProviderCredentialsError, ProviderError
from reeljobs.providers.contracts import InferenceProvider, ProviderHandle, ProviderPoll

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatRequest:
  """A single system + user prompt exchange."""

  system_prompt: str
  user_prompt: str


class ChatGatewayProvider(InferenceProvider):
  """Synchronous provider: ``submit`` waits for the completion and returns a terminal handle."""

  name = "chat-gateway"

  def __init__(self, *, api_key: str | None, base_url: str, model: str, timeout_seconds: float = 60.0, client: AsyncOpenAI | None = None) -> None:
    self._api_key = api_key
    self._base_url = base_url
    self._timeout = timeout_seconds
    self._client = client
    self.model = model

  def _get_client(self) -> AsyncOpenAI:
    if self._client is not None:
      return self._client
    if not self._api_key:
      raise ProviderCredentialsError("LLM_API_KEY not configured")
    # Retries are left to the job-level recovery path.
    self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, timeout=self._timeout, max_retries=0)
    return self._client

  async def submit(self, request: ChatRequest) -> ProviderHandle:
    client = self._get_client()
    try:
      response = await client.chat.completions.create(model=self.model, messages=[{"role": "system", "content": request.system_prompt}, {"role": "user", "content": request.user_prompt}])
    except openai.RateLimitError as exc:
      raise ProviderError("Rate limit exceeded. Please try again in a few moments.") from exc
    except openai.APIStatusError as exc:
      if exc.status_code == 402:
        raise ProviderError("AI credits depleted. Please add credits to the AI gateway workspace.") from exc
      raise ProviderError(f"AI gateway error: {exc.status_code} - {exc.message}") from exc
    except openai.APIConnectionError as exc:
      raise ProviderError(f"AI gateway request failed: {exc}") from exc

    content = response.choices[0].message.content if response.choices else None
    if not content:
      raise ProviderError("No content returned from AI gateway")
    handle_id = str(getattr(response, "id", "") or uuid.uuid4())
    logger.info("Chat completion %s returned %d characters", handle_id, len(content))
    return ProviderHandle(provider=self.name, handle_id=handle_id, initial=ProviderPoll(status="succeeded", result=content))

  async def poll(self, handle: ProviderHandle) -> ProviderPoll:
    return handle.initial
