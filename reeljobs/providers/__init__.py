"""Provider implementations."""

from reeljobs.providers.chat_gateway import ChatGatewayProvider, ChatRequest
from reeljobs.providers.contracts import InferenceProvider, ProviderHandle, ProviderPoll
from reeljobs.providers.replicate import ReplicateProvider, ReplicateRequest

__all__ = ["ChatGatewayProvider", "ChatRequest", "InferenceProvider", "ProviderHandle", "ProviderPoll", "ReplicateProvider", "ReplicateRequest"]
