"""Chat and embedding client implementations.

All chat clients implement the BaseLLMClient interface and normalize
provider-specific responses to unified types.
"""

from .anthropic import AnthropicClient
from .base import BaseEmbeddingClient, BaseLLMClient, with_retry
from .factory import create_client, create_embedding_client, get_available_providers
from .openai import OpenAIClient, OpenAIEmbeddingClient
from .openai_compat import OpenAICompatibleClient

__all__ = [
    "BaseLLMClient",
    "BaseEmbeddingClient",
    "OpenAICompatibleClient",
    "OpenAIClient",
    "OpenAIEmbeddingClient",
    "AnthropicClient",
    "create_client",
    "create_embedding_client",
    "get_available_providers",
    "with_retry",
]
