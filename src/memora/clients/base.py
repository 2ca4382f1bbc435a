"""Base classes for LLM and embedding clients.

All chat provider clients inherit from BaseLLMClient and implement the
normalization methods to convert between provider-specific formats and the
unified types. Embedding providers implement BaseEmbeddingClient.
"""

import asyncio
import functools
import random
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, TypeVar

from ..exceptions import ProviderUnavailableError, RateLimitError
from ..logging import get_logger
from ..types import ToolContract, UnifiedMessage, UnifiedResponse

logger = get_logger(__name__)

T = TypeVar("T")


def with_retry(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator for retrying async API calls with exponential backoff.

    Retries on RateLimitError and ProviderUnavailableError. Other exceptions
    are raised immediately.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        initial_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Whether to add random jitter to delay (default: True)

    Returns:
        Decorated coroutine function with retry logic.

    Example:
        @with_retry(max_retries=3, initial_delay=1.0)
        async def make_api_call():
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except (RateLimitError, ProviderUnavailableError) as e:
                    if attempt == max_retries:
                        logger.warning(
                            f"max retries ({max_retries}) exceeded for {func.__name__}: {e}"
                        )
                        raise

                    actual_delay = min(delay, max_delay)
                    if jitter:
                        actual_delay *= (0.5 + random.random())

                    logger.info(
                        f"retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {actual_delay:.1f}s: {e}"
                    )
                    await asyncio.sleep(actual_delay)
                    delay *= exponential_base

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper
    return decorator


class BaseLLMClient(ABC):
    """Abstract base class for all chat providers.

    Each client is responsible for:
    1. Converting UnifiedMessage list to provider format (images included)
    2. Converting tool contracts to provider format
    3. Making API calls
    4. Converting responses back to UnifiedResponse

    The agent only interacts with unified types - all provider-specific
    handling is encapsulated within each client implementation.
    """

    def __init__(self, client_config: dict | None = None):
        """Initialize the client.

        Args:
            client_config: Optional dictionary of configuration parameters
                           (e.g. temperature, max_tokens, etc.)
        """
        self.client_config = client_config or {}

    @abstractmethod
    async def chat(
        self,
        messages: list[UnifiedMessage],
        tools: list[ToolContract] | None = None,
    ) -> UnifiedResponse:
        """Request the next assistant turn.

        Args:
            messages: Conversation in unified format
            tools: Tool catalog; the provider's tool parameter is omitted
                   entirely when this is empty

        Returns:
            UnifiedResponse whose message may request tool calls

        Raises:
            ClientError: On authentication, rate-limit, network or parse failures
        """

    @abstractmethod
    def _convert_messages(self, messages: list[UnifiedMessage]) -> Any:
        """Convert unified messages to provider-specific format.

        Each provider has different message formats:
        - OpenAI-compatible: list of dicts with role/content/tool_calls
        - Anthropic: system separated, content blocks for tools and images
        """

    @abstractmethod
    def _convert_tools(self, tools: list[ToolContract]) -> list[dict[str, Any]]:
        """Convert tool contracts to provider-specific format.

        - OpenAI-compatible: {type: "function", function: {name, description, parameters}}
        - Anthropic: {name, description, input_schema}
        """

    @abstractmethod
    def _parse_response(self, response: Any) -> UnifiedResponse:
        """Parse provider response into unified format."""


class BaseEmbeddingClient(ABC):
    """Abstract base class for embedding providers.

    A deployment uses a single embedding model, so every vector it produces
    has the same dimensionality.
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Turn text into a fixed-length vector.

        Raises:
            ClientError: On provider failures
        """
