"""OpenAI client implementations.

OpenAIClient talks to the chat completions endpoint of OpenAI or any
OpenAI-compatible server (Groq, Together, Ollama) via ``base_url``.
OpenAIEmbeddingClient produces text embeddings for semantic memory.
"""

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from openai import APIConnectionError, APIError, AsyncOpenAI, InternalServerError, NotFoundError
from openai import AuthenticationError as OpenAIAuthError
from openai import RateLimitError as OpenAIRateLimitError

from ..exceptions import (
    AuthenticationError,
    ClientError,
    InvalidResponseError,
    ModelNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
)
from .base import BaseEmbeddingClient, with_retry
from .openai_compat import OpenAICompatibleClient

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


def _create_async_openai(
    api_key: str | None,
    base_url: str | None = None,
    timeout: float | None = None,
) -> AsyncOpenAI:
    kwargs: dict[str, Any] = {"api_key": api_key or os.environ.get("OPENAI_API_KEY")}
    if base_url:
        kwargs["base_url"] = base_url
    if timeout:
        kwargs["timeout"] = timeout
    return AsyncOpenAI(**kwargs)


@asynccontextmanager
async def _map_openai_errors(model: str) -> AsyncIterator[None]:
    """Translate OpenAI SDK errors into Memora client errors."""
    try:
        yield
    except OpenAIAuthError as e:
        raise AuthenticationError(f"OpenAI authentication failed: {e}") from e
    except OpenAIRateLimitError as e:
        raise RateLimitError("OpenAI rate limit exceeded") from e
    except NotFoundError as e:
        raise ModelNotFoundError(model) from e
    except (APIConnectionError, InternalServerError) as e:
        # APITimeoutError is an APIConnectionError
        raise ProviderUnavailableError(f"OpenAI API unavailable: {e}") from e
    except APIError as e:
        raise ClientError(f"OpenAI request failed: {e}") from e


class OpenAIClient(OpenAICompatibleClient):
    """OpenAI chat client with unified response handling."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        client_config: dict | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            model: Model to use. Defaults to gpt-4o-mini.
            client_config: Optional dictionary of configuration parameters.
            base_url: Endpoint override, e.g. http://localhost:11434/v1 for Ollama.
            timeout: Request timeout in seconds.
        """
        super().__init__(api_key, model, client_config, base_url=base_url, timeout=timeout)

    def _create_client(
        self,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> AsyncOpenAI:
        return _create_async_openai(api_key, base_url, timeout)

    def _get_supported_config_keys(self) -> set[str]:
        return {
            "temperature",
            "top_p",
            "max_tokens",
            "stop",
            "reasoning_effort",
            "presence_penalty",
            "frequency_penalty",
        }

    def _get_default_api_args(self) -> dict[str, Any]:
        return {}  # OpenAI uses API defaults

    def _handle_api_errors(self):
        return _map_openai_errors(self.model)


class OpenAIEmbeddingClient(BaseEmbeddingClient):
    """Embeddings through the OpenAI-compatible /embeddings endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_EMBEDDING_MODEL,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.model = model
        self.client = _create_async_openai(api_key, base_url, timeout)

    @with_retry(max_retries=2)
    async def embed(self, text: str) -> list[float]:
        async with _map_openai_errors(self.model):
            response = await self.client.embeddings.create(model=self.model, input=text)
        try:
            return list(response.data[0].embedding)
        except (AttributeError, IndexError, TypeError) as e:
            raise InvalidResponseError(f"Failed to parse embedding response: {e}") from e
