"""Factory for creating chat and embedding clients.

This module provides a centralized way to create clients based on provider
name, using a registry pattern that makes it easy to add new providers.
"""

import importlib
import os
from typing import Any

from .base import BaseEmbeddingClient, BaseLLMClient

# registry of provider configurations
_PROVIDER_REGISTRY: dict[str, dict[str, Any]] = {
    "openai": {
        "class_path": "memora.clients.openai.OpenAIClient",
        "embedding_class_path": "memora.clients.openai.OpenAIEmbeddingClient",
        "api_key_env": "OPENAI_API_KEY",
        "default_model": "gpt-4o-mini",
        "supports_base_url": True,
    },
    "anthropic": {
        "class_path": "memora.clients.anthropic.AnthropicClient",
        "embedding_class_path": None,
        "api_key_env": "ANTHROPIC_API_KEY",
        "default_model": "claude-sonnet-4-5-20250929",
        "supports_base_url": False,
    },
}


def get_available_providers() -> list[str]:
    """Get list of available provider names."""
    return list(_PROVIDER_REGISTRY.keys())


def get_default_model(provider: str) -> str:
    """Get the default model for a provider.

    Raises:
        ValueError: If provider is unknown.
    """
    return _get_config(provider)["default_model"]


def _get_config(provider: str) -> dict[str, Any]:
    if provider not in _PROVIDER_REGISTRY:
        raise ValueError(f"Unknown provider: {provider}. Available: {get_available_providers()}")
    return _PROVIDER_REGISTRY[provider]


def _resolve_key(config: dict[str, Any], api_key: str | None) -> str:
    resolved_key = api_key or os.getenv(config["api_key_env"])
    if not resolved_key:
        raise ValueError(f"{config['api_key_env']} not set in environment")
    return resolved_key


def create_client(
    provider: str,
    model: str | None = None,
    client_config: dict | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
    timeout: float | None = None,
) -> BaseLLMClient:
    """Create a chat client for the specified provider.

    Args:
        provider: The provider name (openai, anthropic).
        model: Optional model override. If not provided, uses provider default.
        client_config: Optional configuration dict for the client.
        api_key: Optional API key. If not provided, reads from environment.
        base_url: Endpoint override (OpenAI-compatible providers only).
        timeout: Request timeout in seconds.

    Returns:
        An initialized chat client instance.

    Raises:
        ValueError: If provider is unknown or API key is not available.
    """
    config = _get_config(provider)
    kwargs: dict[str, Any] = {
        "api_key": _resolve_key(config, api_key),
        "model": model or config["default_model"],
        "client_config": client_config,
        "timeout": timeout,
    }
    if config["supports_base_url"]:
        kwargs["base_url"] = base_url

    client_class = _import_class(config["class_path"])
    return client_class(**kwargs)


def create_embedding_client(
    provider: str,
    model: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
    timeout: float | None = None,
) -> BaseEmbeddingClient | None:
    """Create an embedding client, or None if the provider has no embeddings.

    Raises:
        ValueError: If provider is unknown or API key is not available.
    """
    config = _get_config(provider)
    if not config["embedding_class_path"]:
        return None

    kwargs: dict[str, Any] = {"api_key": _resolve_key(config, api_key), "timeout": timeout}
    if model:
        kwargs["model"] = model
    if config["supports_base_url"]:
        kwargs["base_url"] = base_url

    client_class = _import_class(config["embedding_class_path"])
    return client_class(**kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its dotted path.

    Imported lazily so a provider's SDK is only loaded when it is used.
    """
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
