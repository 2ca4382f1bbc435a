"""centralized configuration management using pydantic settings.

this module provides type-safe, validated configuration for memora.
configuration is loaded from environment variables and optional .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .prompts import SYSTEM_PROMPT

DEFAULT_SYSTEM_PROMPT = SYSTEM_PROMPT


class Settings(BaseSettings):
    """main settings class for memora.

    configuration is loaded from environment variables. a .env file in the
    working directory is also loaded if present.

    attributes:
        openai_api_key: api key for openai (or any openai-compatible endpoint)
        openai_base_url: base url override for openai-compatible providers
        anthropic_api_key: api key for anthropic (claude)
        tavily_api_key: api key for tavily web search
        llm_provider: explicit provider selection (auto-detected if not set)
        llm_model: chat model to use (provider default if not set)
        embedding_model: model used for text embeddings
        db_path: location of the sqlite database
        max_iterations: iteration budget of the agent loop
        max_history: number of non-system messages sent to the model
        memory_top_k: memories injected proactively per turn
        tool_timeout: per-tool timeout in seconds (None disables it)
        request_timeout: timeout in seconds for provider http calls
        log_level: logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: optional file that mirrors log output
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore extra env vars
        populate_by_name=True,
    )

    # api keys for llm providers
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    anthropic_api_key: str | None = None

    # tool api keys
    tavily_api_key: str | None = None

    # llm configuration
    llm_provider: str | None = Field(default=None, alias="LLM_PROVIDER")
    llm_model: str | None = Field(default=None, alias="LLM_MODEL")
    embedding_model: str = Field(default="text-embedding-3-small", alias="MEMORA_EMBEDDING_MODEL")

    # storage
    db_path: Path = Field(
        default_factory=lambda: Path.home() / ".memora" / "memora.db",
        alias="MEMORA_DB_PATH",
    )

    # agent configuration
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, alias="MEMORA_SYSTEM_PROMPT")
    max_iterations: int = Field(default=10, ge=1, alias="MEMORA_MAX_ITERATIONS")
    max_history: int = Field(default=20, ge=1, alias="MEMORA_MAX_HISTORY")
    memory_top_k: int = Field(default=5, ge=1, alias="MEMORA_MEMORY_TOP_K")
    tool_timeout: float | None = Field(default=None, gt=0, alias="MEMORA_TOOL_TIMEOUT")
    request_timeout: float = Field(default=60.0, gt=0, alias="MEMORA_REQUEST_TIMEOUT")
    log_level: str = Field(default="WARNING", alias="MEMORA_LOG_LEVEL")
    log_file: Path | None = Field(default=None, alias="MEMORA_LOG_FILE")

    def detect_provider(self) -> str | None:
        """auto-detect provider based on available api keys.

        openai is preferred because it also serves embeddings.

        returns:
            provider name or None if no keys are set
        """
        if self.llm_provider:
            return self.llm_provider

        if self.openai_api_key:
            return "openai"
        if self.anthropic_api_key:
            return "anthropic"

        return None

    def get_api_key_for_provider(self, provider: str) -> str | None:
        """get the api key for a specific provider.

        args:
            provider: provider name (openai, anthropic)

        returns:
            api key or None if not set
        """
        key_map = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }
        return key_map.get(provider)


@lru_cache
def get_settings() -> Settings:
    """get the singleton settings instance.

    uses lru_cache to ensure only one instance is created.
    call get_settings.cache_clear() to reload settings if needed.

    returns:
        the settings instance
    """
    return Settings()
