"""Anthropic client implementation.

This client handles communication with the Anthropic API (Claude models)
and normalizes responses to the unified format.

Anthropic has unique requirements:
- System prompt is passed separately, not in messages
- Tool calls use content blocks with type "tool_use" and a parsed input dict
- Tool results go in user messages with type "tool_result"; results of one
  assistant turn are grouped into a single user message
- Images are "image" blocks with a base64 source
"""

import json
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from anthropic import APIConnectionError, APIError, AsyncAnthropic, InternalServerError
from anthropic import AuthenticationError as AnthropicAuthError
from anthropic import NotFoundError as AnthropicNotFoundError
from anthropic import RateLimitError as AnthropicRateLimitError

from ..exceptions import (
    AuthenticationError,
    ClientError,
    InvalidResponseError,
    ModelNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
)
from ..logging import get_logger
from ..types import (
    FinishReason,
    MessageRole,
    ToolCall,
    ToolContract,
    UnifiedMessage,
    UnifiedResponse,
    UsageStats,
)
from .base import BaseLLMClient, with_retry

logger = get_logger(__name__)

# supported configuration keys for anthropic
SUPPORTED_CONFIG_KEYS = {
    "temperature",
    "top_p",
    "top_k",
    "max_tokens",
    "stop_sequences",
    "tool_choice",
}


def _image_block(image: str) -> dict[str, Any]:
    media_type = "image/jpeg"
    data = image
    if image.startswith("data:") and ";base64," in image:
        header, data = image.split(";base64,", 1)
        media_type = header[len("data:"):] or media_type
    return {
        "type": "image",
        "source": {"type": "base64", "media_type": media_type, "data": data},
    }


class AnthropicClient(BaseLLMClient):
    """Anthropic API client with unified response handling.

    Anthropic does not serve embeddings; pair it with an
    OpenAIEmbeddingClient when semantic memory is wanted.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-5-20250929",
        client_config: dict | None = None,
        timeout: float | None = None,
    ):
        """Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY env var.
            model: Model to use. Defaults to Claude Sonnet 4.5.
            client_config: Optional configuration parameters:
                - temperature, top_p, top_k: sampling parameters
                - max_tokens: int (default 4096)
                - stop_sequences: list[str]
                - tool_choice: dict (e.g., {"type": "auto"})
            timeout: Request timeout in seconds.
        """
        super().__init__(client_config)
        kwargs: dict[str, Any] = {"api_key": api_key or os.environ.get("ANTHROPIC_API_KEY")}
        if timeout:
            kwargs["timeout"] = timeout
        self.client = AsyncAnthropic(**kwargs)
        self.model = model
        self._validate_config()

    def _validate_config(self) -> None:
        """Validate the client configuration."""
        unsupported = set(self.client_config.keys()) - SUPPORTED_CONFIG_KEYS
        if unsupported:
            raise ValueError(f"Unsupported config keys for Anthropic: {unsupported}")

    @asynccontextmanager
    async def _handle_api_errors(self) -> AsyncIterator[None]:
        try:
            yield
        except AnthropicAuthError as e:
            raise AuthenticationError(f"Anthropic authentication failed: {e}") from e
        except AnthropicRateLimitError as e:
            raise RateLimitError("Anthropic rate limit exceeded") from e
        except AnthropicNotFoundError as e:
            raise ModelNotFoundError(self.model) from e
        except (APIConnectionError, InternalServerError) as e:
            raise ProviderUnavailableError(f"Anthropic API unavailable: {e}") from e
        except APIError as e:
            raise ClientError(f"Anthropic request failed: {e}") from e

    @with_retry(max_retries=2)
    async def chat(
        self,
        messages: list[UnifiedMessage],
        tools: list[ToolContract] | None = None,
    ) -> UnifiedResponse:
        """Request the next assistant turn from Anthropic.

        Raises:
            AuthenticationError: If API key is invalid
            RateLimitError: If rate limit is exceeded
            ProviderUnavailableError: If API is unavailable
        """
        system_prompt, converted_messages = self._convert_messages(messages)
        converted_tools = self._convert_tools(tools) if tools else None
        kwargs = self._build_api_kwargs(system_prompt, converted_messages, converted_tools)

        async with self._handle_api_errors():
            response = await self.client.messages.create(**kwargs)
        return self._parse_response(response)

    def _build_api_kwargs(
        self,
        system_prompt: str | None,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
    ) -> dict[str, Any]:
        config = self.client_config

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": config.get("max_tokens", 4096),
        }

        if system_prompt:
            kwargs["system"] = system_prompt
        if tools:
            kwargs["tools"] = tools
            if "tool_choice" in config:
                kwargs["tool_choice"] = config["tool_choice"]

        for key in ("temperature", "top_p", "top_k", "stop_sequences"):
            if key in config:
                kwargs[key] = config[key]

        return kwargs

    def _convert_messages(
        self, messages: list[UnifiedMessage]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Convert unified messages to Anthropic format."""
        system_prompt = None
        converted: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_prompt = msg.content

            elif msg.role == MessageRole.USER:
                converted.append({"role": "user", "content": self._user_content(msg)})

            elif msg.role == MessageRole.ASSISTANT:
                content: list[dict[str, Any]] = []
                if msg.content:
                    content.append({"type": "text", "text": msg.content})
                for tc in msg.tool_calls or []:
                    content.append({
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.name,
                        "input": self._tool_input(tc),
                    })
                converted.append({"role": "assistant", "content": content})

            elif msg.role == MessageRole.TOOL:
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": self._tool_result_content(msg),
                }
                previous = converted[-1] if converted else None
                if (
                    previous
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and previous["content"]
                    and previous["content"][0].get("type") == "tool_result"
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})

        return system_prompt, converted

    def _user_content(self, msg: UnifiedMessage) -> str | list[dict[str, Any]]:
        if not msg.images:
            return msg.content or ""
        blocks = [_image_block(image) for image in msg.images]
        if msg.content:
            blocks.append({"type": "text", "text": msg.content})
        return blocks

    def _tool_result_content(self, msg: UnifiedMessage) -> str | list[dict[str, Any]]:
        if not msg.images:
            return msg.content or ""
        blocks: list[dict[str, Any]] = []
        if msg.content:
            blocks.append({"type": "text", "text": msg.content})
        blocks.extend(_image_block(image) for image in msg.images)
        return blocks

    def _tool_input(self, tc: ToolCall) -> dict[str, Any]:
        try:
            parsed = json.loads(tc.arguments or "{}")
        except json.JSONDecodeError:
            logger.debug(f"sending empty input for malformed arguments of {tc.name}")
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def _convert_tools(self, tools: list[ToolContract]) -> list[dict[str, Any]]:
        """Convert tool contracts to Anthropic format with input_schema."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters,
            }
            for tool in tools
        ]

    def _parse_response(self, response: Any) -> UnifiedResponse:
        """Parse Anthropic response into unified format."""
        try:
            tool_calls = []
            text_content = ""

            for block in response.content:
                if block.type == "text":
                    text_content += block.text
                elif block.type == "tool_use":
                    tool_calls.append(ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments=json.dumps(block.input),
                    ))

            finish_map = {
                "end_turn": FinishReason.STOP,
                "tool_use": FinishReason.TOOL_USE,
                "max_tokens": FinishReason.LENGTH,
            }

            return UnifiedResponse(
                message=UnifiedMessage(
                    role=MessageRole.ASSISTANT,
                    content=text_content if text_content else None,
                    tool_calls=tool_calls if tool_calls else None,
                ),
                finish_reason=finish_map.get(response.stop_reason, FinishReason.STOP),
                usage=UsageStats(
                    prompt_tokens=response.usage.input_tokens,
                    completion_tokens=response.usage.output_tokens,
                    total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                ),
            )
        except Exception as e:
            raise InvalidResponseError(f"Failed to parse Anthropic response: {e}") from e
