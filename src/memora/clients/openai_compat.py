"""Base class for OpenAI-compatible API clients.

This class provides shared implementation for providers that use the
OpenAI-compatible chat format (OpenAI, Groq, Together, Ollama, etc.).
"""

from abc import abstractmethod
from typing import Any, AsyncContextManager

from ..exceptions import InvalidResponseError
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


def image_data_url(image: str, mime_type: str = "image/jpeg") -> str:
    """Wrap a base64 image as a data URL, leaving existing URLs untouched."""
    if image.startswith(("data:", "http://", "https://")):
        return image
    return f"data:{mime_type};base64,{image}"


class OpenAICompatibleClient(BaseLLMClient):
    """Base class for clients using the OpenAI-compatible API format.

    Subclasses must implement:
    - _create_client(): initialize the async provider SDK client
    - _get_supported_config_keys(): return set of supported config parameters
    - _get_default_api_args(): return provider-specific default arguments
    - _handle_api_errors(): async context manager for exception mapping
    """

    def __init__(
        self,
        api_key: str | None,
        model: str,
        client_config: dict | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: API key for the provider
            model: Model name to use
            client_config: Optional configuration parameters
            base_url: Endpoint override for non-OpenAI providers
            timeout: Request timeout in seconds
        """
        super().__init__(client_config)
        self.model = model
        self.client = self._create_client(api_key, base_url=base_url, timeout=timeout)

    @abstractmethod
    def _create_client(
        self,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Create the provider's async SDK client instance."""

    @abstractmethod
    def _get_supported_config_keys(self) -> set[str]:
        """Return the set of config keys supported by this provider."""

    @abstractmethod
    def _get_default_api_args(self) -> dict[str, Any]:
        """Return provider-specific default API arguments."""

    @abstractmethod
    def _handle_api_errors(self) -> AsyncContextManager[None]:
        """Async context manager mapping provider exceptions to ours:
        AuthenticationError, RateLimitError, ProviderUnavailableError.
        """

    # ==================== shared implementations ====================

    @with_retry(max_retries=2)
    async def chat(
        self,
        messages: list[UnifiedMessage],
        tools: list[ToolContract] | None = None,
    ) -> UnifiedResponse:
        """Request the next assistant turn from the provider.

        Raises:
            AuthenticationError: If API key is invalid
            RateLimitError: If rate limit is exceeded
            ProviderUnavailableError: If API is unavailable
            InvalidResponseError: If the response cannot be parsed
        """
        api_args: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            **self._get_default_api_args(),
        }

        # the tools parameter is left out entirely when nothing is registered
        if tools:
            api_args["tools"] = self._convert_tools(tools)
            api_args["tool_choice"] = "auto"

        if self.client_config:
            supported_keys = self._get_supported_config_keys()
            for key, value in self.client_config.items():
                if key in supported_keys:
                    api_args[key] = value

        async with self._handle_api_errors():
            response = await self.client.chat.completions.create(**api_args)
        return self._parse_response(response)

    def _convert_messages(self, messages: list[UnifiedMessage]) -> list[dict[str, Any]]:
        """Convert unified messages to OpenAI-compatible format."""
        return [self._convert_message(msg) for msg in messages]

    def _convert_message(self, message: UnifiedMessage) -> dict[str, Any]:
        """Convert a single unified message to OpenAI-compatible format."""
        if message.role == MessageRole.SYSTEM:
            return {"role": "system", "content": message.content}
        if message.role == MessageRole.USER:
            return {"role": "user", "content": self._convert_content(message)}
        if message.role == MessageRole.ASSISTANT:
            return self._convert_assistant_message(message)
        if message.role == MessageRole.TOOL:
            return {
                "role": "tool",
                "tool_call_id": message.tool_call_id,
                "content": self._convert_content(message),
            }
        return {"role": "user", "content": str(message.content)}

    def _convert_content(self, message: UnifiedMessage) -> str | list[dict[str, Any]] | None:
        """Plain text, or typed text + image blocks when images are attached."""
        if not message.images:
            return message.content

        blocks: list[dict[str, Any]] = []
        if message.content:
            blocks.append({"type": "text", "text": message.content})
        for image in message.images:
            blocks.append({
                "type": "image_url",
                "image_url": {"url": image_data_url(image)},
            })
        return blocks

    def _convert_assistant_message(self, message: UnifiedMessage) -> dict[str, Any]:
        """Convert assistant message handling tool calls."""
        entry: dict[str, Any] = {"role": "assistant", "content": message.content}
        if message.tool_calls:
            entry["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": tc.arguments,
                    },
                }
                for tc in message.tool_calls
            ]
        return entry

    def _map_finish_reason(self, reason: str | None) -> FinishReason:
        """Map OpenAI-compatible finish reason to unified FinishReason."""
        if not reason:
            return FinishReason.STOP
        mapping = {
            "stop": FinishReason.STOP,
            "tool_calls": FinishReason.TOOL_USE,
            "length": FinishReason.LENGTH,
        }
        return mapping.get(reason, FinishReason.STOP)

    def _convert_tools(self, tools: list[ToolContract]) -> list[dict[str, Any]]:
        """Convert tool contracts to OpenAI-compatible function format."""
        return [tool.to_schema() for tool in tools]

    def _parse_response(self, response: Any) -> UnifiedResponse:
        """Parse OpenAI-compatible response into unified format.

        Tool call arguments stay as the raw JSON string.
        """
        try:
            choice = response.choices[0]
            message = choice.message

            tool_calls = None
            if message.tool_calls:
                tool_calls = [
                    ToolCall(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=tc.function.arguments or "{}",
                    )
                    for tc in message.tool_calls
                ]

            usage = None
            if getattr(response, "usage", None):
                usage = UsageStats(
                    prompt_tokens=response.usage.prompt_tokens,
                    completion_tokens=response.usage.completion_tokens,
                    total_tokens=response.usage.total_tokens,
                )

            return UnifiedResponse(
                message=UnifiedMessage(
                    role=MessageRole.ASSISTANT,
                    content=message.content,
                    tool_calls=tool_calls,
                ),
                finish_reason=self._map_finish_reason(choice.finish_reason),
                usage=usage,
            )
        except Exception as e:
            raise InvalidResponseError(
                f"Failed to parse {self.__class__.__name__} response: {e}"
            ) from e

