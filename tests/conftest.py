"""Shared test fixtures and configuration."""

import json
from dataclasses import replace
from typing import Any

import pytest

from memora.clients.base import BaseEmbeddingClient, BaseLLMClient
from memora.exceptions import ProviderUnavailableError
from memora.storage.database import Database
from memora.tools.base import BaseTool
from memora.types import (
    FinishReason,
    MessageRole,
    ToolCall,
    ToolContract,
    ToolResult,
    UnifiedMessage,
    UnifiedResponse,
    UsageStats,
)


def make_response(content: str | None = None, tool_calls: list[ToolCall] | None = None) -> UnifiedResponse:
    """Build an assistant response as a chat client would return it."""
    return UnifiedResponse(
        message=UnifiedMessage(
            role=MessageRole.ASSISTANT,
            content=content,
            tool_calls=tool_calls,
        ),
        finish_reason=FinishReason.TOOL_USE if tool_calls else FinishReason.STOP,
        usage=UsageStats(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


def make_call(call_id: str, name: str, args: dict[str, Any] | str | None = None) -> ToolCall:
    arguments = args if isinstance(args, str) else json.dumps(args or {})
    return ToolCall(id=call_id, name=name, arguments=arguments)


class ScriptedClient(BaseLLMClient):
    """Chat client that replays canned responses and records each request.

    When the script runs out, the last response is repeated.
    """

    def __init__(self, *responses: UnifiedResponse):
        super().__init__()
        self.responses = list(responses)
        self.requests: list[tuple[list[UnifiedMessage], list[ToolContract] | None]] = []

    async def chat(self, messages, tools=None):
        self.requests.append(([replace(m) for m in messages], tools))
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    def _convert_messages(self, messages):
        return messages

    def _convert_tools(self, tools):
        return [tool.to_schema() for tool in tools]

    def _parse_response(self, response):
        return response


class FakeEmbedder(BaseEmbeddingClient):
    """Embedding client with fixed vectors per text.

    Unknown texts get ``default``. With ``fail=True`` every call raises.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        fail: bool = False,
    ):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.fail = fail
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise ProviderUnavailableError("embedding service down")
        return list(self.vectors.get(text, self.default))


class EchoTool(BaseTool):
    """Records its calls and echoes the ``text`` argument."""

    def __init__(self, name: str = "echo"):
        self._name = name
        self.calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Echo the given text"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        }

    async def execute(self, **kwargs: Any) -> ToolResult:
        self.calls.append(kwargs)
        return ToolResult(for_model=f"echo: {kwargs['text']}")


@pytest.fixture
def db(tmp_path) -> Database:
    """A fresh store in a temporary directory."""
    return Database(tmp_path / "memora.db")


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def sample_messages():
    """Create sample conversation messages."""
    return [
        UnifiedMessage(role=MessageRole.SYSTEM, content="You are a helpful assistant."),
        UnifiedMessage(role=MessageRole.USER, content="Hello!"),
        UnifiedMessage(role=MessageRole.ASSISTANT, content="Hi there!"),
    ]
