"""Unified types for the Memora agent.

These types provide a provider-agnostic interface for LLM interactions.
All clients convert their provider-specific formats to/from these types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MessageRole(Enum):
    """Role of a message in the conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FinishReason(Enum):
    """Reason why the model stopped generating."""
    STOP = "stop"
    TOOL_USE = "tool_use"
    LENGTH = "length"
    ERROR = "error"


@dataclass
class ToolCall:
    """A tool call requested by the model.

    The arguments are kept as the raw JSON string the model produced.
    Parsing happens in the agent loop so a malformed payload can be
    reported for that single call.
    """
    id: str
    name: str
    arguments: str = "{}"


@dataclass
class UsageStats:
    """Token usage statistics."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class UnifiedMessage:
    """A message in the conversation history.

    This is the canonical message format used throughout the agent.
    Each LLM client converts to/from this format internally.

    Attributes:
        role: The role of the message sender
        content: Text content of the message (optional for tool calls)
        tool_calls: List of tool calls (only for assistant messages)
        tool_call_id: ID of the tool call this message responds to (only for tool role)
        name: Name of the tool (only for tool role)
        images: Base64-encoded images attached to user or tool messages
    """
    role: MessageRole
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    images: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary representation."""
        result: dict[str, Any] = {"role": self.role.value}
        if self.content is not None:
            result["content"] = self.content
        if self.tool_calls:
            result["tool_calls"] = [
                {"id": tc.id, "name": tc.name, "arguments": tc.arguments}
                for tc in self.tool_calls
            ]
        if self.tool_call_id is not None:
            result["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            result["name"] = self.name
        if self.images:
            result["images"] = list(self.images)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnifiedMessage":
        """Build a message from the dictionary produced by to_dict()."""
        tool_calls = None
        if data.get("tool_calls"):
            tool_calls = [
                ToolCall(id=tc["id"], name=tc["name"], arguments=tc.get("arguments", "{}"))
                for tc in data["tool_calls"]
            ]
        return cls(
            role=MessageRole(data["role"]),
            content=data.get("content"),
            tool_calls=tool_calls,
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
            images=data.get("images") or None,
        )


@dataclass
class UnifiedResponse:
    """Response from an LLM provider.

    Attributes:
        message: The assistant's response message
        finish_reason: Why the model stopped generating
        usage: Token usage statistics (optional)
    """
    message: UnifiedMessage
    finish_reason: FinishReason
    usage: UsageStats | None = None


# ==================== tool types ====================


@dataclass
class ToolContract:
    """Declarative description of a tool, handed to the model each turn.

    Attributes:
        name: Unique tool name
        description: Human-readable description for the model
        parameters: JSON schema object (properties, required, types)
    """
    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required", []))

    @property
    def properties(self) -> dict[str, Any]:
        return dict(self.parameters.get("properties", {}))

    def to_schema(self) -> dict[str, Any]:
        """Return the tool schema for LLM function calling."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ErrorInfo:
    """Structured description of a tool failure."""
    type: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        return cls(type=type(exc).__name__, message=str(exc))


@dataclass
class ToolResult:
    """Result of a tool execution.

    Attributes:
        for_model: Text fed back into the conversation history
        for_user: Optional short text meant for a presentation layer
        silent: Hint that the presentation layer need not show the result
        images: Base64-encoded images produced by the tool
        error: Set when the tool failed
    """
    for_model: str
    for_user: str | None = None
    silent: bool = False
    images: list[str] | None = None
    error: ErrorInfo | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def failure(cls, message: str, exc: BaseException | None = None) -> "ToolResult":
        """Build a failure result, optionally capturing the causing exception."""
        error = ErrorInfo.from_exception(exc) if exc else ErrorInfo(type="ToolError", message=message)
        return cls(for_model=message, error=error)


# ==================== agent state types ====================


class StopReason(Enum):
    """Why the agent loop stopped."""
    COMPLETE = "complete"
    MAX_ITERATIONS = "max_iterations"


@dataclass
class AgentRunResult:
    """Result of a single agent run.

    Attributes:
        content: Final response content (empty string on budget exhaustion)
        stop_reason: Why the loop stopped
        iterations: Number of provider calls made
        tool_calls: Number of tool calls attempted
    """
    content: str
    stop_reason: StopReason
    iterations: int
    tool_calls: int = 0

    @property
    def is_completed(self) -> bool:
        """Check if the model produced a final answer."""
        return self.stop_reason == StopReason.COMPLETE
