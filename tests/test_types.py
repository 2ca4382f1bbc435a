"""Tests for unified types."""

from memora.types import (
    AgentRunResult,
    ErrorInfo,
    FinishReason,
    MessageRole,
    StopReason,
    ToolCall,
    ToolContract,
    ToolResult,
    UnifiedMessage,
)


class TestEnums:
    """Tests for MessageRole and FinishReason."""

    def test_message_role_values(self):
        assert MessageRole.SYSTEM.value == "system"
        assert MessageRole.USER.value == "user"
        assert MessageRole.ASSISTANT.value == "assistant"
        assert MessageRole.TOOL.value == "tool"

    def test_finish_reason_values(self):
        assert FinishReason.STOP.value == "stop"
        assert FinishReason.TOOL_USE.value == "tool_use"
        assert FinishReason.LENGTH.value == "length"


class TestToolCall:
    """Tests for ToolCall dataclass."""

    def test_arguments_stay_raw(self):
        """Arguments are kept as the model's JSON text, even when invalid."""
        tc = ToolCall(id="call_1", name="echo", arguments='{"text": ')
        assert tc.arguments == '{"text": '

    def test_default_arguments(self):
        assert ToolCall(id="call_1", name="echo").arguments == "{}"


class TestUnifiedMessage:
    """Tests for UnifiedMessage dataclass."""

    def test_simple_message(self):
        msg = UnifiedMessage(role=MessageRole.USER, content="Hello!")
        assert msg.tool_calls is None
        assert msg.tool_call_id is None
        assert msg.images is None

    def test_to_dict_omits_empty_fields(self):
        msg = UnifiedMessage(role=MessageRole.USER, content="Hello!")
        assert msg.to_dict() == {"role": "user", "content": "Hello!"}

    def test_dict_conversion_keeps_tool_calls_and_images(self):
        msg = UnifiedMessage(
            role=MessageRole.ASSISTANT,
            content=None,
            tool_calls=[ToolCall(id="1", name="get_weather", arguments='{"location": "Oslo"}')],
        )
        restored = UnifiedMessage.from_dict(msg.to_dict())
        assert restored == msg

        tool_msg = UnifiedMessage(
            role=MessageRole.TOOL,
            content="done",
            tool_call_id="1",
            name="get_weather",
            images=["aGVsbG8="],
        )
        assert UnifiedMessage.from_dict(tool_msg.to_dict()) == tool_msg


class TestToolContract:
    """Tests for ToolContract."""

    def test_required_and_properties(self):
        contract = ToolContract(
            name="save_memory",
            description="Save a fact",
            parameters={
                "type": "object",
                "properties": {"key": {"type": "string"}, "content": {"type": "string"}},
                "required": ["key", "content"],
            },
        )
        assert contract.required == ["key", "content"]
        assert set(contract.properties) == {"key", "content"}

    def test_defaults_to_empty_object_schema(self):
        contract = ToolContract(name="ping", description="Ping")
        assert contract.required == []
        assert contract.properties == {}

    def test_to_schema(self):
        contract = ToolContract(name="ping", description="Ping")
        schema = contract.to_schema()
        assert schema["type"] == "function"
        assert schema["function"]["name"] == "ping"
        assert schema["function"]["parameters"] == {"type": "object", "properties": {}}


class TestToolResult:
    """Tests for ToolResult."""

    def test_success_has_no_error(self):
        result = ToolResult(for_model="ok")
        assert not result.is_error
        assert result.silent is False

    def test_failure_from_message(self):
        result = ToolResult.failure("Error: nope")
        assert result.is_error
        assert result.for_model == "Error: nope"
        assert result.error.type == "ToolError"

    def test_failure_from_exception(self):
        result = ToolResult.failure("Error: bad", ValueError("bad value"))
        assert result.error == ErrorInfo(type="ValueError", message="bad value")


class TestAgentRunResult:
    """Tests for AgentRunResult."""

    def test_completed(self):
        result = AgentRunResult(content="hi", stop_reason=StopReason.COMPLETE, iterations=1)
        assert result.is_completed
        assert result.tool_calls == 0

    def test_budget_exhausted(self):
        result = AgentRunResult(content="", stop_reason=StopReason.MAX_ITERATIONS, iterations=3)
        assert not result.is_completed
