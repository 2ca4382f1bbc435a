"""Prompt construction and formatting utilities.

This module creates the unified messages the agent loop appends and
formats the text fragments it shows or injects (status labels, memory
snippets).
"""

from typing import Iterable

from ..storage.models import MemoryFact
from ..types import MessageRole, ToolCall, UnifiedMessage

MEMORY_SNIPPET_HEADER = "\n\n[RELEVANT MEMORIES]:\n"


def friendly_tool_name(name: str) -> str:
    """Human-readable tool label: ``get_weather`` -> ``Get Weather``."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("_"))


def format_memory_snippet(facts: Iterable[MemoryFact]) -> str:
    """Format facts as the block appended to the system prompt.

    Returns:
        The snippet, or an empty string when there are no facts.
    """
    lines = [f"- {fact.key}: {fact.content}" for fact in facts]
    if not lines:
        return ""
    return MEMORY_SNIPPET_HEADER + "\n".join(lines)


class PromptBuilder:
    """Creates unified messages for the different roles."""

    def build_user_message(self, content: str, images: list[str] | None = None) -> UnifiedMessage:
        """Create a user message.

        Args:
            content: The user's message content.
            images: Optional base64-encoded images.

        Returns:
            A UnifiedMessage with USER role.
        """
        return UnifiedMessage(role=MessageRole.USER, content=content, images=images or None)

    def build_assistant_message(
        self,
        content: str | None,
        tool_calls: list[ToolCall] | None = None,
    ) -> UnifiedMessage:
        return UnifiedMessage(
            role=MessageRole.ASSISTANT,
            content=content,
            tool_calls=tool_calls or None,
        )

    def build_tool_result(
        self,
        tool_call_id: str,
        name: str,
        content: str,
        images: list[str] | None = None,
    ) -> UnifiedMessage:
        """Create a tool result message.

        Args:
            tool_call_id: The ID of the tool call this result is for.
            name: The name of the tool.
            content: The result content.
            images: Images produced by the tool.

        Returns:
            A UnifiedMessage with TOOL role.
        """
        return UnifiedMessage(
            role=MessageRole.TOOL,
            content=content,
            tool_call_id=tool_call_id,
            name=name,
            images=images or None,
        )

    def build_malformed_arguments_result(self, tool_call: ToolCall) -> UnifiedMessage:
        return self.build_tool_result(
            tool_call.id,
            tool_call.name,
            f"Error: Malformed JSON in tool arguments for '{tool_call.name}'.",
        )
