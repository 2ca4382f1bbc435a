"""Tool execution logic for the agent.

This module runs the tool calls of one assistant turn, strictly in order,
and turns each into a tool message.
"""

import json
from typing import Any, Awaitable, Callable

from ..logging import get_logger
from ..tools.registry import ToolRegistry
from ..types import ToolCall, UnifiedMessage
from .prompt_builder import PromptBuilder, friendly_tool_name

logger = get_logger(__name__)


async def _ignore_status(status: str) -> None:
    return None


def parse_arguments(tool_call: ToolCall) -> dict[str, Any] | None:
    """Parse a tool call's raw JSON arguments.

    Returns:
        The argument object, or None if the payload is not a JSON object.
    """
    try:
        parsed = json.loads(tool_call.arguments or "")
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class ToolExecutor:
    """Dispatches tool calls to the registry and reports progress.

    Each call is attempted independently: a malformed or failing call
    produces an error tool message and the next call still runs.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        builder: PromptBuilder | None = None,
        status: Callable[[str], Awaitable[None]] | None = None,
    ):
        """Initialize the tool executor.

        Args:
            registry: Where tools are looked up and run.
            builder: Creates the tool result messages.
            status: Receives progress lines such as "Using Get Weather...".
        """
        self.registry = registry
        self.builder = builder or PromptBuilder()
        self._status = status or _ignore_status

    async def execute_tool_call(self, tool_call: ToolCall) -> UnifiedMessage:
        """Run one tool call and return the tool message answering it."""
        args = parse_arguments(tool_call)
        if args is None:
            logger.warning(f"malformed arguments for tool {tool_call.name}: {tool_call.arguments!r}")
            return self.builder.build_malformed_arguments_result(tool_call)

        label = friendly_tool_name(tool_call.name)
        await self._status(f"Using {label}...")
        result = await self.registry.execute(tool_call.name, args)
        await self._status(f"{label} complete.")

        return self.builder.build_tool_result(
            tool_call.id,
            tool_call.name,
            result.for_model,
            images=result.images,
        )

    async def execute_tool_calls(
        self,
        tool_calls: list[ToolCall],
        record: Callable[[UnifiedMessage], Awaitable[None]],
    ) -> int:
        """Run tool calls in order, handing each tool message to ``record``.

        Returns:
            Number of tool calls attempted.
        """
        for tool_call in tool_calls:
            await record(await self.execute_tool_call(tool_call))
        return len(tool_calls)
