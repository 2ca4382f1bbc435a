"""Tool registry: name -> (contract, executor) with central dispatch.

The registry is the only place tool failures are turned into results.
Unknown names, invalid arguments, executor exceptions and timeouts all
come back as failure ToolResults so a single bad call never aborts a turn.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ..exceptions import (
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
    ToolValidationError,
)
from ..logging import get_logger
from ..types import ToolContract, ToolResult
from .base import BaseTool, validate_arguments

logger = get_logger(__name__)

Executor = Callable[..., Awaitable[ToolResult | str]]


@dataclass
class RegisteredTool:
    contract: ToolContract
    executor: Executor


class ToolRegistry:
    """Maps tool names to their contracts and executors.

    Registering a name that already exists replaces the earlier entry.
    """

    def __init__(self, tool_timeout: float | None = None):
        """Initialize the registry.

        Args:
            tool_timeout: Seconds an executor may run before it is cancelled
                and reported as failed. None disables the limit.
        """
        self.tool_timeout = tool_timeout
        self._tools: dict[str, RegisteredTool] = {}

    def register(self, contract: ToolContract, executor: Executor) -> None:
        if contract.name in self._tools:
            logger.debug(f"replacing registered tool: {contract.name}")
        self._tools[contract.name] = RegisteredTool(contract, executor)

    def register_tool(self, tool: BaseTool) -> None:
        """Register a BaseTool instance under its own name."""
        self.register(tool.contract, tool.execute)

    def unregister(self, name: str) -> bool:
        """Remove a tool.

        Returns:
            True if a tool was removed.
        """
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> RegisteredTool | None:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> list[str]:
        return list(self._tools)

    def list_contracts(self) -> list[ToolContract]:
        """Return the tool catalog in registration order."""
        return [entry.contract for entry in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def execute(self, name: str, args: dict[str, Any] | None = None) -> ToolResult:
        """Run a tool by name.

        Never raises for tool-level problems; they are returned as failure
        results whose ``for_model`` text explains what went wrong.

        Args:
            name: Registered tool name.
            args: Parsed arguments for the executor.

        Returns:
            The executor's result, or a failure result.
        """
        args = args or {}
        entry = self._tools.get(name)
        if entry is None:
            error = ToolNotFoundError(name)
            logger.warning(str(error))
            return ToolResult.failure(f"Error: {error}", error)

        problems = validate_arguments(entry.contract, args)
        if problems:
            error = ToolValidationError(name, problems)
            logger.info(str(error))
            return ToolResult.failure(f"Error: {error}", error)

        logger.debug(f"executing tool {name} with args {args}")
        try:
            result = await self._invoke(entry.executor, name, args)
        except ToolTimeoutError as e:
            logger.warning(str(e))
            return ToolResult.failure(str(ToolExecutionError(name, e)), e)
        except Exception as e:
            logger.exception(f"tool {name} raised")
            return ToolResult.failure(str(ToolExecutionError(name, e)), e)

        if isinstance(result, str):
            result = ToolResult(for_model=result)
        if result.is_error:
            logger.info(f"tool {name} reported failure: {result.error.message}")
        return result

    async def _invoke(self, executor: Executor, name: str, args: dict[str, Any]) -> ToolResult | str:
        if self.tool_timeout is None:
            return await executor(**args)
        try:
            return await asyncio.wait_for(executor(**args), timeout=self.tool_timeout)
        except asyncio.TimeoutError as e:
            raise ToolTimeoutError(name, self.tool_timeout) from e
