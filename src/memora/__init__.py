"""Memora - a conversational agent with tools and long-term memory.

This package provides an agent loop that lets a language model call tools
and recall facts stored in a persistent, semantically searchable memory.
"""

from .agent import MemoraAgent
from .exceptions import (
    AgentBusyError,
    ClientError,
    MemoraError,
    StorageError,
    ToolError,
)
from .sessions import SessionManager
from .types import (
    AgentRunResult,
    FinishReason,
    MessageRole,
    StopReason,
    ToolCall,
    ToolContract,
    ToolResult,
    UnifiedMessage,
    UnifiedResponse,
)

__all__ = [
    # main agent
    "MemoraAgent",
    "SessionManager",
    # types
    "AgentRunResult",
    "FinishReason",
    "MessageRole",
    "StopReason",
    "ToolCall",
    "ToolContract",
    "ToolResult",
    "UnifiedMessage",
    "UnifiedResponse",
    # exceptions
    "AgentBusyError",
    "ClientError",
    "MemoraError",
    "StorageError",
    "ToolError",
]
