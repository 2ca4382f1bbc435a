"""Core agent components.

- ConversationHistory: stores messages and builds the context window
- MemoryRetriever: injects relevant stored facts into the context
- PromptBuilder: creates unified messages and formats prompt fragments
- ToolExecutor: runs tool calls in order through the registry
"""

from .history import ConversationHistory
from .prompt_builder import PromptBuilder, format_memory_snippet, friendly_tool_name
from .retrieval import MemoryRetriever, RetrievalOutcome
from .tool_executor import ToolExecutor, parse_arguments

__all__ = [
    "ConversationHistory",
    "MemoryRetriever",
    "RetrievalOutcome",
    "PromptBuilder",
    "ToolExecutor",
    "format_memory_snippet",
    "friendly_tool_name",
    "parse_arguments",
]
