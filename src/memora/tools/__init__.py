"""Tool implementations for Memora.

All tools inherit from BaseTool and implement the async execute method.
"""

from ..clients.base import BaseEmbeddingClient
from ..config import Settings, get_settings
from ..storage.database import Database
from .base import BaseTool, validate_arguments
from .memory import DeleteMemoryTool, GetMemoryTool, SaveMemoryTool, SearchMemoryTool
from .registry import ToolRegistry
from .time import WorldTimeTool
from .weather import WeatherTool
from .web import WebFetchTool, WebSearchTool

__all__ = [
    "BaseTool",
    "ToolRegistry",
    "validate_arguments",
    "SaveMemoryTool",
    "GetMemoryTool",
    "DeleteMemoryTool",
    "SearchMemoryTool",
    "WebFetchTool",
    "WebSearchTool",
    "WeatherTool",
    "WorldTimeTool",
    "get_default_tools",
    "create_default_registry",
]


def get_default_tools(
    database: Database,
    embedder: BaseEmbeddingClient | None = None,
    settings: Settings | None = None,
) -> list[BaseTool]:
    """Get the default set of tools for the agent.

    search_memory is only offered when an embedding client exists.
    """
    settings = settings or get_settings()
    tools: list[BaseTool] = [
        SaveMemoryTool(database, embedder),
        GetMemoryTool(database),
        DeleteMemoryTool(database),
    ]
    if embedder is not None:
        tools.append(SearchMemoryTool(database, embedder))
    tools.extend([
        WebFetchTool(),
        WebSearchTool(api_key=settings.tavily_api_key),
        WeatherTool(),
        WorldTimeTool(),
    ])
    return tools


def create_default_registry(
    database: Database,
    embedder: BaseEmbeddingClient | None = None,
    settings: Settings | None = None,
) -> ToolRegistry:
    settings = settings or get_settings()
    registry = ToolRegistry(tool_timeout=settings.tool_timeout)
    for tool in get_default_tools(database, embedder, settings):
        registry.register_tool(tool)
    return registry
