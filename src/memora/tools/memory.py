"""Tools that let the model save, recall, delete and search durable facts.

Facts live in the ``memory`` table of the store, keyed by a descriptive
name. When an embedding client is available each fact is stored with the
vector of ``"key: content"`` so it can be found by meaning later.
"""

from typing import Any

from ..clients.base import BaseEmbeddingClient
from ..exceptions import ClientError, StorageError
from ..logging import get_logger
from ..storage.database import Database
from ..types import ToolResult
from .base import BaseTool

logger = get_logger(__name__)

RECENT_MEMORY_LIMIT = 15
SEARCH_MEMORY_LIMIT = 8


def memory_text(key: str, content: str) -> str:
    """Text that is embedded for a fact."""
    return f"{key}: {content}"


class _MemoryTool(BaseTool):
    def __init__(self, database: Database, embedder: BaseEmbeddingClient | None = None):
        self.database = database
        self.embedder = embedder


class SaveMemoryTool(_MemoryTool):
    @property
    def name(self) -> str:
        return "save_memory"

    @property
    def description(self) -> str:
        return (
            "Save important information about the user, a contact, or an event for "
            "permanent reference. Use a descriptive key so you can recall it later. "
            "Saving an existing key replaces the old value."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "key": {
                    "type": "string",
                    "description": (
                        "A descriptive key to categorize the memory "
                        '(e.g., "user_name", "favorite_food", "work_project").'
                    ),
                },
                "content": {
                    "type": "string",
                    "description": "The actual information to remember.",
                },
            },
            "required": ["key", "content"],
        }

    async def execute(self, key: str, content: str, **kwargs: Any) -> ToolResult:
        embedding = None
        if self.embedder is not None:
            try:
                embedding = await self.embedder.embed(memory_text(key, content))
            except ClientError as e:
                # the fact is still worth keeping without a vector
                logger.warning(f"embedding failed for memory '{key}', saving without it: {e}")

        try:
            await self.database.save_memory(key, content, embedding)
        except StorageError as e:
            return ToolResult.failure(f"Error saving memory: {e}", e)

        return ToolResult(
            for_model=f"Memory saved successfully: [{key}] {content}",
            for_user=f'I\'ve remembered that for you: "{content}"',
        )


class GetMemoryTool(_MemoryTool):
    @property
    def name(self) -> str:
        return "get_memory"

    @property
    def description(self) -> str:
        return (
            "Retrieve saved information. Provide a key to get a specific fact, "
            "or omit it to get the most recent memories."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "key": {
                    "type": "string",
                    "description": (
                        "The specific key to retrieve. If omitted, returns the "
                        f"{RECENT_MEMORY_LIMIT} most recently updated memories."
                    ),
                },
            },
        }

    async def execute(self, key: str | None = None, **kwargs: Any) -> ToolResult:
        try:
            if key:
                return await self._get_one(key)
            return await self._get_recent()
        except StorageError as e:
            return ToolResult.failure(f"Error retrieving memory: {e}", e)

    async def _get_one(self, key: str) -> ToolResult:
        fact = await self.database.get_memory(key)
        if fact is None:
            return ToolResult(for_model=f"No memory found for key: {key}")
        return ToolResult(
            for_model=f"Memory found for {key}: {fact.content}",
            for_user=f"I remember you mentioned: {fact.content}",
        )

    async def _get_recent(self) -> ToolResult:
        facts = await self.database.list_memories(limit=RECENT_MEMORY_LIMIT)
        if not facts:
            return ToolResult(for_model="Memory registry is empty.", silent=True)
        summary = "\n".join(f"[{fact.key}] {fact.content}" for fact in facts)
        return ToolResult(for_model=f"Relevant memories found:\n{summary}", silent=True)


class DeleteMemoryTool(_MemoryTool):
    @property
    def name(self) -> str:
        return "delete_memory"

    @property
    def description(self) -> str:
        return "Delete a specific saved memory by its key."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "key": {
                    "type": "string",
                    "description": "The key of the memory to delete.",
                },
            },
            "required": ["key"],
        }

    async def execute(self, key: str, **kwargs: Any) -> ToolResult:
        try:
            await self.database.delete_memory(key)
        except StorageError as e:
            return ToolResult.failure(f"Error deleting memory: {e}", e)
        return ToolResult(
            for_model=f"Successfully deleted memory with key: {key}",
            for_user=f'I\'ve forgotten the info for "{key}".',
        )


class SearchMemoryTool(_MemoryTool):
    """Semantic search over saved facts.

    Only facts saved while an embedding client was configured carry a
    vector; the rest are reachable through get_memory by key.
    """

    @property
    def name(self) -> str:
        return "search_memory"

    @property
    def description(self) -> str:
        return (
            "Search saved memories by meaning rather than exact key. "
            "Use this when you don't know the key a fact was saved under."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "What to look for, in natural language.",
                },
                "limit": {
                    "type": "integer",
                    "description": f"Maximum number of memories to return (default {SEARCH_MEMORY_LIMIT}).",
                },
            },
            "required": ["query"],
        }

    async def execute(self, query: str, limit: int = SEARCH_MEMORY_LIMIT, **kwargs: Any) -> ToolResult:
        if self.embedder is None:
            return ToolResult.failure(
                "Error: semantic memory search is unavailable without an embedding model. "
                "Use get_memory instead."
            )

        vector = await self.embedder.embed(query)
        matches = await self.database.search_memory(vector, k=max(1, limit))
        if not matches:
            return ToolResult(for_model=f"No memories matched: {query}", silent=True)

        lines = [f"[{m.item.key}] {m.item.content} (similarity {m.score:.2f})" for m in matches]
        return ToolResult(
            for_model="Memories matching your query:\n" + "\n".join(lines),
            silent=True,
        )
