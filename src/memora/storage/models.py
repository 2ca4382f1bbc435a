"""Records persisted by the store."""

from dataclasses import dataclass

from ..types import MessageRole


@dataclass
class SessionRecord:
    """A chat session."""
    id: str
    title: str | None = None
    summary: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class StoredMessage:
    """A persisted user or assistant message, as returned by semantic search."""
    id: int
    session_id: str
    role: MessageRole
    content: str | None
    created_at: str | None = None


@dataclass
class MemoryFact:
    """A durable key -> content fact.

    Attributes:
        key: Unique key; saving an existing key replaces the fact.
        content: The remembered information.
        embedding: Vector of ``"key: content"``, if one was computed.
        updated_at: ISO timestamp of the last write.
    """
    key: str
    content: str
    embedding: list[float] | None = None
    updated_at: str | None = None
