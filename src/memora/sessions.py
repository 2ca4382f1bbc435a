"""Persistent chat sessions.

A SessionManager ties agents to the store: opening a session resumes its
stored history, and every message the agent records afterwards is written
back, with an embedding for user and assistant text so past conversations
can be searched by meaning.
"""

import uuid

from .agent import MemoraAgent
from .clients.base import BaseEmbeddingClient, BaseLLMClient
from .config import Settings, get_settings
from .exceptions import ClientError
from .logging import get_logger
from .prompts import SESSION_SUMMARY_PROMPT
from .storage.database import Database
from .storage.models import SessionRecord, StoredMessage
from .storage.vector import Scored
from .tools.registry import ToolRegistry
from .types import MessageRole, UnifiedMessage

logger = get_logger(__name__)

TITLE_LENGTH = 50
EMBEDDED_ROLES = (MessageRole.USER, MessageRole.ASSISTANT)


def title_from_text(text: str, limit: int = TITLE_LENGTH) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3].rstrip() + "..."


class SessionManager:
    """Creates, opens and maintains stored conversations."""

    def __init__(
        self,
        client: BaseLLMClient,
        database: Database,
        registry: ToolRegistry | None = None,
        embedder: BaseEmbeddingClient | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the manager.

        Args:
            client: Chat client shared by all opened agents.
            database: The store holding sessions, messages and memory.
            registry: Tools given to opened agents.
            embedder: Embedding client for message and memory vectors.
            settings: Agent limits and system prompt; defaults to get_settings().
        """
        self.client = client
        self.database = database
        self.registry = registry or ToolRegistry()
        self.embedder = embedder
        self.settings = settings or get_settings()

    async def create_session(self, title: str | None = None) -> SessionRecord:
        return await self.database.create_session(uuid.uuid4().hex, title)

    async def list_sessions(self) -> list[SessionRecord]:
        return await self.database.list_sessions()

    async def delete_session(self, session_id: str) -> bool:
        return await self.database.delete_session(session_id)

    async def update_title(self, session_id: str, title: str) -> None:
        await self.database.update_session_title(session_id, title)

    async def update_summary(self, session_id: str, summary: str) -> None:
        await self.database.update_session_summary(session_id, summary)

    async def open_session(self, session_id: str | None = None) -> tuple[SessionRecord, MemoraAgent]:
        """Open a stored session as an agent, creating the session if needed.

        Args:
            session_id: Session to resume. A new session is created when this
                is None or unknown.

        Returns:
            The session record and an agent that persists its new messages.
        """
        session = await self.database.get_session(session_id) if session_id else None
        if session is None:
            session = await self.database.create_session(session_id or uuid.uuid4().hex)
            history: list[UnifiedMessage] = []
        else:
            history = await self.database.get_messages(session.id)
            logger.info(f"resuming session {session.id} with {len(history)} messages")

        agent = MemoraAgent(
            self.client,
            self.registry,
            embedder=self.embedder,
            database=self.database,
            system_prompt=self.settings.system_prompt,
            max_iterations=self.settings.max_iterations,
            max_history=self.settings.max_history,
            memory_top_k=self.settings.memory_top_k,
            initial_history=history,
        )
        agent.on_message = self._persister(session)
        return session, agent

    def _persister(self, session: SessionRecord):
        async def persist(message: UnifiedMessage) -> None:
            embedding = await self._embed_message(message)
            await self.database.save_message(session.id, message, embedding)
            if not session.title and message.role == MessageRole.USER and message.content:
                session.title = title_from_text(message.content)
                await self.database.update_session_title(session.id, session.title)

        return persist

    async def _embed_message(self, message: UnifiedMessage) -> list[float] | None:
        if self.embedder is None or message.role not in EMBEDDED_ROLES or not message.content:
            return None
        try:
            return await self.embedder.embed(message.content)
        except ClientError as e:
            logger.warning(f"embedding failed, storing message without it: {e}")
            return None

    async def truncate(self, session_id: str, index: int) -> int:
        """Drop a session's messages from ``index`` onwards for edit-and-regenerate.

        The index counts stored messages, which never include the system
        prompt. Reopen the session afterwards to get an agent on the
        shortened history.
        """
        return await self.database.truncate_messages(session_id, index)

    async def search_messages(
        self,
        query: str,
        k: int = 5,
        session_id: str | None = None,
    ) -> list[Scored[StoredMessage]]:
        """Find past user and assistant messages similar to ``query``.

        Returns an empty list when no embedding client is configured.
        """
        if self.embedder is None:
            logger.info("message search requested without an embedding client")
            return []
        vector = await self.embedder.embed(query)
        return await self.database.search_messages(vector, k=k, session_id=session_id)

    async def summarize_session(self, session_id: str) -> str | None:
        """Ask the chat model for a one-line summary and store it.

        Returns:
            The summary, or None if the session has no text to summarize.
        """
        messages = await self.database.get_messages(session_id)
        transcript = "\n".join(
            f"{m.role.value}: {m.content}"
            for m in messages
            if m.role in EMBEDDED_ROLES and m.content
        )
        if not transcript:
            return None

        response = await self.client.chat([
            UnifiedMessage(role=MessageRole.SYSTEM, content=SESSION_SUMMARY_PROMPT),
            UnifiedMessage(role=MessageRole.USER, content=transcript),
        ])
        summary = (response.message.content or "").strip()
        if summary:
            await self.database.update_session_summary(session_id, summary)
        return summary or None
