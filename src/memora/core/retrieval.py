"""Proactive memory retrieval.

Before the first model call of a turn, the latest message is embedded and
the closest stored facts are appended to the system message of the
outgoing context. This is an enrichment step: any failure is reported in
the outcome and the turn goes on without it.
"""

from dataclasses import dataclass, field, replace

from ..clients.base import BaseEmbeddingClient
from ..logging import get_logger
from ..storage.database import Database
from ..storage.models import MemoryFact
from ..storage.vector import Scored
from ..types import MessageRole, UnifiedMessage
from .prompt_builder import format_memory_snippet

logger = get_logger(__name__)


@dataclass
class RetrievalOutcome:
    """Result of one retrieval attempt.

    Attributes:
        facts: Matching facts, best first
        error: The failure that prevented retrieval, if any
        skipped: True when there was nothing to search for
    """
    facts: list[Scored[MemoryFact]] = field(default_factory=list)
    error: Exception | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class MemoryRetriever:
    """Finds stored facts relevant to the conversation and injects them."""

    def __init__(self, database: Database, embedder: BaseEmbeddingClient, top_k: int = 5):
        self.database = database
        self.embedder = embedder
        self.top_k = top_k

    async def retrieve(self, window: list[UnifiedMessage]) -> RetrievalOutcome:
        """Search memory using the content of the last message in the window."""
        if not window:
            return RetrievalOutcome(skipped=True)
        query = window[-1].content
        if not isinstance(query, str) or not query.strip():
            return RetrievalOutcome(skipped=True)

        try:
            vector = await self.embedder.embed(query)
            facts = await self.database.search_memory(vector, k=self.top_k)
        except Exception as e:
            return RetrievalOutcome(error=e)
        return RetrievalOutcome(facts=facts)

    def augment(
        self,
        window: list[UnifiedMessage],
        outcome: RetrievalOutcome,
    ) -> list[UnifiedMessage]:
        """Append the memory snippet to the window's system message.

        Only the window is changed. Without a leading system message nothing
        is injected.
        """
        snippet = format_memory_snippet(scored.item for scored in outcome.facts)
        if not snippet or not window or window[0].role != MessageRole.SYSTEM:
            return window
        augmented = list(window)
        augmented[0] = replace(window[0], content=(window[0].content or "") + snippet)
        return augmented

    async def enrich(self, window: list[UnifiedMessage]) -> list[UnifiedMessage]:
        """Retrieve and inject in one step, logging and discarding failures."""
        outcome = await self.retrieve(window)
        if not outcome.ok:
            logger.warning(f"memory retrieval failed, continuing without it: {outcome.error}")
            return window
        if outcome.facts:
            logger.debug(f"injecting {len(outcome.facts)} memories into context")
        return self.augment(window, outcome)
