"""Main agent implementation.

MemoraAgent drives the think-act-observe loop between the user, the chat
model, the tools and long-term memory. It works only with unified types,
so any chat client can be plugged in.
"""

import inspect
from typing import Any, Callable

from .clients.base import BaseEmbeddingClient, BaseLLMClient
from .config import DEFAULT_SYSTEM_PROMPT
from .core import ConversationHistory, MemoryRetriever, PromptBuilder, ToolExecutor
from .exceptions import AgentBusyError
from .logging import get_logger
from .storage.database import Database
from .tools.registry import ToolRegistry
from .types import AgentRunResult, StopReason, UnifiedMessage

logger = get_logger(__name__)

# observers may be plain functions or coroutine functions
OnMessage = Callable[[UnifiedMessage], Any]
OnStatus = Callable[[str], Any]
OnChunk = Callable[[str], Any]


class MemoraAgent:
    """Agent that coordinates between the chat model, tools and memory.

    Each call to process() handles one user turn:
    1. Build the context window (with relevant memories on the first pass)
    2. Ask the model for the next assistant turn
    3. If it requests tool calls, run them in order and record the results
    4. Repeat until the model answers without tool calls or the iteration
       budget runs out

    An agent owns a single conversation. Calls must not overlap; a second
    concurrent call raises AgentBusyError.

    Attributes:
        on_message: Called with every message appended to the history
        on_status: Called with progress lines ("Thinking...", "Using X...")
        on_chunk: Called with the text of each assistant turn
    """

    def __init__(
        self,
        client: BaseLLMClient,
        registry: ToolRegistry | None = None,
        embedder: BaseEmbeddingClient | None = None,
        database: Database | None = None,
        system_prompt: str | None = DEFAULT_SYSTEM_PROMPT,
        max_iterations: int = 10,
        max_history: int = 20,
        memory_top_k: int = 5,
        initial_history: list[UnifiedMessage] | None = None,
    ):
        """Initialize the agent.

        Args:
            client: The chat client to use (provider-agnostic)
            registry: Tools available to the model
            embedder: Embedding client; enables proactive memory retrieval
                together with ``database``
            database: Store searched for relevant memories
            system_prompt: Prompt placed first in every request
            max_iterations: Model calls allowed per user turn
            max_history: Non-system messages sent to the model
            memory_top_k: Memories injected per turn
            initial_history: Stored messages to resume the conversation from
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        self.client = client
        self.registry = registry or ToolRegistry()
        self.max_iterations = max_iterations
        self.max_history = max_history

        self.prompt_builder = PromptBuilder()
        self.tool_executor = ToolExecutor(self.registry, self.prompt_builder, status=self._notify_status)
        self.memory = ConversationHistory(system_prompt, initial_history)
        self.retriever = (
            MemoryRetriever(database, embedder, top_k=memory_top_k)
            if embedder is not None and database is not None
            else None
        )

        self.on_message: OnMessage | None = None
        self.on_status: OnStatus | None = None
        self.on_chunk: OnChunk | None = None

        self._busy = False

    @property
    def history(self) -> list[UnifiedMessage]:
        """Snapshot of the conversation history."""
        return self.memory.messages

    @property
    def is_busy(self) -> bool:
        return self._busy

    def get_history(self) -> list[dict]:
        """Export history as list of dicts."""
        return self.memory.to_dicts()

    def clear_history(self) -> None:
        """Forget the conversation, keeping the system prompt."""
        self.memory.clear()

    async def process(self, user_input: str, images: list[str] | None = None) -> str:
        """Handle one user turn and return the final answer.

        Args:
            user_input: The user's message
            images: Optional base64-encoded images for vision models

        Returns:
            The model's final text, or an empty string if the iteration
            budget ran out first.

        Raises:
            AgentBusyError: If another call on this agent is still running
            ClientError: If the chat provider fails
        """
        result = await self.run(user_input, images)
        return result.content

    async def run(self, user_input: str, images: list[str] | None = None) -> AgentRunResult:
        """Like process(), but returns the full AgentRunResult."""
        if self._busy:
            raise AgentBusyError()
        self._busy = True
        try:
            await self._accept_input(user_input, images)
            return await self._run_loop()
        finally:
            self._busy = False

    async def _accept_input(self, user_input: str, images: list[str] | None) -> None:
        # a resubmitted pending turn is a continuation, not a new message
        if self.memory.is_pending_user_turn(user_input):
            if self.memory.attach_images(images):
                logger.debug("attached late images to the pending user message")
            return
        await self._record(self.prompt_builder.build_user_message(user_input, images))

    async def _run_loop(self) -> AgentRunResult:
        iterations = 0
        tool_calls = 0

        while iterations < self.max_iterations:
            iterations += 1
            await self._notify_status("Thinking...")

            context = self.memory.windowed(self.max_history)
            if iterations == 1 and self.retriever is not None and context:
                context = await self.retriever.enrich(context)

            response = await self.client.chat(context, self.registry.list_contracts())
            message = self.prompt_builder.build_assistant_message(
                response.message.content,
                response.message.tool_calls,
            )
            await self._record(message)
            if message.content:
                await self._notify(self.on_chunk, message.content)

            if not message.tool_calls:
                return AgentRunResult(
                    content=message.content or "",
                    stop_reason=StopReason.COMPLETE,
                    iterations=iterations,
                    tool_calls=tool_calls,
                )

            logger.debug(f"iteration {iterations}: {len(message.tool_calls)} tool call(s)")
            tool_calls += await self.tool_executor.execute_tool_calls(message.tool_calls, self._record)

        logger.warning(
            f"iteration budget of {self.max_iterations} exhausted without a final answer"
        )
        return AgentRunResult(
            content="",
            stop_reason=StopReason.MAX_ITERATIONS,
            iterations=iterations,
            tool_calls=tool_calls,
        )

    async def _record(self, message: UnifiedMessage) -> None:
        self.memory.add(message)
        await self._notify(self.on_message, message)

    async def _notify_status(self, status: str) -> None:
        await self._notify(self.on_status, status)

    async def _notify(self, callback: Callable[[Any], Any] | None, payload: Any) -> None:
        if callback is None:
            return
        try:
            outcome = callback(payload)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception(f"observer {getattr(callback, '__name__', callback)!r} failed")
