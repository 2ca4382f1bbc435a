"""Conversation history and context windowing.

The history is owned by one agent and appended to only by its loop.
Messages are never edited after creation, with one exception: images that
arrive late for the most recent user message can be attached to it.
"""

from dataclasses import replace

from ..types import MessageRole, UnifiedMessage


class ConversationHistory:
    """Ordered messages plus the configured system prompt.

    At most one system message is kept, always first. A system message in
    the initial history is superseded by the configured prompt, or dropped
    when no prompt is configured.
    """

    def __init__(
        self,
        system_prompt: str | None = None,
        initial_history: list[UnifiedMessage] | None = None,
    ):
        """Initialize the history.

        Args:
            system_prompt: Prompt placed first in every request.
            initial_history: Previously stored messages to resume from.
        """
        self.system_prompt = system_prompt
        self._messages: list[UnifiedMessage] = []
        if system_prompt:
            self._messages.append(UnifiedMessage(role=MessageRole.SYSTEM, content=system_prompt))
        self._messages.extend(
            msg for msg in initial_history or [] if msg.role != MessageRole.SYSTEM
        )

    @property
    def messages(self) -> list[UnifiedMessage]:
        """Snapshot of the stored messages."""
        return list(self._messages)

    @property
    def last(self) -> UnifiedMessage | None:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def add(self, message: UnifiedMessage) -> None:
        if message.role == MessageRole.SYSTEM:
            raise ValueError("System messages are set through the configured prompt")
        self._messages.append(message)

    def is_pending_user_turn(self, content: str) -> bool:
        """True if the last message is a user turn with exactly this text."""
        last = self.last
        return last is not None and last.role == MessageRole.USER and last.content == content

    def attach_images(self, images: list[str] | None) -> bool:
        """Attach images to the pending user message if it has none yet.

        Returns:
            True if the images were attached.
        """
        last = self.last
        if not images or last is None or last.role != MessageRole.USER or last.images:
            return False
        last.images = list(images)
        return True

    def windowed(self, max_messages: int) -> list[UnifiedMessage]:
        """Return the context sent to the model.

        The system message (if any) followed by the last ``max_messages``
        non-system messages, with leading tool messages dropped so the
        window never opens on a tool result whose call was cut off.
        Messages are shallow copies; changing them or the list leaves the
        stored history untouched.
        """
        system = next((m for m in self._messages if m.role == MessageRole.SYSTEM), None)
        others = [m for m in self._messages if m.role != MessageRole.SYSTEM]

        recent = others[-max_messages:] if max_messages > 0 else []
        start = 0
        while start < len(recent) and recent[start].role == MessageRole.TOOL:
            start += 1
        recent = recent[start:]

        window = [replace(m) for m in recent]
        if system is not None:
            window.insert(0, replace(system))
        return window

    def clear(self) -> None:
        """Drop all messages except the configured system prompt."""
        self._messages = [m for m in self._messages[:1] if m.role == MessageRole.SYSTEM]

    def to_dicts(self) -> list[dict]:
        return [msg.to_dict() for msg in self._messages]
