"""Tests for ConversationHistory."""

import pytest

from memora.core.history import ConversationHistory
from memora.types import MessageRole, UnifiedMessage


def msg(role: MessageRole, content: str, **kwargs) -> UnifiedMessage:
    return UnifiedMessage(role=role, content=content, **kwargs)


class TestSystemPrompt:
    """At most one system message, always first."""

    def test_prompt_is_first(self):
        history = ConversationHistory(system_prompt="Be kind.")
        assert len(history) == 1
        assert history.messages[0].role == MessageRole.SYSTEM
        assert history.messages[0].content == "Be kind."

    def test_configured_prompt_supersedes_stored_one(self, sample_messages):
        history = ConversationHistory(system_prompt="New prompt", initial_history=sample_messages)
        systems = [m for m in history.messages if m.role == MessageRole.SYSTEM]
        assert len(systems) == 1
        assert systems[0].content == "New prompt"
        assert [m.content for m in history.messages[1:]] == ["Hello!", "Hi there!"]

    def test_no_prompt_drops_stored_system_message(self, sample_messages):
        history = ConversationHistory(initial_history=sample_messages)
        assert all(m.role != MessageRole.SYSTEM for m in history.messages)
        assert len(history) == 2

    def test_adding_system_message_is_rejected(self):
        history = ConversationHistory(system_prompt="p")
        with pytest.raises(ValueError):
            history.add(msg(MessageRole.SYSTEM, "another"))


class TestWindow:
    """Tests for windowed()."""

    def test_window_of_twenty_from_twenty_five(self):
        history = ConversationHistory(system_prompt="sys")
        for i in range(25):
            role = MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT
            history.add(msg(role, f"m{i}"))

        window = history.windowed(20)
        assert len(window) == 21
        assert window[0].role == MessageRole.SYSTEM
        assert [m.content for m in window[1:]] == [f"m{i}" for i in range(5, 25)]

    def test_short_history_is_sent_whole(self):
        history = ConversationHistory(system_prompt="sys")
        history.add(msg(MessageRole.USER, "hi"))
        assert [m.content for m in history.windowed(20)] == ["sys", "hi"]

    def test_window_never_opens_on_tool_result(self):
        history = ConversationHistory(system_prompt="sys")
        history.add(msg(MessageRole.USER, "weather?"))
        history.add(msg(MessageRole.ASSISTANT, "calling"))
        history.add(msg(MessageRole.TOOL, "sunny", tool_call_id="a"))
        history.add(msg(MessageRole.TOOL, "warm", tool_call_id="b"))
        history.add(msg(MessageRole.ASSISTANT, "It's nice out."))

        window = history.windowed(3)
        assert [m.role for m in window] == [MessageRole.SYSTEM, MessageRole.ASSISTANT]

    def test_zero_keeps_only_system(self):
        history = ConversationHistory(system_prompt="sys")
        history.add(msg(MessageRole.USER, "hi"))
        assert [m.role for m in history.windowed(0)] == [MessageRole.SYSTEM]

    def test_window_is_a_copy(self):
        history = ConversationHistory(system_prompt="sys")
        history.add(msg(MessageRole.USER, "hi"))

        window = history.windowed(20)
        window[0].content = "augmented"
        window[1].content = "changed"
        window.append(msg(MessageRole.USER, "extra"))

        assert [m.content for m in history.messages] == ["sys", "hi"]

    def test_messages_snapshot_is_independent(self):
        history = ConversationHistory()
        history.messages.append(msg(MessageRole.USER, "sneaky"))
        assert len(history) == 0


class TestPendingTurn:
    """Tests for the duplicate-input helpers."""

    def test_pending_user_turn(self):
        history = ConversationHistory()
        history.add(msg(MessageRole.USER, "hello"))
        assert history.is_pending_user_turn("hello")
        assert not history.is_pending_user_turn("other")

        history.add(msg(MessageRole.ASSISTANT, "hi"))
        assert not history.is_pending_user_turn("hello")

    def test_attach_images_once(self):
        history = ConversationHistory()
        history.add(msg(MessageRole.USER, "look"))
        assert history.attach_images(["aW1n"])
        assert history.last.images == ["aW1n"]
        assert not history.attach_images(["b3RoZXI="])
        assert history.last.images == ["aW1n"]

    def test_attach_images_needs_user_turn(self):
        history = ConversationHistory()
        assert not history.attach_images(["aW1n"])
        history.add(msg(MessageRole.ASSISTANT, "hi"))
        assert not history.attach_images(["aW1n"])
        assert not history.attach_images(None)


class TestClear:
    """Tests for clear()."""

    def test_clear_keeps_system_prompt(self):
        history = ConversationHistory(system_prompt="sys")
        history.add(msg(MessageRole.USER, "hi"))
        history.clear()
        assert [m.content for m in history.messages] == ["sys"]

    def test_clear_without_prompt(self):
        history = ConversationHistory()
        history.add(msg(MessageRole.USER, "hi"))
        history.clear()
        assert len(history) == 0

    def test_to_dicts(self):
        history = ConversationHistory(system_prompt="sys")
        history.add(msg(MessageRole.USER, "hi"))
        assert history.to_dicts() == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]
