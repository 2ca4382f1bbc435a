"""Tests for SessionManager persistence."""

import pytest

from conftest import EchoTool, FakeEmbedder, ScriptedClient, make_call, make_response

from memora.config import Settings
from memora.sessions import SessionManager, title_from_text
from memora.tools.registry import ToolRegistry
from memora.types import MessageRole


@pytest.fixture
def settings() -> Settings:
    return Settings(MEMORA_SYSTEM_PROMPT="sys", MEMORA_MAX_ITERATIONS=4)


def test_title_from_text():
    assert title_from_text("  Plan   my trip ") == "Plan my trip"
    long_title = title_from_text("word " * 30)
    assert len(long_title) <= 50
    assert long_title.endswith("...")


class TestSessionLifecycle:
    """Creating, listing and deleting sessions."""

    @pytest.mark.asyncio
    async def test_create_list_delete(self, db, settings):
        manager = SessionManager(ScriptedClient(make_response("hi")), db, settings=settings)
        session = await manager.create_session("Groceries")

        assert [s.id for s in await manager.list_sessions()] == [session.id]
        await manager.update_title(session.id, "Shopping")
        await manager.update_summary(session.id, "Weekly shopping list")
        stored = (await manager.list_sessions())[0]
        assert stored.title == "Shopping"
        assert stored.summary == "Weekly shopping list"

        assert await manager.delete_session(session.id) is True
        assert await manager.list_sessions() == []

    @pytest.mark.asyncio
    async def test_open_unknown_id_creates_it(self, db, settings):
        manager = SessionManager(ScriptedClient(make_response("hi")), db, settings=settings)
        session, agent = await manager.open_session("fresh")
        assert session.id == "fresh"
        assert await db.get_session("fresh") is not None
        assert agent.max_iterations == 4
        assert [m.content for m in agent.history] == ["sys"]


class TestPersistence:
    """Messages recorded by an opened agent reach the store."""

    @pytest.mark.asyncio
    async def test_turn_is_persisted_and_resumed(self, db, settings):
        registry = ToolRegistry()
        registry.register_tool(EchoTool())
        client = ScriptedClient(
            make_response(tool_calls=[make_call("c1", "echo", {"text": "x"})]),
            make_response("All done"),
        )
        manager = SessionManager(client, db, registry=registry, settings=settings)

        session, agent = await manager.open_session()
        await agent.process("Please echo x")

        stored = await db.get_messages(session.id)
        assert [m.role for m in stored] == [
            MessageRole.USER, MessageRole.ASSISTANT, MessageRole.TOOL, MessageRole.ASSISTANT,
        ]
        assert stored[2].tool_call_id == "c1"
        assert all(m.role != MessageRole.SYSTEM for m in stored)

        _, resumed = await manager.open_session(session.id)
        assert [m.content for m in resumed.history] == [
            "sys", "Please echo x", None, "echo: x", "All done",
        ]

    @pytest.mark.asyncio
    async def test_first_user_message_titles_the_session(self, db, settings):
        manager = SessionManager(ScriptedClient(make_response("ok")), db, settings=settings)
        session, agent = await manager.open_session()

        await agent.process("Help me plan a weekend in Porto")
        await agent.process("Second question")

        stored = await db.get_session(session.id)
        assert stored.title == "Help me plan a weekend in Porto"

    @pytest.mark.asyncio
    async def test_user_and_assistant_text_is_embedded(self, db, settings):
        embedder = FakeEmbedder({"I love hiking": [0.0, 1.0, 0.0]})
        manager = SessionManager(
            ScriptedClient(make_response("Hiking is great")), db, embedder=embedder, settings=settings,
        )
        session, agent = await manager.open_session()
        await agent.process("I love hiking")

        results = await manager.search_messages("I love hiking", session_id=session.id)
        assert results[0].item.content == "I love hiking"
        assert results[0].score == pytest.approx(1.0)
        assert {r.item.role for r in results} == {MessageRole.USER, MessageRole.ASSISTANT}

    @pytest.mark.asyncio
    async def test_embedding_failure_still_persists(self, db, settings):
        manager = SessionManager(
            ScriptedClient(make_response("ok")), db, embedder=FakeEmbedder(fail=True), settings=settings,
        )
        session, agent = await manager.open_session()
        assert await agent.process("hello") == "ok"
        assert len(await db.get_messages(session.id)) == 2

    @pytest.mark.asyncio
    async def test_search_without_embedder(self, db, settings):
        manager = SessionManager(ScriptedClient(make_response("ok")), db, settings=settings)
        assert await manager.search_messages("anything") == []


class TestEditAndSummary:
    """Truncation and summaries."""

    @pytest.mark.asyncio
    async def test_truncate_then_reopen(self, db, settings):
        manager = SessionManager(ScriptedClient(make_response("answer")), db, settings=settings)
        session, agent = await manager.open_session()
        await agent.process("first")
        await agent.process("second")

        assert await manager.truncate(session.id, 2) == 2
        _, reopened = await manager.open_session(session.id)
        assert [m.content for m in reopened.history] == ["sys", "first", "answer"]

    @pytest.mark.asyncio
    async def test_summarize_session(self, db, settings):
        client = ScriptedClient(make_response("ok"), make_response("  Planning a trip  "))
        manager = SessionManager(client, db, settings=settings)
        session, agent = await manager.open_session()
        await agent.process("I want to visit Porto")

        summary = await manager.summarize_session(session.id)

        assert summary == "Planning a trip"
        assert (await db.get_session(session.id)).summary == "Planning a trip"
        prompt, transcript = client.requests[-1][0]
        assert prompt.role == MessageRole.SYSTEM
        assert transcript.content == "user: I want to visit Porto\nassistant: ok"

    @pytest.mark.asyncio
    async def test_summarize_empty_session(self, db, settings):
        manager = SessionManager(ScriptedClient(make_response("unused")), db, settings=settings)
        session = await manager.create_session()
        assert await manager.summarize_session(session.id) is None
