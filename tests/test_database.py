"""Tests for the SQLite store."""

import asyncio
import sqlite3

import pytest

from memora.config import get_settings
from memora.exceptions import StorageError, StoreInitializationError
from memora.storage import database as database_module
from memora.storage.database import Database, get_database, reset_database
from memora.types import MessageRole, ToolCall, UnifiedMessage


def user(text: str) -> UnifiedMessage:
    return UnifiedMessage(role=MessageRole.USER, content=text)


def assistant(text: str | None, tool_calls=None) -> UnifiedMessage:
    return UnifiedMessage(role=MessageRole.ASSISTANT, content=text, tool_calls=tool_calls)


class TestInitialization:
    """Lazy, idempotent and retryable initialization."""

    @pytest.mark.asyncio
    async def test_lazy_until_first_operation(self, db, tmp_path):
        assert not db.is_ready
        assert not (tmp_path / "memora.db").exists()
        await db.list_sessions()
        assert db.is_ready
        assert (tmp_path / "memora.db").exists()

    @pytest.mark.asyncio
    async def test_concurrent_first_callers_share_one_setup(self, db, monkeypatch):
        opens = 0
        original_open = Database._open

        def counting_open(self):
            nonlocal opens
            opens += 1
            original_open(self)

        monkeypatch.setattr(Database, "_open", counting_open)
        await asyncio.gather(*(db.list_memories() for _ in range(5)))
        assert opens == 1

    @pytest.mark.asyncio
    async def test_failed_init_is_retried(self, db, monkeypatch):
        attempts = 0
        original_open = Database._open

        def flaky_open(self):
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise sqlite3.OperationalError("disk I/O error")
            original_open(self)

        monkeypatch.setattr(Database, "_open", flaky_open)

        with pytest.raises(StoreInitializationError):
            await db.list_sessions()
        assert not db.is_ready

        assert await db.list_sessions() == []
        assert db.is_ready
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = Database(blocker / "nested" / "memora.db")
        with pytest.raises(StoreInitializationError):
            await store.init()

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        store = Database(":memory:")
        await store.save_memory("k", "v")
        assert (await store.get_memory("k")).content == "v"
        await store.close()

    @pytest.mark.asyncio
    async def test_migrates_old_schema(self, tmp_path):
        path = tmp_path / "old.db"
        conn = sqlite3.connect(path)
        conn.executescript(
            """
            CREATE TABLE sessions (id TEXT PRIMARY KEY, title TEXT, summary TEXT,
                                   created_at TEXT NOT NULL, updated_at TEXT NOT NULL);
            CREATE TABLE messages (id INTEGER PRIMARY KEY AUTOINCREMENT, session_id TEXT,
                                   role TEXT NOT NULL, content TEXT, tool_calls TEXT,
                                   tool_call_id TEXT, name TEXT, created_at TEXT NOT NULL);
            CREATE TABLE memory (key TEXT PRIMARY KEY, content TEXT NOT NULL,
                                 updated_at TEXT NOT NULL);
            INSERT INTO memory (key, content, updated_at) VALUES ('pet', 'cat', '2024-01-01');
            """
        )
        conn.commit()
        conn.close()

        store = Database(path)
        fact = await store.get_memory("pet")
        assert fact.content == "cat"
        assert fact.embedding is None

        await store.create_session("s1")
        await store.save_message("s1", user("hi"), embedding=[1.0, 0.0])
        assert len(await store.search_messages([1.0, 0.0])) == 1
        await store.close()

    @pytest.mark.asyncio
    async def test_close_then_reopen(self, db):
        await db.save_memory("k", "v")
        await db.close()
        assert not db.is_ready
        assert (await db.get_memory("k")).content == "v"


class TestSessions:
    """Session bookkeeping."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, db):
        created = await db.create_session("s1", title="First chat")
        fetched = await db.get_session("s1")
        assert fetched.title == "First chat"
        assert fetched.created_at == created.created_at
        assert await db.get_session("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_is_storage_error(self, db):
        await db.create_session("s1")
        with pytest.raises(StorageError):
            await db.create_session("s1")

    @pytest.mark.asyncio
    async def test_list_most_recently_updated_first(self, db):
        await db.create_session("old")
        await db.create_session("new")
        await db.save_message("old", user("bump"))
        sessions = await db.list_sessions()
        assert [s.id for s in sessions] == ["old", "new"]

    @pytest.mark.asyncio
    async def test_update_title_and_summary(self, db):
        await db.create_session("s1")
        await db.update_session_title("s1", "Trip planning")
        await db.update_session_summary("s1", "Planning a trip to Porto")
        session = await db.get_session("s1")
        assert session.title == "Trip planning"
        assert session.summary == "Planning a trip to Porto"

    @pytest.mark.asyncio
    async def test_delete_cascades_messages(self, db):
        await db.create_session("s1")
        await db.save_message("s1", user("hello"))
        assert await db.delete_session("s1") is True
        assert await db.get_messages("s1") == []
        assert await db.delete_session("s1") is False

    @pytest.mark.asyncio
    async def test_clear_all_data_keeps_memory(self, db):
        await db.create_session("s1")
        await db.save_message("s1", user("hello"))
        await db.save_memory("user_name", "Alex")
        await db.clear_all_data()
        assert await db.list_sessions() == []
        assert await db.get_messages("s1") == []
        assert (await db.get_memory("user_name")).content == "Alex"


class TestMessages:
    """Message storage."""

    @pytest.mark.asyncio
    async def test_messages_keep_order_and_fields(self, db):
        await db.create_session("s1")
        call = ToolCall(id="c1", name="get_weather", arguments='{"location": "Oslo"}')
        stored = [
            UnifiedMessage(role=MessageRole.USER, content="Weather?", images=["aW1n"]),
            assistant(None, tool_calls=[call]),
            UnifiedMessage(role=MessageRole.TOOL, content="Sunny", tool_call_id="c1", name="get_weather"),
            assistant("It's sunny."),
        ]
        for message in stored:
            await db.save_message("s1", message)

        assert await db.get_messages("s1") == stored

    @pytest.mark.asyncio
    async def test_save_requires_existing_session(self, db):
        with pytest.raises(StorageError):
            await db.save_message("nope", user("orphan"))

    @pytest.mark.asyncio
    async def test_truncate_from_index(self, db):
        await db.create_session("s1")
        for i in range(5):
            await db.save_message("s1", user(f"m{i}"))

        assert await db.truncate_messages("s1", 2) == 3
        assert [m.content for m in await db.get_messages("s1")] == ["m0", "m1"]
        assert await db.truncate_messages("s1", 10) == 0

    @pytest.mark.asyncio
    async def test_search_only_embedded_user_and_assistant(self, db):
        await db.create_session("s1")
        await db.save_message("s1", user("about cats"), embedding=[1.0, 0.0])
        await db.save_message("s1", assistant("about dogs"), embedding=[0.0, 1.0])
        await db.save_message("s1", user("no vector"))
        await db.save_message(
            "s1",
            UnifiedMessage(role=MessageRole.TOOL, content="tool", tool_call_id="x"),
            embedding=[1.0, 0.0],
        )

        results = await db.search_messages([1.0, 0.1])
        assert [r.item.content for r in results] == ["about cats", "about dogs"]
        assert results[0].item.role == MessageRole.USER
        assert results[0].score > results[1].score

    @pytest.mark.asyncio
    async def test_search_restricted_to_session(self, db):
        await db.create_session("a")
        await db.create_session("b")
        await db.save_message("a", user("in a"), embedding=[1.0, 0.0])
        await db.save_message("b", user("in b"), embedding=[1.0, 0.0])
        results = await db.search_messages([1.0, 0.0], session_id="b")
        assert [r.item.session_id for r in results] == ["b"]


class TestMemory:
    """Key -> fact storage."""

    @pytest.mark.asyncio
    async def test_save_get_delete(self, db):
        await db.save_memory("user_name", "Alex")
        assert (await db.get_memory("user_name")).content == "Alex"
        assert await db.delete_memory("user_name") is True
        assert await db.get_memory("user_name") is None
        assert await db.delete_memory("user_name") is False

    @pytest.mark.asyncio
    async def test_upsert_keeps_one_record_with_latest_values(self, db):
        first = await db.save_memory("city", "Lisbon", [1.0, 0.0])
        second = await db.save_memory("city", "Porto", [0.0, 1.0])

        facts = await db.list_memories()
        assert len([f for f in facts if f.key == "city"]) == 1
        fact = await db.get_memory("city")
        assert fact.content == "Porto"
        assert fact.embedding == [0.0, 1.0]
        assert fact.updated_at == second.updated_at
        assert second.updated_at >= first.updated_at

    @pytest.mark.asyncio
    async def test_list_most_recent_first_with_limit(self, db):
        for i in range(20):
            await db.save_memory(f"k{i}", f"v{i}")
        facts = await db.list_memories()
        assert len(facts) == 15
        assert facts[0].key == "k19"
        assert [f.key for f in await db.list_memories(limit=2)] == ["k19", "k18"]

    @pytest.mark.asyncio
    async def test_search_memory_ranks_identical_embedding_first(self, db):
        await db.save_memory("a", "weak one", [0.9, 0.1, 0.0])
        await db.save_memory("user_city", "Lisbon", [0.2, 0.9, 0.4])
        await db.save_memory("b", "weak two", [0.0, 0.2, 1.0])
        await db.save_memory("c", "weak three", [0.5, 0.5, 0.5])
        await db.save_memory("no_vector", "skipped")

        results = await db.search_memory([0.2, 0.9, 0.4])
        assert results[0].item.key == "user_city"
        assert results[0].score == pytest.approx(1.0)
        assert len(results) == 4
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_search_memory_respects_k(self, db):
        for i in range(12):
            await db.save_memory(f"k{i}", "v", [1.0, float(i)])
        assert len(await db.search_memory([1.0, 0.0])) == 8
        assert len(await db.search_memory([1.0, 0.0], k=3)) == 3


class TestSharedDatabase:
    """The process-wide store."""

    @pytest.mark.asyncio
    async def test_get_database_is_a_singleton(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORA_DB_PATH", str(tmp_path / "shared.db"))
        get_settings.cache_clear()
        await reset_database()
        try:
            first = get_database()
            assert get_database() is first
            assert first.db_path == tmp_path / "shared.db"
            await first.save_memory("k", "v")
        finally:
            await reset_database()
            get_settings.cache_clear()
        assert database_module._database is None
