"""SQLite persistence for sessions, messages and long-term memory.

Tables:
- ``sessions``: chat session metadata (id, title, summary, timestamps)
- ``messages``: full message history per session, with optional embeddings
- ``memory``: key -> content facts with optional embeddings

The sqlite3 connection is used from worker threads through
``asyncio.to_thread``; an asyncio lock serializes every operation so the
connection is never touched by two threads at once.
"""

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

from ..config import get_settings
from ..exceptions import StorageError, StoreInitializationError
from ..logging import get_logger
from ..types import MessageRole, ToolCall, UnifiedMessage
from .models import MemoryFact, SessionRecord, StoredMessage
from .vector import BruteForceIndex, Scored, Vector, VectorIndex

logger = get_logger(__name__)

R = TypeVar("R")

IN_MEMORY = ":memory:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id          TEXT PRIMARY KEY,
    title       TEXT,
    summary     TEXT,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id    TEXT,
    role          TEXT NOT NULL,
    content       TEXT,
    tool_calls    TEXT,
    tool_call_id  TEXT,
    name          TEXT,
    embedding     TEXT,
    images        TEXT,
    created_at    TEXT NOT NULL,
    FOREIGN KEY (session_id) REFERENCES sessions (id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id);

CREATE TABLE IF NOT EXISTS memory (
    key         TEXT PRIMARY KEY,
    content     TEXT NOT NULL,
    embedding   TEXT,
    updated_at  TEXT NOT NULL
);
"""

# columns added after the first release; older databases are migrated on open
MIGRATIONS: dict[str, list[tuple[str, str]]] = {
    "messages": [("embedding", "TEXT"), ("images", "TEXT")],
    "memory": [("embedding", "TEXT")],
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dumps(value: Any) -> str | None:
    return json.dumps(value) if value is not None else None


def _loads(value: str | None) -> Any:
    return json.loads(value) if value else None


class Database:
    """Async facade over a SQLite database file.

    Initialization is lazy, idempotent and race-safe: the first operation
    opens the file and creates the schema, concurrent first callers wait for
    that single setup, and a failed setup leaves the store un-ready so the
    next call tries again.
    """

    def __init__(self, db_path: str | Path, index: VectorIndex | None = None):
        """Initialize the store.

        Args:
            db_path: Path to the database file, or ":memory:".
            index: Ranking strategy for semantic search.
        """
        self.db_path = db_path if db_path == IN_MEMORY else Path(db_path).expanduser()
        self.index = index or BruteForceIndex()
        self._conn: sqlite3.Connection | None = None
        self._ready = False
        self._init_lock = asyncio.Lock()
        self._op_lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._ready

    # ─── lifecycle ────────────────────────────────────────────────────────────

    async def init(self) -> None:
        """Open the database and create tables if they don't exist."""
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            try:
                await asyncio.to_thread(self._open)
            except (sqlite3.Error, OSError) as e:
                self._discard_connection()
                logger.error(f"store initialization failed for {self.db_path}: {e}")
                raise StoreInitializationError(str(self.db_path), e) from e
            self._ready = True
            logger.debug(f"store ready at {self.db_path}")

    def _open(self) -> None:
        if self.db_path != IN_MEMORY:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn = conn
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.executescript(SCHEMA)
        for table, columns in MIGRATIONS.items():
            existing = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}
            for column, column_type in columns:
                if column not in existing:
                    logger.info(f"migrating table {table}: adding column {column}")
                    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")
        conn.commit()

    def _discard_connection(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.debug(f"closing half-open connection failed: {e}")
            self._conn = None
        self._ready = False

    async def close(self) -> None:
        """Close the database connection. The next operation reopens it."""
        async with self._op_lock:
            self._discard_connection()

    async def _run(self, fn: Callable[..., R], *args: Any) -> R:
        await self.init()
        async with self._op_lock:
            try:
                return await asyncio.to_thread(fn, *args)
            except sqlite3.Error as e:
                raise StorageError(f"{fn.__name__.lstrip('_')} failed: {e}") from e

    @property
    def _db(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Database is closed")
        return self._conn

    # ─── sessions ─────────────────────────────────────────────────────────────

    async def create_session(self, session_id: str, title: str | None = None) -> SessionRecord:
        return await self._run(self._create_session, session_id, title)

    def _create_session(self, session_id: str, title: str | None) -> SessionRecord:
        now = _now()
        self._db.execute(
            "INSERT INTO sessions (id, title, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (session_id, title, now, now),
        )
        self._db.commit()
        return SessionRecord(id=session_id, title=title, created_at=now, updated_at=now)

    async def get_session(self, session_id: str) -> SessionRecord | None:
        return await self._run(self._get_session, session_id)

    def _get_session(self, session_id: str) -> SessionRecord | None:
        row = self._db.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return self._row_to_session(row) if row else None

    async def list_sessions(self) -> list[SessionRecord]:
        """List sessions, most recently updated first."""
        return await self._run(self._list_sessions)

    def _list_sessions(self) -> list[SessionRecord]:
        rows = self._db.execute("SELECT * FROM sessions ORDER BY updated_at DESC, rowid DESC").fetchall()
        return [self._row_to_session(row) for row in rows]

    async def update_session_title(self, session_id: str, title: str) -> None:
        await self._run(self._update_session, session_id, "title", title)

    async def update_session_summary(self, session_id: str, summary: str) -> None:
        await self._run(self._update_session, session_id, "summary", summary)

    def _update_session(self, session_id: str, column: str, value: str) -> None:
        self._db.execute(
            f"UPDATE sessions SET {column} = ?, updated_at = ? WHERE id = ?",
            (value, _now(), session_id),
        )
        self._db.commit()

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session and all of its messages.

        Returns:
            True if a session was deleted.
        """
        return await self._run(self._delete_session, session_id)

    def _delete_session(self, session_id: str) -> bool:
        self._db.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
        cursor = self._db.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        self._db.commit()
        return cursor.rowcount > 0

    # ─── messages ─────────────────────────────────────────────────────────────

    async def save_message(
        self,
        session_id: str,
        message: UnifiedMessage,
        embedding: Vector | None = None,
    ) -> int:
        """Append a message to a session.

        Args:
            session_id: The owning session.
            message: The message to store.
            embedding: Optional vector of the message content for semantic search.

        Returns:
            The message's sequence id.
        """
        return await self._run(self._save_message, session_id, message, embedding)

    def _save_message(
        self,
        session_id: str,
        message: UnifiedMessage,
        embedding: Vector | None,
    ) -> int:
        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                {"id": tc.id, "name": tc.name, "arguments": tc.arguments}
                for tc in message.tool_calls
            ]
        now = _now()
        cursor = self._db.execute(
            """
            INSERT INTO messages
                (session_id, role, content, tool_calls, tool_call_id, name,
                 embedding, images, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                message.role.value,
                message.content,
                _dumps(tool_calls),
                message.tool_call_id,
                message.name,
                _dumps(list(embedding)) if embedding is not None else None,
                _dumps(message.images or None),
                now,
            ),
        )
        self._db.execute("UPDATE sessions SET updated_at = ? WHERE id = ?", (now, session_id))
        self._db.commit()
        return cursor.lastrowid

    async def get_messages(self, session_id: str) -> list[UnifiedMessage]:
        """Return a session's messages in insertion order."""
        return await self._run(self._get_messages, session_id)

    def _get_messages(self, session_id: str) -> list[UnifiedMessage]:
        rows = self._db.execute(
            """
            SELECT role, content, tool_calls, tool_call_id, name, images
            FROM messages WHERE session_id = ? ORDER BY id ASC
            """,
            (session_id,),
        ).fetchall()

        messages = []
        for row in rows:
            raw_calls = _loads(row["tool_calls"])
            tool_calls = None
            if raw_calls:
                tool_calls = [
                    ToolCall(id=tc["id"], name=tc["name"], arguments=tc.get("arguments", "{}"))
                    for tc in raw_calls
                ]
            messages.append(UnifiedMessage(
                role=MessageRole(row["role"]),
                content=row["content"],
                tool_calls=tool_calls,
                tool_call_id=row["tool_call_id"],
                name=row["name"],
                images=_loads(row["images"]),
            ))
        return messages

    async def truncate_messages(self, session_id: str, index: int) -> int:
        """Delete a session's messages from ``index`` (0-based) onwards.

        Used for edit-and-regenerate.

        Returns:
            Number of deleted messages.
        """
        return await self._run(self._truncate_messages, session_id, index)

    def _truncate_messages(self, session_id: str, index: int) -> int:
        rows = self._db.execute(
            "SELECT id FROM messages WHERE session_id = ? ORDER BY id ASC",
            (session_id,),
        ).fetchall()
        if index < 0 or len(rows) <= index:
            return 0
        cursor = self._db.execute(
            "DELETE FROM messages WHERE session_id = ? AND id >= ?",
            (session_id, rows[index]["id"]),
        )
        self._db.commit()
        return cursor.rowcount

    # ─── memory ───────────────────────────────────────────────────────────────

    async def save_memory(
        self,
        key: str,
        content: str,
        embedding: Vector | None = None,
    ) -> MemoryFact:
        """Insert or replace the fact stored under ``key``.

        Content, embedding and timestamp are all replaced; there is never
        more than one record per key.
        """
        return await self._run(self._save_memory, key, content, embedding)

    def _save_memory(self, key: str, content: str, embedding: Vector | None) -> MemoryFact:
        vector = list(embedding) if embedding is not None else None
        now = _now()
        self._db.execute(
            """
            INSERT INTO memory (key, content, embedding, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                content = excluded.content,
                embedding = excluded.embedding,
                updated_at = excluded.updated_at
            """,
            (key, content, _dumps(vector), now),
        )
        self._db.commit()
        return MemoryFact(key=key, content=content, embedding=vector, updated_at=now)

    async def get_memory(self, key: str) -> MemoryFact | None:
        """Return the fact under ``key``, or None if there is none."""
        return await self._run(self._get_memory, key)

    def _get_memory(self, key: str) -> MemoryFact | None:
        row = self._db.execute(
            "SELECT key, content, embedding, updated_at FROM memory WHERE key = ?",
            (key,),
        ).fetchone()
        return self._row_to_fact(row) if row else None

    async def delete_memory(self, key: str) -> bool:
        """Delete the fact under ``key``.

        Returns:
            True if a fact was deleted.
        """
        return await self._run(self._delete_memory, key)

    def _delete_memory(self, key: str) -> bool:
        cursor = self._db.execute("DELETE FROM memory WHERE key = ?", (key,))
        self._db.commit()
        return cursor.rowcount > 0

    async def list_memories(self, limit: int = 15) -> list[MemoryFact]:
        """Return the most recently updated facts."""
        return await self._run(self._list_memories, limit)

    def _list_memories(self, limit: int) -> list[MemoryFact]:
        rows = self._db.execute(
            "SELECT key, content, embedding, updated_at FROM memory "
            "ORDER BY updated_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._row_to_fact(row) for row in rows]

    # ─── semantic search ──────────────────────────────────────────────────────

    async def search_messages(
        self,
        query: Vector,
        k: int = 5,
        session_id: str | None = None,
    ) -> list[Scored[StoredMessage]]:
        """Rank stored user/assistant messages by similarity to ``query``.

        Args:
            query: Query embedding.
            k: Maximum number of results.
            session_id: Restrict the search to one session.

        Raises:
            DimensionMismatchError: If a stored vector differs in size from the query.
        """
        candidates = await self._run(self._message_candidates, session_id)
        return self.index.rank(query, candidates, k)

    def _message_candidates(self, session_id: str | None) -> list[tuple[StoredMessage, list[float]]]:
        sql = (
            "SELECT id, session_id, role, content, created_at, embedding FROM messages "
            "WHERE embedding IS NOT NULL AND role IN ('user', 'assistant')"
        )
        params: tuple = ()
        if session_id is not None:
            sql += " AND session_id = ?"
            params = (session_id,)
        rows = self._db.execute(sql + " ORDER BY id ASC", params).fetchall()
        return [
            (
                StoredMessage(
                    id=row["id"],
                    session_id=row["session_id"],
                    role=MessageRole(row["role"]),
                    content=row["content"],
                    created_at=row["created_at"],
                ),
                json.loads(row["embedding"]),
            )
            for row in rows
        ]

    async def search_memory(self, query: Vector, k: int = 8) -> list[Scored[MemoryFact]]:
        """Rank stored facts by similarity to ``query``.

        Raises:
            DimensionMismatchError: If a stored vector differs in size from the query.
        """
        candidates = await self._run(self._memory_candidates)
        return self.index.rank(query, candidates, k)

    def _memory_candidates(self) -> list[tuple[MemoryFact, list[float]]]:
        rows = self._db.execute(
            "SELECT key, content, embedding, updated_at FROM memory "
            "WHERE embedding IS NOT NULL ORDER BY rowid ASC"
        ).fetchall()
        facts = [self._row_to_fact(row) for row in rows]
        return [(fact, fact.embedding) for fact in facts]

    # ─── utility ──────────────────────────────────────────────────────────────

    async def clear_all_data(self) -> None:
        """Delete all messages and sessions. Memory facts are kept."""
        await self._run(self._clear_all_data)

    def _clear_all_data(self) -> None:
        self._db.execute("DELETE FROM messages")
        self._db.execute("DELETE FROM sessions")
        self._db.commit()

    def _row_to_session(self, row: sqlite3.Row) -> SessionRecord:
        return SessionRecord(
            id=row["id"],
            title=row["title"],
            summary=row["summary"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_fact(self, row: sqlite3.Row) -> MemoryFact:
        return MemoryFact(
            key=row["key"],
            content=row["content"],
            embedding=_loads(row["embedding"]),
            updated_at=row["updated_at"],
        )


# process-wide store shared across sessions
_database: Database | None = None


def get_database() -> Database:
    """Get the shared store, created from settings on first use.

    Only the object is created here; the file is opened lazily by the
    first operation.
    """
    global _database
    if _database is None:
        _database = Database(get_settings().db_path)
    return _database


async def reset_database() -> None:
    """Close and forget the shared store."""
    global _database
    if _database is not None:
        await _database.close()
    _database = None
