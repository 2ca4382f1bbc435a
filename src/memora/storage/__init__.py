"""Persistent storage: SQLite database and vector similarity ranking."""

from .database import Database, get_database, reset_database
from .models import MemoryFact, SessionRecord, StoredMessage
from .vector import BruteForceIndex, Scored, VectorIndex, cosine_similarity, rank

__all__ = [
    "Database",
    "get_database",
    "reset_database",
    "MemoryFact",
    "SessionRecord",
    "StoredMessage",
    "BruteForceIndex",
    "Scored",
    "VectorIndex",
    "cosine_similarity",
    "rank",
]
