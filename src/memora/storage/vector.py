"""Similarity ranking over embedding vectors.

Ranking sits behind the VectorIndex interface (query vector in, ranked
records with scores out). The default BruteForceIndex scores every
candidate, which is O(n) per query. That is the expected cost for a
single-user personal store; an approximate index can replace it without
touching callers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

import numpy as np

from ..exceptions import DimensionMismatchError

T = TypeVar("T")

Vector = Sequence[float]


@dataclass
class Scored(Generic[T]):
    """A record paired with its similarity to the query."""
    item: T
    score: float


def _as_vector(values: Vector) -> np.ndarray:
    vec = np.asarray(values, dtype=np.float64)
    if vec.ndim != 1:
        raise ValueError(f"Embedding must be one-dimensional, got shape {vec.shape}")
    return vec


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine of the angle between two vectors.

    Args:
        a: First vector.
        b: Second vector, same length as ``a``.

    Returns:
        Similarity in [-1, 1]. A zero vector has no direction and scores 0.0.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    va = _as_vector(a)
    vb = _as_vector(b)
    if va.shape != vb.shape:
        raise DimensionMismatchError(len(va), len(vb))

    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    # float error can push the ratio just past 1
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


class VectorIndex(ABC):
    """Ranks candidate records by similarity to a query vector."""

    @abstractmethod
    def rank(
        self,
        query: Vector,
        candidates: Sequence[tuple[T, Vector]],
        k: int,
    ) -> list[Scored[T]]:
        """Return the ``k`` best candidates, most similar first.

        Args:
            query: The query embedding.
            candidates: (record, embedding) pairs.
            k: Maximum number of results.
        """


class BruteForceIndex(VectorIndex):
    """Scores every candidate against the query.

    Ties keep the candidates' input order.
    """

    def rank(
        self,
        query: Vector,
        candidates: Sequence[tuple[T, Vector]],
        k: int,
    ) -> list[Scored[T]]:
        if k <= 0 or not candidates:
            return []

        q = _as_vector(query)
        rows = []
        for _, embedding in candidates:
            row = _as_vector(embedding)
            if row.shape != q.shape:
                raise DimensionMismatchError(len(q), len(row))
            rows.append(row)

        matrix = np.vstack(rows)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
        dots = matrix @ q
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, dots / norms, 0.0)
        scores = np.clip(scores, -1.0, 1.0)

        order = np.argsort(-scores, kind="stable")[:k]
        return [Scored(item=candidates[i][0], score=float(scores[i])) for i in order]


_default_index = BruteForceIndex()


def rank(
    query: Vector,
    candidates: Sequence[tuple[T, Vector]],
    k: int,
) -> list[Scored[T]]:
    """Rank candidates with the default brute-force index."""
    return _default_index.rank(query, candidates, k)
