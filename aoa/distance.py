"""
Weighted Euclidean nearest-neighbour search with exclusion masks.

    d(i, j) = sqrt(sum_k w_k * (A[i, k] - B[j, k]) ** 2)

Rows of A are processed in chunks; each chunk only holds a chunk x n_b
distance buffer, and B is shared read-only. Squared differences are
accumulated column by column in a fixed order, so the value for any (i, j)
does not depend on the chunk size or on how chunks are spread over workers.
"""

from __future__ import annotations

from functools import partial
from typing import Callable, Optional, Protocol

import numpy as np

from .logging import get_logger

logger = get_logger(__name__)


class ExclusionRule(Protocol):
    def mask(self, rows: np.ndarray, n_b: int) -> np.ndarray:
        """Boolean (len(rows), n_b) array, True where the pair is excluded."""


class SelfExclusion:
    """A is B: a row never matches itself."""

    def mask(self, rows: np.ndarray, n_b: int) -> np.ndarray:
        return rows[:, None] == np.arange(n_b)[None, :]


class FoldExclusion:
    """A is B: exclude the row itself and every row sharing its fold (code >= 0)."""

    def __init__(self, codes: np.ndarray):
        self.codes = np.asarray(codes, dtype=np.int64)

    def mask(self, rows: np.ndarray, n_b: int) -> np.ndarray:
        own = self.codes[rows]
        same = (own[:, None] >= 0) & (own[:, None] == self.codes[None, :n_b])
        return same | (rows[:, None] == np.arange(n_b)[None, :])


class CallableExclusion:
    """
    Adapter for an arbitrary ``excluded(i, j) -> bool`` predicate. Slow.
    Pairs with i == j are excluded as well unless ``self_match`` is False,
    which is only meaningful when A and B are different matrices.
    """

    def __init__(self, excluded: Callable[[int, int], bool], self_match: bool = True):
        self.excluded = excluded
        self.self_match = self_match

    def mask(self, rows: np.ndarray, n_b: int) -> np.ndarray:
        out = np.zeros((len(rows), n_b), dtype=bool)
        for r, i in enumerate(rows):
            for j in range(n_b):
                out[r, j] = bool(self.excluded(int(i), j)) or (self.self_match and i == j)
        return out


class DistanceEngine:
    """
    Nearest-neighbour distances from rows of A to rows of B.

    ``executor`` is any object with an order-preserving ``map`` (for example a
    ``concurrent.futures.Executor``). It is owned by the caller and never shut
    down here.
    """

    def __init__(self, weights: np.ndarray, chunk_size: int = 1024, executor=None):
        self.weights = np.asarray(weights, dtype=float)
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = int(chunk_size)
        self.executor = executor

    def nearest(
        self,
        A: np.ndarray,
        B: np.ndarray,
        exclude: Optional[ExclusionRule] = None,
        radius: float | None = None,
        scale: float = 1.0,
    ) -> tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Minimum non-excluded distance per row of A (+inf when every pair is
        excluded). With ``radius``, also the number of non-excluded B rows with
        ``distance / scale <= radius``.
        """
        A, B = self._check(A, B)
        chunks = self._chunks(len(A))
        fn = partial(_nearest_chunk, A, B, self.weights, exclude, radius, scale)
        mapper = self.executor.map if self.executor is not None else map
        results = list(mapper(fn, chunks))
        logger.debug("nearest_computed", n_a=len(A), n_b=len(B), n_chunks=len(chunks))

        if not results:
            empty_counts = np.zeros(0, dtype=np.int64) if radius is not None else None
            return np.zeros(0, dtype=float), empty_counts
        dmin = np.concatenate([r[0] for r in results])
        counts = np.concatenate([r[1] for r in results]) if radius is not None else None
        return dmin, counts

    def pairwise(self, A: np.ndarray, B: np.ndarray, exclude: Optional[ExclusionRule] = None) -> np.ndarray:
        """Full distance matrix; excluded pairs are +inf. Small inputs only."""
        A, B = self._check(A, B)
        rows = np.arange(len(A))
        return _distances(A, B, self.weights, rows, exclude)

    def _check(self, A, B) -> tuple[np.ndarray, np.ndarray]:
        A = np.asarray(A, dtype=float)
        B = np.asarray(B, dtype=float)
        if A.ndim != 2 or B.ndim != 2:
            raise ValueError("A and B must be 2-D matrices")
        if A.shape[1] != B.shape[1] or A.shape[1] != len(self.weights):
            raise ValueError(
                f"Column mismatch: A has {A.shape[1]}, B has {B.shape[1]}, weights {len(self.weights)}"
            )
        return A, B

    def _chunks(self, n: int) -> list[np.ndarray]:
        return [np.arange(s, min(s + self.chunk_size, n)) for s in range(0, n, self.chunk_size)]


def _distances(A, B, weights, rows, exclude) -> np.ndarray:
    d2 = np.zeros((len(rows), len(B)), dtype=float)
    Ar = A[rows]
    for k, wk in enumerate(weights):
        if wk == 0.0:
            continue
        diff = Ar[:, k][:, None] - B[:, k][None, :]
        d2 += wk * (diff * diff)
    d = np.sqrt(d2)
    if exclude is not None:
        d[exclude.mask(rows, len(B))] = np.inf
    return d


def _nearest_chunk(A, B, weights, exclude, radius, scale, rows):
    d = _distances(A, B, weights, rows, exclude)
    if d.shape[1] == 0:
        dmin = np.full(len(rows), np.inf)
    else:
        dmin = d.min(axis=1)
    counts = None
    if radius is not None:
        counts = np.count_nonzero(np.isfinite(d) & (d / scale <= radius), axis=1)
    return dmin, counts
