"""
Ternary Inverted Index + Two-Stage Search
=========================================

The index keeps, for every dimension, the postings of vector ids whose trit
at that dimension is non-zero, together with the trit sign. Postings are
laid out CSR-style (one flat array sorted by dimension plus an offsets
array), so scoring a query touches only the query's non-zero dimensions.

Search runs in two stages:
  1. Coarse: accumulate ternary dot products from the postings and keep the
     best `candidate_k` ids.
  2. Fine: rerank the candidates by exact cosine similarity against the
     full vectors and return the top `k`.

Usage:
    index = TernaryInvertedIndex()
    for field_id, vec in id_to_vec.items():
        index.add(field_id, vec)
    index.finalize()
    results = two_stage_search(query, index, id_to_vec, SearchConfig(), k=5)
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from .exceptions import DimensionMismatchError, RetrievalError
from .ternary_hdv import TernaryHDV


@dataclass(frozen=True)
class SearchConfig:
    candidate_k: int = 50


@dataclass(frozen=True)
class SearchResult:
    id: int
    score: float
    coarse_score: int


class TernaryInvertedIndex:
    """Inverted index over ternary hypervectors, immutable after finalize()."""

    def __init__(self):
        self._pending: Dict[int, TernaryHDV] = {}
        self.dimension: Optional[int] = None
        self._finalized = False

        self._ids: np.ndarray = np.empty(0, dtype=np.int64)
        self._offsets: Optional[np.ndarray] = None
        self._post_rows: np.ndarray = np.empty(0, dtype=np.int64)
        self._post_signs: np.ndarray = np.empty(0, dtype=np.int8)

    def __len__(self) -> int:
        return len(self._ids) if self._finalized else len(self._pending)

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @property
    def ids(self) -> List[int]:
        if self._finalized:
            return [int(i) for i in self._ids]
        return sorted(self._pending)

    def add(self, vec_id: int, vec: TernaryHDV) -> None:
        """Register a vector under `vec_id`. Only allowed before finalize()."""
        if self._finalized:
            raise RetrievalError("add", "index is already finalized", {"id": vec_id})
        if vec_id in self._pending:
            raise RetrievalError("add", f"duplicate id {vec_id}", {"id": vec_id})
        if self.dimension is None:
            self.dimension = vec.dimension
        elif vec.dimension != self.dimension:
            raise DimensionMismatchError(self.dimension, vec.dimension, "index.add")
        self._pending[vec_id] = vec

    def finalize(self) -> None:
        """Freeze the index and build the postings. Calling it twice is a no-op."""
        if self._finalized:
            return
        self._finalized = True
        if not self._pending:
            return

        self._ids = np.array(sorted(self._pending), dtype=np.int64)
        dense = np.stack([self._pending[int(i)].to_dense() for i in self._ids])  # (N, D)
        by_dim = dense.T  # (D, N)

        # nonzero walks (D, N) in row-major order: postings come out sorted by dimension
        dims, rows = np.nonzero(by_dim)
        self._post_rows = rows.astype(np.int64)
        self._post_signs = by_dim[dims, rows].astype(np.int8)
        self._offsets = np.searchsorted(dims, np.arange(self.dimension + 1), side="left")
        self._pending = {}

    def coarse_scores(self, query: TernaryHDV) -> np.ndarray:
        """Ternary dot product of `query` with every indexed vector (row order)."""
        if not self._finalized:
            raise RetrievalError("query", "index must be finalized before querying")
        n = len(self._ids)
        if n == 0:
            return np.zeros(0, dtype=np.int64)
        if query.dimension != self.dimension:
            raise DimensionMismatchError(self.dimension, query.dimension, "index.query")

        q = query.to_dense()
        q_dims = np.flatnonzero(q)
        starts = self._offsets[q_dims]
        lengths = self._offsets[q_dims + 1] - starts
        total = int(lengths.sum())
        if total == 0:
            return np.zeros(n, dtype=np.int64)

        # Flat positions of every posting touched by the query
        seg_begin = np.cumsum(lengths) - lengths
        gather = np.repeat(starts - seg_begin, lengths) + np.arange(total)
        weights = self._post_signs[gather].astype(np.int64) * np.repeat(q[q_dims].astype(np.int64), lengths)
        scores = np.bincount(self._post_rows[gather], weights=weights, minlength=n)
        return np.rint(scores).astype(np.int64)

    def query(self, query: TernaryHDV, candidate_k: int) -> List[Tuple[int, int]]:
        """
        Stage 1: top `candidate_k` ids by ternary dot product.

        Returns:
            List of (id, dot) tuples, sorted by dot descending then id ascending.
        """
        scores = self.coarse_scores(query)
        if scores.size == 0 or candidate_k <= 0:
            return []
        order = np.lexsort((self._ids, -scores))[:candidate_k]
        return [(int(self._ids[r]), int(scores[r])) for r in order]


def two_stage_search(
    query: TernaryHDV,
    index: TernaryInvertedIndex,
    id_to_vec: Dict[int, TernaryHDV],
    config: SearchConfig,
    k: int,
) -> List[SearchResult]:
    """
    Coarse inverted-index pass followed by an exact cosine rerank.

    Candidates missing from `id_to_vec` are dropped. Results are ordered by
    cosine similarity descending, ties broken by ascending id.
    """
    if k <= 0:
        return []

    candidates = index.query(query, max(config.candidate_k, k))

    reranked: List[SearchResult] = []
    for cand_id, coarse in candidates:
        vec = id_to_vec.get(cand_id)
        if vec is None:
            continue
        reranked.append(
            SearchResult(id=cand_id, score=query.cosine_similarity(vec), coarse_score=coarse)
        )

    reranked.sort(key=lambda r: (-r.score, r.id))
    return reranked[:k]
