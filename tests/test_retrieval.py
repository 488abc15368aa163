"""
Pattern Monitor Test Suite - Ternary Inverted Index Tests
=========================================================
Tests for the coarse postings scorer and the two-stage cosine rerank.
"""

import pytest

from pattern_monitor.core.exceptions import DimensionMismatchError, RetrievalError
from pattern_monitor.core.retrieval import (
    SearchConfig,
    SearchResult,
    TernaryInvertedIndex,
    two_stage_search,
)
from pattern_monitor.core.ternary_hdv import TernaryHDV

D = 1024


def _atom(name: str) -> TernaryHDV:
    return TernaryHDV.from_seed(name.encode(), D)


@pytest.fixture
def vectors():
    base = [_atom(f"v{i}") for i in range(6)]
    # Sparse members so the postings carry zeros too
    base.append(base[0].bundle(base[1]))
    base.append(base[2].bundle(base[3]))
    return {i: v for i, v in enumerate(base)}


@pytest.fixture
def index(vectors):
    idx = TernaryInvertedIndex()
    for vec_id, vec in vectors.items():
        idx.add(vec_id, vec)
    idx.finalize()
    return idx


class TestIndexLifecycle:
    def test_len_before_and_after_finalize(self, vectors):
        idx = TernaryInvertedIndex()
        for vec_id, vec in vectors.items():
            idx.add(vec_id, vec)
        assert len(idx) == len(vectors)
        assert not idx.is_finalized
        idx.finalize()
        assert len(idx) == len(vectors)
        assert idx.is_finalized

    def test_ids_sorted(self):
        idx = TernaryInvertedIndex()
        idx.add(5, _atom("a"))
        idx.add(2, _atom("b"))
        assert idx.ids == [2, 5]
        idx.finalize()
        assert idx.ids == [2, 5]

    def test_add_after_finalize_rejected(self, index):
        with pytest.raises(RetrievalError, match="already finalized"):
            index.add(99, _atom("late"))

    def test_duplicate_id_rejected(self):
        idx = TernaryInvertedIndex()
        idx.add(0, _atom("a"))
        with pytest.raises(RetrievalError, match="duplicate"):
            idx.add(0, _atom("b"))

    def test_dimension_mismatch_on_add(self):
        idx = TernaryInvertedIndex()
        idx.add(0, _atom("a"))
        with pytest.raises(DimensionMismatchError):
            idx.add(1, TernaryHDV.from_seed(b"b", 512))

    def test_finalize_twice_is_noop(self, index, vectors):
        index.finalize()
        assert len(index) == len(vectors)

    def test_query_before_finalize_rejected(self):
        idx = TernaryInvertedIndex()
        idx.add(0, _atom("a"))
        with pytest.raises(RetrievalError, match="finalized"):
            idx.query(_atom("a"), 5)

    def test_empty_index(self):
        idx = TernaryInvertedIndex()
        idx.finalize()
        assert len(idx) == 0
        assert idx.query(_atom("a"), 5) == []


class TestCoarseScoring:
    def test_scores_equal_dot_products(self, index, vectors):
        query = _atom("v0").bundle(_atom("q"))
        scores = index.coarse_scores(query)
        expected = [query.dot(vectors[i]) for i in index.ids]
        assert scores.tolist() == expected

    def test_zero_query_scores_zero(self, index, vectors):
        assert index.coarse_scores(TernaryHDV.zeros(D)).tolist() == [0] * len(vectors)

    def test_query_dimension_mismatch(self, index):
        with pytest.raises(DimensionMismatchError):
            index.query(TernaryHDV.from_seed(b"q", 512), 5)

    def test_self_query_ranks_first(self, index, vectors):
        top_id, top_score = index.query(vectors[3], 1)[0]
        assert top_id == 3
        assert top_score == D

    def test_candidate_k_limits_results(self, index):
        assert len(index.query(_atom("v0"), 3)) == 3
        assert index.query(_atom("v0"), 0) == []

    def test_sorted_by_score_then_id(self, index):
        results = index.query(_atom("q"), 50)
        keys = [(-score, vec_id) for vec_id, score in results]
        assert keys == sorted(keys)

    def test_ties_broken_by_ascending_id(self):
        idx = TernaryInvertedIndex()
        same = _atom("same")
        idx.add(3, same)
        idx.add(1, same)
        idx.add(2, _atom("other"))
        idx.finalize()
        results = idx.query(same, 2)
        assert results == [(1, D), (3, D)]


class TestTwoStageSearch:
    def test_self_match_first(self, index, vectors):
        results = two_stage_search(vectors[0], index, vectors, SearchConfig(), k=5)
        assert results[0].id == 0
        assert results[0].score == pytest.approx(1.0)
        assert isinstance(results[0], SearchResult)

    def test_result_cap(self, index, vectors):
        assert len(two_stage_search(vectors[0], index, vectors, SearchConfig(), k=5)) == 5

    def test_fewer_vectors_than_k(self):
        idx = TernaryInvertedIndex()
        vecs = {0: _atom("a"), 1: _atom("b")}
        for vec_id, vec in vecs.items():
            idx.add(vec_id, vec)
        idx.finalize()
        assert len(two_stage_search(vecs[0], idx, vecs, SearchConfig(), k=5)) == 2

    def test_non_positive_k(self, index, vectors):
        assert two_stage_search(vectors[0], index, vectors, SearchConfig(), k=0) == []

    def test_sorted_by_cosine(self, index, vectors):
        results = two_stage_search(_atom("v1"), index, vectors, SearchConfig(), k=8)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_rerank_uses_cosine_not_dot(self, index, vectors):
        # vectors[6] = v0 + v1 is sparse: lower dot than v0 itself but still highly similar
        results = two_stage_search(vectors[6], index, vectors, SearchConfig(), k=3)
        assert results[0].id == 6
        assert {r.id for r in results[1:]} == {0, 1}

    def test_coarse_score_reported(self, index, vectors):
        results = two_stage_search(vectors[2], index, vectors, SearchConfig(), k=1)
        assert results[0].coarse_score == vectors[2].dot(vectors[2])

    def test_missing_vectors_skipped(self, index, vectors):
        partial = {i: v for i, v in vectors.items() if i != 0}
        results = two_stage_search(vectors[0], index, partial, SearchConfig(), k=8)
        assert 0 not in {r.id for r in results}

    def test_candidate_k_widened_to_k(self, index, vectors):
        results = two_stage_search(vectors[0], index, vectors, SearchConfig(candidate_k=1), k=4)
        assert len(results) == 4
