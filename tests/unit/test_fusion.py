"""
Unit tests for rank fusion (RRF, weighted RRF, hybrid) and interest scoring
"""
import pytest

from text_ranker.datatypes import RankedItem
from text_ranker.errors import ConfigError
from text_ranker.fusion import (
    filter_by_mean_score, fuse_rankings, hybrid_fuse, rrf_fuse, score_against_query,
    weighted_rrf_fuse,
)


LIST_A = [("x", 0.9), ("y", 0.5)]
LIST_B = [("y", 0.8), ("x", 0.3)]


def _scores(fused):
    return {f.id: f.score for f in fused}


class TestReciprocalRankFusion:
    """Test RRF fusion logic"""

    def test_crossed_rankings_tie(self):
        """x and y each get one first and one second place"""
        fused = rrf_fuse([LIST_A, LIST_B], k=60)

        expected = 1 / 61 + 1 / 62
        assert _scores(fused) == pytest.approx({"x": expected, "y": expected})
        # tie keeps first-appearance order
        assert [f.id for f in fused] == ["x", "y"]

    def test_single_list_scores(self):
        fused = rrf_fuse([[("a", 0.0), ("b", 0.0)]], k=60)

        assert fused[0].score == pytest.approx(1 / 61)
        assert fused[1].score == pytest.approx(1 / 62)

    def test_missing_ids_get_nothing(self):
        fused = rrf_fuse([[("a", 1.0), ("b", 1.0)], [("c", 1.0)]], k=60)

        scores = _scores(fused)
        assert scores["b"] == pytest.approx(1 / 62)
        assert scores["c"] == pytest.approx(1 / 61)
        assert [f.id for f in fused] == ["a", "c", "b"]

    def test_overlapping_items_boosted(self):
        fused = rrf_fuse([[("a", 1), ("b", 1), ("c", 1)], [("b", 1), ("d", 1), ("a", 1)]])

        assert [f.id for f in fused][:2] == ["b", "a"]

    def test_list_order_does_not_change_scores(self):
        assert _scores(rrf_fuse([LIST_A, LIST_B])) == _scores(rrf_fuse([LIST_B, LIST_A]))
        assert _scores(weighted_rrf_fuse([LIST_A, LIST_B])) == pytest.approx(
            _scores(weighted_rrf_fuse([LIST_B, LIST_A]))
        )

    def test_accepts_ranked_items(self):
        fused = rrf_fuse([[RankedItem("x", 0.9), RankedItem("y", 0.5)]])

        assert [f.id for f in fused] == ["x", "y"]

    @pytest.mark.parametrize("rankings", [[], [[]], [[], []]])
    def test_empty(self, rankings):
        assert rrf_fuse(rankings) == []
        assert weighted_rrf_fuse(rankings) == []
        assert hybrid_fuse(rankings) == []


class TestWeightedAndHybrid:

    def test_weighted_scales_by_list_score(self):
        fused = weighted_rrf_fuse([LIST_A, LIST_B], k=60)

        scores = _scores(fused)
        assert scores["x"] == pytest.approx(0.9 / 61 + 0.3 / 62)
        assert scores["y"] == pytest.approx(0.5 / 62 + 0.8 / 61)
        assert [f.id for f in fused] == ["y", "x"]

    def test_hybrid_lambda_zero_equals_rrf(self):
        assert hybrid_fuse([LIST_A, LIST_B], lam=0.0) == rrf_fuse([LIST_A, LIST_B])

    def test_hybrid_lambda_one_sums_scores(self):
        scores = _scores(hybrid_fuse([LIST_A, LIST_B], lam=1.0))

        assert scores["x"] == pytest.approx(1.2)
        assert scores["y"] == pytest.approx(1.3)

    def test_hybrid_lambda_out_of_range(self):
        with pytest.raises(ConfigError):
            hybrid_fuse([LIST_A], lam=1.5)

    def test_fused_scores_positive_for_positive_inputs(self):
        for method in ("rrf", "weighted", "hybrid"):
            assert all(f.score > 0 for f in fuse_rankings(method, [LIST_A, LIST_B]))

    def test_dispatch_unknown_method(self):
        with pytest.raises(ConfigError):
            fuse_rankings("borda", [LIST_A])


class TestMeanScoreFilter:

    def test_keeps_ids_above_mean(self):
        rankings = [LIST_A, LIST_B]
        fused = rrf_fuse(rankings)

        kept = filter_by_mean_score(fused, rankings, threshold=0.62)

        # x: (0.9 + 0.3) / 2 = 0.6, y: (0.5 + 0.8) / 2 = 0.65
        assert [f.id for f in kept] == ["y"]

    def test_absent_counts_as_zero(self):
        rankings = [[("a", 1.0)], [("b", 1.0)]]

        kept = filter_by_mean_score(rrf_fuse(rankings), rankings, threshold=0.6)

        assert kept == []


class TestScoreAgainstQuery:

    def test_concat_mode(self):
        items = [("a", [[1.0, 0.0]]), ("b", [[0.0, 1.0]]), ("c", [[1.0, 1.0]])]

        ranked = score_against_query([1.0, 0.0], items)

        assert [r.id for r in ranked] == ["a", "c", "b"]
        assert ranked[1].score == pytest.approx(2 ** -0.5)

    def test_dimension_mismatch_scores_zero(self):
        items = [("bad", [[1.0, 0.0, 0.0]]), ("good", [[1.0, 0.0]])]

        ranked = score_against_query([1.0, 0.0], items)

        assert [(r.id, r.score) for r in ranked] == [("good", pytest.approx(1.0)), ("bad", 0.0)]

    def test_per_keyword_aggregation(self):
        items = [("d", [[1.0, 0.0], [-1.0, 0.0]])]

        best = score_against_query([1.0, 0.0], items, mode="per_keyword", agg="max")
        mean = score_against_query([1.0, 0.0], items, mode="per_keyword", agg="mean")

        assert best[0].score == pytest.approx(1.0)
        assert mean[0].score == 0.0

    def test_items_without_vectors(self):
        ranked = score_against_query([1.0, 0.0], [("empty", [])])

        assert ranked[0].score == 0.0

    def test_invalid_mode(self):
        with pytest.raises(ConfigError):
            score_against_query([1.0], [], mode="sum")
        with pytest.raises(ConfigError):
            score_against_query([1.0], [], agg="median")
