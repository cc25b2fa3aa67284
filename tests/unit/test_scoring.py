"""
Unit tests for iterative ranking, fallback ordering and domain weights
"""
import time

import pytest

from text_ranker.datatypes import Candidate, Edge, Graph, ScoredText
from text_ranker.scoring import (
    apply_domain_weights, categorize, fallback_order, is_edgeless, pagerank, rank_candidates,
)


@pytest.fixture
def triangle_with_tail(make_candidates):
    """Triangle 0-1-2 with node 3 hanging off node 0, unit weights"""
    nodes = make_candidates([["a"], ["b"], ["c"], ["d"]])
    edges = [Edge(0, 1, 1.0), Edge(0, 2, 1.0), Edge(1, 2, 1.0), Edge(0, 3, 1.0)]
    return Graph(nodes=nodes, edges=edges)


class TestPageRank:

    def test_known_fixed_point(self, triangle_with_tail):
        result = pagerank(triangle_with_tail, damping=0.85, max_iter=500, tolerance=1e-10)

        assert result.converged
        assert result.scores == pytest.approx([1.466943, 0.983711, 0.983711, 0.565634], abs=1e-3)
        # undirected graph without sinks keeps the total at n
        assert sum(result.scores) == pytest.approx(4.0, abs=1e-6)

    def test_default_settings_converge(self, triangle_with_tail):
        result = pagerank(triangle_with_tail)

        assert result.converged
        assert result.iterations <= 50
        assert result.scores == pytest.approx([1.466943, 0.983711, 0.983711, 0.565634], abs=1e-3)

    def test_isolated_nodes_settle_at_base(self, make_candidates):
        graph = Graph(nodes=make_candidates([["a"], ["b"], ["c"]]), edges=[Edge(0, 1, 0.5)])

        result = pagerank(graph, damping=0.85)

        assert result.scores[2] == pytest.approx(0.15)
        assert result.scores[0] == pytest.approx(result.scores[1])

    def test_empty_graph(self):
        result = pagerank(Graph(nodes=[], edges=[]))

        assert result.scores == []
        assert result.converged

    def test_iteration_cap_reports_not_converged(self, triangle_with_tail):
        result = pagerank(triangle_with_tail, max_iter=1)

        assert result.iterations == 1
        assert not result.converged
        assert result.scores[0] == pytest.approx(0.15 + 0.85 * 2.0)

    def test_past_deadline_returns_latest_scores(self, triangle_with_tail, caplog):
        result = pagerank(triangle_with_tail, deadline=time.monotonic() - 1.0)

        assert result.iterations == 1
        assert not result.converged
        assert len(result.scores) == 4

    def test_directed_sink_contributes_nothing(self, make_candidates):
        graph = Graph(nodes=make_candidates([["a"], ["b"]]), edges=[Edge(0, 1, 1.0)], directed=True)

        result = pagerank(graph, tolerance=1e-10, max_iter=200)

        assert result.scores[0] == pytest.approx(0.15)
        assert result.scores[1] == pytest.approx(0.15 + 0.85 * 0.15)


class TestOrdering:

    def test_ties_go_to_earlier_position(self):
        nodes = [
            Candidate(text="late", position=5),
            Candidate(text="early", position=1),
            Candidate(text="top", position=9),
        ]

        ranked = rank_candidates(nodes, [1.0, 1.0, 2.0])

        assert [r.text for r in ranked] == ["top", "early", "late"]
        assert ranked[1].position == 1

    def test_is_edgeless(self, make_candidates):
        nodes = make_candidates([["a"], ["b"]])

        assert is_edgeless(Graph(nodes=nodes, edges=[]))
        assert is_edgeless(Graph(nodes=nodes, edges=[Edge(0, 1, 0.0), Edge(1, 1, 1.0)]))
        assert not is_edgeless(Graph(nodes=nodes, edges=[Edge(0, 1, 0.2)]))

    def test_fallback_order(self):
        nodes = [
            Candidate(text="single", tokens=["a"], position=0, frequency=1),
            Candidate(text="frequent", tokens=["b"], position=3, frequency=3),
            Candidate(text="long phrase", tokens=["c", "d"], position=2, frequency=1),
        ]

        ranked = fallback_order(nodes, damping=0.85)

        assert [r.text for r in ranked] == ["frequent", "long phrase", "single"]
        assert all(r.score == pytest.approx(0.15) for r in ranked)


class TestDomainWeights:

    PATTERNS = {"tech": [r"python", r"machine learning"], "food": [r"cook"]}

    def test_categorize(self):
        assert categorize("Python workshop", self.PATTERNS) == "tech"
        assert categorize("Cooking class", self.PATTERNS) == "food"
        assert categorize("Yoga", self.PATTERNS) is None

    def test_weights_reorder(self):
        items = [ScoredText("Cooking class", 1.0, 0), ScoredText("Python workshop", 0.6, 1)]

        weighted = apply_domain_weights(items, self.PATTERNS, {"tech": 2.0})

        assert [w.text for w in weighted] == ["Python workshop", "Cooking class"]
        assert weighted[0].score == pytest.approx(1.2)
        assert items[1].score == 0.6

    def test_empty_tables_are_identity(self):
        items = [ScoredText("b", 0.2, 1), ScoredText("a", 0.9, 0)]

        out = apply_domain_weights(items, {}, {})

        assert [(o.text, o.score) for o in out] == [("b", 0.2), ("a", 0.9)]
        assert out[0] is not items[0]
