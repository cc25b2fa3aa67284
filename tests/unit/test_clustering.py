"""
Unit tests for average-linkage topic clustering
"""
import numpy as np

from text_ranker.clustering import assign_topics, cluster_candidates, representative_of
from text_ranker.datatypes import Candidate


BLOCKS = np.array([
    [0.0, 0.9, 0.0, 0.0],
    [0.9, 0.0, 0.0, 0.0],
    [0.0, 0.0, 0.0, 0.8],
    [0.0, 0.0, 0.8, 0.0],
])


class TestClusterCandidates:

    def test_two_blocks(self, make_candidates):
        cands = make_candidates([["a"], ["a2"], ["b"], ["b2"]])

        clusters = cluster_candidates(cands, BLOCKS, threshold=0.25)

        assert [c.id for c in clusters] == [0, 1]
        assert [[m.position for m in c.members] for c in clusters] == [[0, 1], [2, 3]]

    def test_high_threshold_keeps_singletons(self, make_candidates):
        cands = make_candidates([["a"], ["a2"], ["b"], ["b2"]])

        clusters = cluster_candidates(cands, BLOCKS, threshold=0.95)

        assert len(clusters) == 4

    def test_average_linkage_blocks_weak_merge(self, make_candidates):
        # 2 is close to 0 only; mean over {0,1} x {2} is 0.2
        M = np.array([
            [0.0, 0.9, 0.4],
            [0.9, 0.0, 0.0],
            [0.4, 0.0, 0.0],
        ])
        cands = make_candidates([["a"], ["b"], ["c"]])

        clusters = cluster_candidates(cands, M, threshold=0.25)

        assert [[m.position for m in c.members] for c in clusters] == [[0, 1], [2]]

    def test_deterministic(self, make_candidates):
        cands = make_candidates([["a"], ["a2"], ["b"], ["b2"]])

        first = cluster_candidates(cands, BLOCKS)
        second = cluster_candidates(cands, BLOCKS)

        assert [[m.text for m in c.members] for c in first] == [[m.text for m in c.members] for c in second]

    def test_empty(self):
        assert cluster_candidates([], np.zeros((0, 0))) == []


class TestTopics:

    def test_representative_prefers_frequency_then_position(self):
        a = Candidate(text="a", position=0, frequency=1)
        b = Candidate(text="b", position=3, frequency=2)
        c = Candidate(text="c", position=1, frequency=2)

        assert representative_of([a, b, c]) is c

    def test_assign_topics(self, make_candidates):
        cands = make_candidates([["a"], ["a2"], ["b"], ["b2"]])

        assign_topics(cluster_candidates(cands, BLOCKS))

        assert [c.topic_id for c in cands] == [0, 0, 1, 1]


def _block_mean_clusters(M, threshold):
    # reference: recompute every cluster-pair mean from the raw matrix
    groups = [[i] for i in range(len(M))]
    while len(groups) > 1:
        best = None
        for i in range(len(groups)):
            for j in range(i + 1, len(groups)):
                sim = M[np.ix_(groups[i], groups[j])].mean()
                if best is None or (-sim, i + j, i) < (-best[0], best[1] + best[2], best[1]):
                    best = (sim, i, j)
        if best[0] < threshold:
            break
        _, i, j = best
        groups[i] = sorted(groups[i] + groups[j])
        del groups[j]
    return groups


class TestLinkageUpdates:

    def test_matches_block_means(self, make_candidates):
        rng = np.random.default_rng(7)
        raw = rng.random((14, 14))
        M = (raw + raw.T) / 2
        np.fill_diagonal(M, 0.0)
        cands = make_candidates([[f"t{k}"] for k in range(14)])

        clusters = cluster_candidates(cands, M, threshold=0.45)

        assert [[m.position for m in c.members] for c in clusters] == _block_mean_clusters(M, 0.45)

    def test_tied_pairs_merge_lowest_indices_first(self, make_candidates):
        M = np.full((4, 4), 0.5)
        np.fill_diagonal(M, 1.0)
        cands = make_candidates([["a"], ["b"], ["c"], ["d"]])

        clusters = cluster_candidates(cands, M, threshold=0.5)

        assert [[m.position for m in c.members] for c in clusters] == [[0, 1, 2, 3]]
        assert clusters[0].representative.position == 0

    def test_many_candidates_collapse_at_zero_threshold(self, make_candidates):
        n = 200
        rng = np.random.default_rng(3)
        raw = rng.random((n, n))
        cands = make_candidates([[f"t{k}"] for k in range(n)])

        clusters = cluster_candidates(cands, (raw + raw.T) / 2, threshold=0.0)

        assert len(clusters) == 1
        assert len(clusters[0].members) == n
