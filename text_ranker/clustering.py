from __future__ import annotations
import logging
from typing import List, Optional, Tuple

import numpy as np

from .datatypes import Candidate, Cluster

logger = logging.getLogger(__name__)

def _best_pair(L: np.ndarray) -> Optional[Tuple[float, int, int]]:
    g = L.shape[0]
    if g < 2:
        return None
    iu, ju = np.triu_indices(g, 1)
    sims = L[iu, ju]
    # ties go to the lowest combined index, then the lowest first index
    k = np.lexsort((iu, iu + ju, -sims))[0]
    return float(sims[k]), int(iu[k]), int(ju[k])

def _merge_linkage(L: np.ndarray, sizes: List[int], i: int, j: int) -> np.ndarray:
    # Lance-Williams update for average linkage; slot i absorbs slot j
    ni, nj = sizes[i], sizes[j]
    row = (ni * L[i] + nj * L[j]) / (ni + nj)
    L[i, :] = row
    L[:, i] = row
    L[i, i] = 0.0
    sizes[i] = ni + nj
    del sizes[j]
    return np.delete(np.delete(L, j, axis=0), j, axis=1)

def representative_of(members: List[Candidate]) -> Candidate:
    """Highest-frequency member; the earliest one on ties."""
    return min(members, key=lambda c: (-c.frequency, c.position))

def cluster_candidates(candidates: List[Candidate], matrix: np.ndarray,
                       threshold: float = 0.25) -> List[Cluster]:
    """
    Hierarchical agglomerative clustering with average linkage.

    Starts from singletons and repeatedly merges the pair of clusters with
    the highest mean pairwise similarity while that mean is >= ``threshold``.
    Cluster-to-cluster means live in one linkage matrix that is updated in
    place after each merge. The merged cluster takes the lower slot, so
    cluster ids are stable and repeated runs on the same input give the
    same topics.
    """
    n = len(candidates)
    if n == 0:
        return []
    L = np.array(matrix, dtype=float)
    np.fill_diagonal(L, 0.0)
    groups: List[List[int]] = [[i] for i in range(n)]
    sizes = [1] * n

    merges = 0
    while len(groups) > 1:
        best = _best_pair(L)
        if best is None or best[0] < threshold:
            break
        _, i, j = best
        groups[i] = sorted(groups[i] + groups[j])
        del groups[j]
        L = _merge_linkage(L, sizes, i, j)
        merges += 1

    clusters = []
    for cid, group in enumerate(groups):
        members = [candidates[m] for m in group]
        clusters.append(Cluster(id=cid, members=members, representative=representative_of(members)))
    logger.debug(f"Clustered {n} candidates into {len(clusters)} topics ({merges} merges)")
    return clusters

def assign_topics(clusters: List[Cluster]) -> None:
    """Write each cluster's id onto its members' ``topic_id``."""
    for cluster in clusters:
        for member in cluster.members:
            member.topic_id = cluster.id
