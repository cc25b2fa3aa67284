from __future__ import annotations
import logging
import re
import time
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .datatypes import Candidate, Graph, RankResult, ScoredText
from .graphing import weight_matrix

logger = logging.getLogger(__name__)

def is_edgeless(graph: Graph) -> bool:
    return not any(e.weight > 0 and e.i != e.j for e in graph.edges)

def pagerank(graph: Graph,
             damping: float = 0.85,
             max_iter: int = 50,
             tolerance: float = 1e-4,
             deadline: Optional[float] = None) -> RankResult:
    """
    Damped power iteration (TextRank form, scores start at 1.0).

    Formula: S(i) = (1-d) + d × Σ_{j→i} w(j,i) / out(j) × S(j)

    Nodes with zero outgoing weight contribute nothing; isolated nodes
    settle at 1-d.

    Args:
        graph: Weighted graph; undirected edges count in both directions
        damping: Damping factor d
        max_iter: Maximum number of iterations
        tolerance: Stop once the largest per-node change is below this
        deadline: Optional ``time.monotonic()`` value; when it passes, the
            scores of the last completed iteration are returned

    Returns:
        RankResult with one score per node, the iteration count and
        whether the tolerance was reached
    """
    n = len(graph.nodes)
    if n == 0:
        return RankResult(scores=[], iterations=0, converged=True)

    W = weight_matrix(graph)
    out = W.sum(axis=1)
    P = np.zeros_like(W)
    has_out = out > 0  # guard: no division for sink nodes
    P[has_out] = W[has_out] / out[has_out, None]

    scores = np.ones(n, dtype=float)
    converged = False
    iterations = 0
    for iterations in range(1, max_iter + 1):
        new_scores = (1.0 - damping) + damping * (P.T @ scores)
        max_delta = float(np.max(np.abs(new_scores - scores)))
        scores = new_scores
        if max_delta < tolerance:
            converged = True
            break
        if deadline is not None and time.monotonic() >= deadline:
            logger.info(f"Deadline reached after {iterations} iterations, using latest scores")
            break

    if not converged:
        logger.info(f"PageRank did not converge in {iterations} iterations (tolerance={tolerance})")
    return RankResult(scores=scores.tolist(), iterations=iterations, converged=converged)

def rank_candidates(candidates: List[Candidate], scores: Sequence[float]) -> List[ScoredText]:
    """Score descending; earlier document position wins ties."""
    order = sorted(range(len(candidates)),
                   key=lambda k: (-scores[k], candidates[k].position, k))
    return [ScoredText(text=candidates[k].text, score=float(scores[k]),
                       position=candidates[k].position) for k in order]

def fallback_order(candidates: List[Candidate], damping: float = 0.85) -> List[ScoredText]:
    """Ordering for edgeless graphs: frequency, then token count, then position."""
    order = sorted(range(len(candidates)),
                   key=lambda k: (-candidates[k].frequency, -len(candidates[k].tokens),
                                  candidates[k].position, k))
    return [ScoredText(text=candidates[k].text, score=1.0 - damping,
                       position=candidates[k].position) for k in order]

def categorize(text: str, category_patterns: Mapping[str, Sequence[str]]) -> Optional[str]:
    for category, patterns in category_patterns.items():
        for pattern in patterns:
            if re.search(pattern, text, flags=re.IGNORECASE):
                return category
    return None

def apply_domain_weights(items: List[ScoredText],
                         category_patterns: Mapping[str, Sequence[str]],
                         domain_weights: Dict[str, float]) -> List[ScoredText]:
    """Scale scores by a per-category weight table and re-sort.

    Both tables are caller configuration; with either empty the input
    order and scores are returned unchanged (as new objects).
    """
    if not category_patterns or not domain_weights:
        return [ScoredText(it.text, it.score, it.position) for it in items]
    weighted = []
    for it in items:
        cat = categorize(it.text, category_patterns)
        weight = domain_weights.get(cat, 1.0) if cat else 1.0
        weighted.append(ScoredText(it.text, it.score * weight, it.position))
    weighted.sort(key=lambda it: (-it.score, it.position))
    return weighted
