"""
Rank fusion: merge independently produced rankings into one list.

Three strategies, all driven by the 0-based rank of an id in each list:

    rrf:       score(id) += 1 / (k + rank + 1)
    weighted:  score(id) += list_score(id) / (k + rank + 1)
    hybrid:    score(id) += λ * list_score(id) + (1 - λ) / (k + rank + 1)

An id missing from a list gets nothing from it. Output is sorted by fused
score descending; ties keep the order in which ids first appear when the
lists are read one after another, each from the top.

Reference: https://plg.uwaterloo.ca/~gvcormac/cormacksigir09-rrf.pdf
"""

import logging
from typing import Callable, Dict, Hashable, Iterable, List, Sequence, Tuple, Union

import numpy as np

from .datatypes import FusedItem, RankedItem
from .errors import ConfigError, DimensionMismatch
from .similarity import cosine_similarity

logger = logging.getLogger(__name__)

RankedEntry = Union[RankedItem, Tuple[Hashable, float]]


def _pairs(ranking: Iterable[RankedEntry]) -> List[Tuple[Hashable, float]]:
    out = []
    for entry in ranking:
        if isinstance(entry, RankedItem):
            out.append((entry.id, entry.score))
        else:
            item_id, score = entry
            out.append((item_id, float(score)))
    return out


def _fuse(
    rankings: Sequence[Iterable[RankedEntry]],
    contribution: Callable[[float, int], float],
) -> List[FusedItem]:
    scores: Dict[Hashable, float] = {}
    first_seen: Dict[Hashable, int] = {}
    for ranking in rankings:
        for rank, (item_id, list_score) in enumerate(_pairs(ranking)):
            if item_id not in scores:
                scores[item_id] = 0.0
                first_seen[item_id] = len(first_seen)
            scores[item_id] += contribution(list_score, rank)
    ordered = sorted(scores, key=lambda i: (-scores[i], first_seen[i]))
    return [FusedItem(id=i, score=scores[i]) for i in ordered]


def rrf_fuse(rankings: Sequence[Iterable[RankedEntry]], k: int = 60) -> List[FusedItem]:
    """
    Reciprocal Rank Fusion.

    Args:
        rankings: Ranked lists, each sorted by score descending.
            Entries are ``RankedItem`` or ``(id, score)`` tuples.
        k: RRF constant (default: 60, from literature)

    Returns:
        Fused ranking, highest score first

    Example:
        >>> rrf_fuse([[("x", 0.9), ("y", 0.5)], [("y", 0.8), ("x", 0.3)]])
        [FusedItem(id='x', score=0.0325...), FusedItem(id='y', score=0.0325...)]
    """
    return _fuse(rankings, lambda score, rank: 1.0 / (k + rank + 1))


def weighted_rrf_fuse(rankings: Sequence[Iterable[RankedEntry]], k: int = 60) -> List[FusedItem]:
    """RRF where each reciprocal-rank term is multiplied by the item's list score."""
    return _fuse(rankings, lambda score, rank: score * (1.0 / (k + rank + 1)))


def hybrid_fuse(
    rankings: Sequence[Iterable[RankedEntry]],
    k: int = 60,
    lam: float = 0.5,
) -> List[FusedItem]:
    """
    Blend of raw list score and reciprocal rank.

    ``lam=0`` is plain RRF, ``lam=1`` sums the list scores.
    """
    if not 0.0 <= lam <= 1.0:
        raise ConfigError(f"lambda must be in [0, 1], got {lam}")
    return _fuse(rankings, lambda score, rank: lam * score + (1.0 - lam) * (1.0 / (k + rank + 1)))


def fuse_rankings(
    method: str,
    rankings: Sequence[Iterable[RankedEntry]],
    k: int = 60,
    lam: float = 0.5,
) -> List[FusedItem]:
    """Dispatch to a fusion strategy: "rrf" | "weighted" | "hybrid"."""
    if method == "rrf":
        fused = rrf_fuse(rankings, k)
    elif method == "weighted":
        fused = weighted_rrf_fuse(rankings, k)
    elif method == "hybrid":
        fused = hybrid_fuse(rankings, k, lam)
    else:
        raise ConfigError(f"Unknown fusion method: {method!r}")
    logger.debug(f"Fused {len(rankings)} rankings with {method}: {len(fused)} ids")
    return fused


def filter_by_mean_score(
    fused: List[FusedItem],
    rankings: Sequence[Iterable[RankedEntry]],
    threshold: float,
) -> List[FusedItem]:
    """
    Keep fused ids whose mean list score is >= ``threshold``.

    The mean is taken over all rankings; an id absent from a ranking
    counts as 0 there.
    """
    if not rankings:
        return []
    maps = [dict(_pairs(r)) for r in rankings]
    kept = [
        item for item in fused
        if sum(m.get(item.id, 0.0) for m in maps) / len(maps) >= threshold
    ]
    logger.debug(f"Mean-score filter ({threshold}): {len(fused)} -> {len(kept)}")
    return kept


def score_against_query(
    query_vector: Sequence[float],
    items: Sequence[Tuple[Hashable, Sequence[Sequence[float]]]],
    mode: str = "concat",
    agg: str = "max",
) -> List[RankedItem]:
    """
    Rank items by embedding similarity to a query vector.

    Args:
        query_vector: Embedding of the query / interest text
        items: ``(id, vectors)`` pairs. In "concat" mode the first vector is
            the embedding of the item's joined text; in "per_keyword" mode
            there is one vector per keyword.
        mode: "concat" | "per_keyword"
        agg: "max" | "mean" (per_keyword only)

    Returns:
        Ranked list with scores in [0, 1], highest first; ties keep the
        input order. Items without vectors, or with vectors of the wrong
        dimension, score 0.
    """
    if mode not in ("concat", "per_keyword"):
        raise ConfigError(f"Unknown interest mode: {mode!r}")
    if agg not in ("max", "mean"):
        raise ConfigError(f"Unknown aggregation: {agg!r}")

    scored: List[RankedItem] = []
    for item_id, vectors in items:
        score = 0.0
        try:
            if vectors is not None and len(vectors) > 0:
                if mode == "concat":
                    score = cosine_similarity(query_vector, vectors[0])
                else:
                    sims = [cosine_similarity(query_vector, v, clamp=False) for v in vectors]
                    raw = float(np.mean(sims)) if agg == "mean" else max(sims)
                    score = max(0.0, raw)
        except DimensionMismatch as e:
            logger.warning(f"Item {item_id!r}: {e}; scoring 0")
            score = 0.0
        scored.append(RankedItem(id=item_id, score=score))

    scored.sort(key=lambda it: -it.score)
    return scored
