from __future__ import annotations
from typing import List, Optional

from .config import RankerConfig
from .datatypes import ScoredText

def select(items: List[ScoredText], config: Optional[RankerConfig] = None) -> List[ScoredText]:
    """Apply length bounds, the score floor and ``top_k``; keeps input order.

    Returns copies, so scores held by the caller are never touched.
    """
    config = config or RankerConfig()
    out: List[ScoredText] = []
    for it in items:
        if len(out) >= config.top_k:
            break
        if not config.min_unit_length <= len(it.text) <= config.max_unit_length:
            continue
        if config.min_score is not None and it.score < config.min_score:
            continue
        out.append(ScoredText(text=it.text, score=it.score, position=it.position))
    return out

def restore_document_order(items: List[ScoredText]) -> List[ScoredText]:
    # summary-style output reads better in the original order
    return sorted(items, key=lambda it: it.position)
