from __future__ import annotations
import logging
from typing import Callable, Dict, List

from .datatypes import ScoredText
from .errors import ConfigError
from .preprocessing import split_words
from .similarity import edit_similarity, jaccard

logger = logging.getLogger(__name__)

def token_similarity(a: str, b: str) -> float:
    return jaccard((w.lower() for w in split_words(a)), (w.lower() for w in split_words(b)))

def containment_similarity(a: str, b: str) -> float:
    """len(shorter) / len(longer) when the longer text contains the shorter one's head."""
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if not longer:
        return 1.0
    if not shorter:
        return 0.0
    if shorter[:20] in longer:
        return len(shorter) / len(longer)
    return 0.0

_METHODS: Dict[str, Callable[[str, str], float]] = {
    "edit": edit_similarity,
    "tokens": token_similarity,
    "length": containment_similarity,
}

def deduplicate(items: List[ScoredText], threshold: float = 0.8, method: str = "edit") -> List[ScoredText]:
    """
    Drop near-duplicates while scanning in the given (score) order.

    An item is dropped when its similarity to any already-accepted item is
    >= ``threshold``. Accepted items are never replaced, so the
    highest-scoring member of each near-duplicate group survives and the
    function is idempotent.
    """
    try:
        sim = _METHODS[method]
    except KeyError:
        raise ConfigError(f"Unknown dedup method: {method!r}") from None

    accepted: List[ScoredText] = []
    for item in items:
        duplicate_of = next((a for a in accepted if sim(item.text, a.text) >= threshold), None)
        if duplicate_of is None:
            accepted.append(item)
        else:
            logger.debug(f"Dropping near-duplicate {item.text!r} (kept {duplicate_of.text!r})")
    if len(accepted) < len(items):
        logger.debug(f"Deduplicated {len(items)} -> {len(accepted)} items")
    return accepted
