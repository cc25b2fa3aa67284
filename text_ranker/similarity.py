from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Sequence

import numpy as np
from rapidfuzz.distance import JaroWinkler, Levenshtein

from .datatypes import Candidate
from .errors import ConfigError, DimensionMismatch
from .tfidf import tfidf_similarity_matrix

logger = logging.getLogger(__name__)

def jaccard(tokens_a: Iterable[str], tokens_b: Iterable[str]) -> float:
    """|A ∩ B| / |A ∪ B| over token sets; 0 when either side is empty."""
    a, b = set(tokens_a), set(tokens_b)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)

def cosine_similarity(v1: Sequence[float], v2: Sequence[float], clamp: bool = True) -> float:
    """Cosine of two dense vectors, clamped to [0, 1] unless ``clamp=False``.

    Negative correlation counts as unrelated. Raises ``DimensionMismatch``
    when the vectors differ in length.
    """
    a = np.asarray(v1, dtype=float)
    b = np.asarray(v2, dtype=float)
    if a.shape != b.shape:
        raise DimensionMismatch(a.size, b.size)
    n1 = np.linalg.norm(a)
    n2 = np.linalg.norm(b)
    if n1 == 0.0 or n2 == 0.0:
        return 0.0
    cos = float(np.dot(a, b) / (n1 * n2))
    return min(1.0, max(0.0, cos)) if clamp else max(-1.0, min(1.0, cos))

def edit_similarity(s1: str, s2: str) -> float:
    """1 - levenshtein(s1, s2) / max(len), case-insensitive."""
    return float(Levenshtein.normalized_similarity(s1.lower(), s2.lower()))

def jaro_winkler(s1: str, s2: str) -> float:
    return float(JaroWinkler.similarity(s1, s2))


class JaccardSimilarity:
    name = "jaccard"

    def __call__(self, a: Candidate, b: Candidate) -> float:
        return jaccard(a.tokens, b.tokens)


class PhraseSimilarity:
    """Surface (Jaro-Winkler) and token (Jaccard) similarity, weighted 0.7 / 0.3."""
    name = "phrase"

    def __init__(self, string_weight: float = 0.7):
        self.string_weight = string_weight

    def __call__(self, a: Candidate, b: Candidate) -> float:
        s = jaro_winkler(a.text, b.text)
        t = jaccard(a.tokens, b.tokens)
        return self.string_weight * s + (1.0 - self.string_weight) * t


class EditSimilarity:
    name = "edit"

    def __call__(self, a: Candidate, b: Candidate) -> float:
        return edit_similarity(a.text, b.text)


class CosineSimilarity:
    """Cosine over vectors aligned with the candidate list."""
    name = "cosine"

    def __init__(self, vectors: Sequence[Sequence[float]]):
        self.vectors = vectors

    def pair(self, i: int, j: int) -> float:
        return cosine_similarity(self.vectors[i], self.vectors[j])


_STRATEGIES = {
    "jaccard": JaccardSimilarity,
    "phrase": PhraseSimilarity,
    "edit": EditSimilarity,
}

def get_similarity(name: str):
    if name == "cosine":
        raise ConfigError("cosine similarity needs vectors; use build_similarity_matrix(vectors=...)")
    try:
        return _STRATEGIES[name]()
    except KeyError:
        raise ConfigError(f"Unknown similarity: {name!r}") from None

def _pairwise(n: int, fn) -> np.ndarray:
    M = np.zeros((n, n), dtype=float)
    for i in range(n):
        for j in range(i + 1, n):
            M[i, j] = M[j, i] = min(1.0, max(0.0, fn(i, j)))
    return M

def build_similarity_matrix(candidates: List[Candidate],
                            strategy: str = "jaccard",
                            vectors: Optional[Sequence[Sequence[float]]] = None) -> np.ndarray:
    """
    Symmetric n x n matrix of pairwise similarities with a zero diagonal.

    Args:
        candidates: Ranked units in node order
        strategy: "jaccard" | "cosine" | "phrase" | "edit" | "tfidf"
        vectors: Embeddings aligned with ``candidates`` (cosine only)

    Returns:
        numpy array with values in [0, 1]. When cosine is requested but the
        vectors are missing, misaligned or of mixed dimension, the matrix is
        built with Jaccard instead.
    """
    n = len(candidates)
    if n == 0:
        return np.zeros((0, 0), dtype=float)

    if strategy == "cosine":
        if vectors is None or len(vectors) != n:
            logger.warning(
                f"Cosine similarity requested without {n} aligned vectors, falling back to jaccard"
            )
        else:
            cos = CosineSimilarity(vectors)
            try:
                return _pairwise(n, cos.pair)
            except DimensionMismatch as e:
                logger.warning(f"{e}; falling back to jaccard")
        strategy = "jaccard"

    if strategy == "tfidf":
        return tfidf_similarity_matrix(candidates)

    sim = get_similarity(strategy)
    return _pairwise(n, lambda i, j: sim(candidates[i], candidates[j]))
