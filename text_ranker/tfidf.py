"""
TF-IDF rankers: scores that do not come from a graph, so they can be
fused with TextRank output as independent signals.

    sentence tfidf:   mean tf * idf over the distinct terms of a sentence
    centrality:       mean TF-IDF cosine of a unit to every other unit
    chunk weights:    the text is cut into fixed-size word chunks that act
                      as documents; a term keeps its best weight over the
                      chunks in which it is among the top terms

Documents are token lists that the tokenizer already normalized, so the
vectorizer gets an identity analyzer instead of its own word splitter.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine

from .datatypes import Candidate, ScoredText

logger = logging.getLogger(__name__)

MIN_CHUNK_TOKENS = 3
TERMS_PER_CHUNK = 10

def _identity(tokens: Sequence[str]) -> List[str]:
    return list(tokens)

def tfidf_matrix(docs: Sequence[Sequence[str]], norm: Optional[str] = "l2") -> Tuple[Any, np.ndarray]:
    """Sparse document-term matrix and the vocabulary in column order."""
    vectorizer = TfidfVectorizer(analyzer=_identity, norm=norm)
    X = vectorizer.fit_transform(docs)
    return X, vectorizer.get_feature_names_out()

def sentence_tfidf_scores(candidates: List[Candidate]) -> np.ndarray:
    docs = [c.tokens for c in candidates]
    scores = np.zeros(len(docs), dtype=float)
    if not any(docs):
        return scores
    X, _ = tfidf_matrix(docs, norm=None)
    X = X.tocsr()
    for k, doc in enumerate(docs):
        row = X[k]
        if row.nnz:
            # raw weights are count * idf; dividing by length gives tf * idf
            scores[k] = row.data.sum() / len(doc) / row.nnz
    logger.debug(f"Scored {len(docs)} units by mean tf-idf")
    return scores

def tfidf_similarity_matrix(candidates: List[Candidate]) -> np.ndarray:
    """Cosine of TF-IDF vectors, clamped to [0, 1], zero diagonal."""
    n = len(candidates)
    docs = [c.tokens for c in candidates]
    if n == 0 or not any(docs):
        return np.zeros((n, n), dtype=float)
    X, _ = tfidf_matrix(docs)
    M = np.clip(pairwise_cosine(X), 0.0, 1.0)
    np.fill_diagonal(M, 0.0)
    return M

def centrality_scores(matrix: np.ndarray) -> np.ndarray:
    """Mean similarity of each unit to all the others (diagonal is ignored)."""
    M = np.asarray(matrix, dtype=float)
    n = len(M)
    if n < 2:
        return np.zeros(n, dtype=float)
    return (M.sum(axis=1) - np.diag(M)) / (n - 1)

def chunk_documents(words: Sequence[str], size: int = 15,
                    min_tokens: int = MIN_CHUNK_TOKENS) -> List[List[str]]:
    """Consecutive ``size``-word chunks; chunks shorter than ``min_tokens`` are dropped.

    A text too short to yield any full chunk becomes a single document.
    """
    chunks = [list(words[i:i + size]) for i in range(0, len(words), size)]
    kept = [c for c in chunks if len(c) >= min_tokens]
    if not kept and words:
        return [list(words)]
    return kept

def chunk_term_weights(words: Sequence[str], size: int = 15,
                       per_chunk: int = TERMS_PER_CHUNK) -> Dict[str, float]:
    docs = chunk_documents(words, size)
    if not docs:
        return {}
    X, vocab = tfidf_matrix(docs, norm=None)
    weights: Dict[str, float] = {}
    for row in X.toarray():
        for t in np.argsort(-row, kind="stable")[:per_chunk]:
            if row[t] <= 0:
                break
            term = str(vocab[t])
            weights[term] = max(weights.get(term, 0.0), float(row[t]))
    logger.debug(f"Weighted {len(weights)} terms over {len(docs)} chunks")
    return weights

def term_centrality(words: Sequence[str], size: int = 15) -> Dict[str, float]:
    """Mean cosine between each term's chunk profile and every other term's."""
    docs = chunk_documents(words, size)
    if not docs:
        return {}
    X, vocab = tfidf_matrix(docs)
    scores = centrality_scores(np.clip(pairwise_cosine(X.T), 0.0, 1.0))
    return {str(term): float(s) for term, s in zip(vocab, scores)}

def phrase_scores(candidates: List[Candidate], weights: Mapping[str, float]) -> np.ndarray:
    # a phrase scores the mean weight of its tokens
    return np.array([
        float(np.mean([weights.get(t, 0.0) for t in c.tokens])) if c.tokens else 0.0
        for c in candidates
    ], dtype=float)

def above_mean(items: List[ScoredText], ratio: float = 1.2, limit: int = 20) -> List[ScoredText]:
    """
    Keep items scoring at least ``ratio`` times the mean positive score.

    When the cut keeps fewer than ``min(limit, 30%)`` of the positively
    scored items, the best ``limit`` are returned instead. ``items`` must be
    sorted by score, highest first.
    """
    valid = [it for it in items if it.score > 0]
    if not valid:
        return items[:limit]
    cutoff = ratio * sum(it.score for it in valid) / len(valid)
    kept = [it for it in valid if it.score >= cutoff]
    if len(kept) < min(limit, 0.3 * len(valid)):
        kept = valid
    return kept[:limit]
