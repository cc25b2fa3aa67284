from __future__ import annotations
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence

import numpy as np

from .candidates import extract_phrases, extract_sentences, extract_words, word_candidates
from .clustering import assign_topics, cluster_candidates
from .config import RANKERS, RankerConfig
from .datatypes import Candidate, Cluster, FusedItem, Graph, RankResult, ScoredText
from .dedup import deduplicate
from .errors import StageError
from .fusion import RankedEntry, fuse_rankings
from .graphing import (
    adjust_weights, build_cooccurrence_graph, build_graph, build_multipartite_graph,
    build_topic_graph,
)
from .preprocessing import content_length, split_sentences
from .scoring import apply_domain_weights, fallback_order, is_edgeless, pagerank, rank_candidates
from .selection import select
from .similarity import build_similarity_matrix
from .tfidf import (
    above_mean, centrality_scores, chunk_term_weights, phrase_scores, sentence_tfidf_scores,
    term_centrality,
)
from .tokenizing import NaiveTokenizer, SharedTokenizer, TokenizerService

logger = logging.getLogger(__name__)

Embedder = Callable[[List[str]], Sequence[Sequence[float]]]
Refiner = Callable[[List[str]], List[str]]

MODES = ("sentences", "phrases", "keywords")


@dataclass
class StageResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    stage: str = ""


@dataclass
class Stage:
    """A named, fallible step. Exceptions become a failed ``StageResult``."""
    name: str
    fn: Callable[[], Any]

    def run(self) -> StageResult:
        try:
            value = self.fn()
        except Exception as e:
            logger.warning(f"Stage '{self.name}' failed: {e}")
            return StageResult(ok=False, error=str(e), stage=self.name)
        return StageResult(ok=True, value=value, stage=self.name)


def run_stages(stages: Iterable[Stage]) -> StageResult:
    """Run stages in order and return the first success (or the last failure)."""
    last = StageResult(ok=False, error="no stages to run")
    for stage in stages:
        result = stage.run()
        if result.ok:
            logger.debug(f"Stage '{stage.name}' succeeded")
            return result
        last = result
    return last


@dataclass
class RankTrace:
    """Every intermediate product of one statistical run.

    ``clusters``, ``graph`` and ``result`` stay empty when the chosen
    ranker does not build them.
    """
    mode: str
    ranker: str
    candidates: List[Candidate] = field(default_factory=list)
    matrix: Optional[np.ndarray] = None
    clusters: List[Cluster] = field(default_factory=list)
    graph: Optional[Graph] = None
    result: Optional[RankResult] = None
    ranked: List[ScoredText] = field(default_factory=list)
    unique: List[ScoredText] = field(default_factory=list)
    selected: List[ScoredText] = field(default_factory=list)


class TextRanker:
    """
    Configurable TextRank pipeline over one document.

    Sentence, phrase and keyword extraction share the same steps:
    candidates -> similarity -> graph -> iterative ranking (or an
    edgeless fallback) -> domain weights -> dedup -> selection. The
    ``tfidf`` and ``centrality`` rankers replace the graph steps with
    TF-IDF scores, which gives ``extract_fused`` independent rankings to
    merge. Each public call runs the statistical path first and a naive
    splitter second, and returns whichever succeeds first; it never
    raises for string input.

    Collaborators are injected. ``tokenizer`` may be shared between
    rankers and threads; ``embedder`` and ``refiner`` are optional.
    """

    def __init__(self, config: Optional[RankerConfig] = None,
                 tokenizer: Optional[TokenizerService] = None,
                 embedder: Optional[Embedder] = None,
                 refiner: Optional[Refiner] = None):
        self.config = (config or RankerConfig()).validate()
        self.tokenizer = tokenizer if tokenizer is not None else SharedTokenizer()
        self.embedder = embedder
        self.refiner = refiner

    # ---- public API ----

    def extract(self, text: str, mode: str = "sentences",
                timeout: Optional[float] = None, refine: bool = False,
                ranker: Optional[str] = None) -> List[ScoredText]:
        if mode not in MODES:
            logger.warning(f"Unknown mode {mode!r}, using 'sentences'")
            mode = "sentences"
        if ranker is not None and ranker not in RANKERS:
            logger.warning(f"Unknown ranker {ranker!r}, using {self.config.ranker!r}")
            ranker = None
        ranker = ranker or self.config.ranker
        if not text or not text.strip():
            return []
        deadline = time.monotonic() + timeout if timeout else None
        result = run_stages([
            Stage(f"{ranker}-{mode}", lambda: self.trace(text, mode, ranker, deadline).selected),
            Stage("naive", lambda: self._naive(text, mode)),
        ])
        items = result.value if result.ok else []
        if refine and items:
            items = self.refine(items)
        return items

    def extract_key_sentences(self, text: str, **kwargs) -> List[ScoredText]:
        return self.extract(text, "sentences", **kwargs)

    def extract_keyphrases(self, text: str, **kwargs) -> List[ScoredText]:
        return self.extract(text, "phrases", **kwargs)

    def extract_keywords(self, text: str, **kwargs) -> List[ScoredText]:
        return self.extract(text, "keywords", **kwargs)

    def extract_fused(self, text: str, mode: str = "sentences",
                      rankers: Sequence[str] = RANKERS,
                      timeout: Optional[float] = None) -> List[FusedItem]:
        """Rank ``text`` once per ranker and fuse the lists by text."""
        rankings = [
            [(it.text, it.score) for it in self.extract(text, mode, timeout=timeout, ranker=name)]
            for name in rankers
        ]
        return self.fuse(rankings)

    def rank_many(self, texts: Sequence[str], mode: str = "sentences",
                  max_workers: int = 4) -> List[List[ScoredText]]:
        """Rank independent documents concurrently; results follow input order."""
        if not texts:
            return []
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(lambda t: self.extract(t, mode), texts))

    def fuse(self, rankings: Sequence[Iterable[RankedEntry]]) -> List[FusedItem]:
        cfg = self.config
        return fuse_rankings(cfg.fusion_method, rankings, k=cfg.fusion_k, lam=cfg.lam)

    def refine(self, items: List[ScoredText]) -> List[ScoredText]:
        """Best-effort refiner pass; on failure or timeout ``items`` come back unchanged."""
        if self.refiner is None or not items:
            return items
        texts = [it.text for it in items]
        pool = ThreadPoolExecutor(max_workers=1)
        try:
            refined = pool.submit(self.refiner, texts).result(timeout=self.config.refine_timeout)
        except FutureTimeout:
            logger.warning(f"Refiner timed out after {self.config.refine_timeout}s, keeping statistical result")
            return items
        except Exception as e:
            logger.warning(f"Refiner failed, keeping statistical result: {e}")
            return items
        finally:
            pool.shutdown(wait=False)

        if not isinstance(refined, list) or not refined or not all(isinstance(t, str) for t in refined):
            logger.warning("Refiner returned no usable text, keeping statistical result")
            return items
        out = [
            ScoredText(text=t.strip(), score=items[min(k, len(items) - 1)].score, position=k)
            for k, t in enumerate(refined) if t.strip()
        ]
        return select(out, self.config) or items

    def trace(self, text: str, mode: str = "sentences", ranker: Optional[str] = None,
              deadline: Optional[float] = None) -> RankTrace:
        """
        Run the statistical path once and keep each intermediate step.

        ``extract`` returns ``trace(...).selected``. Unlike ``extract`` this
        raises when a step fails; there is no naive fallback here.
        """
        trace = RankTrace(mode=mode, ranker=ranker or self.config.ranker)
        if mode == "keywords":
            self._rank_keywords(text, trace, deadline)
        else:
            self._rank_units(text, trace, deadline)
        if trace.ranked:
            self._postprocess(trace)
        return trace

    # ---- statistical stages ----

    def _embed(self, texts: List[str]) -> Optional[Sequence[Sequence[float]]]:
        if self.embedder is None:
            return None
        try:
            vectors = self.embedder(texts)
        except Exception as e:
            logger.warning(f"Embedder failed, using token overlap: {e}")
            return None
        if vectors is None or len(vectors) != len(texts):
            logger.warning("Embedder returned misaligned vectors, using token overlap")
            return None
        return vectors

    def _similarity(self, candidates: List[Candidate], strategy: str) -> np.ndarray:
        vectors = self._embed([c.text for c in candidates])
        if vectors is not None:
            strategy = "cosine"
        elif strategy == "cosine":
            strategy = "jaccard"
        return build_similarity_matrix(candidates, strategy, vectors)

    def _topics(self, candidates: List[Candidate]) -> List[Cluster]:
        # topics always come from token overlap; the similarity matrix only weights edges
        overlap = build_similarity_matrix(candidates, "jaccard")
        clusters = cluster_candidates(candidates, overlap, self.config.cluster_merge_threshold)
        assign_topics(clusters)
        return clusters

    def _build_graph(self, trace: RankTrace, graph_mode: str) -> None:
        cfg = self.config
        if graph_mode == "topic":
            trace.clusters = self._topics(trace.candidates)
            trace.graph = build_topic_graph(trace.clusters)
        elif graph_mode == "multipartite":
            trace.clusters = self._topics(trace.candidates)
            trace.graph = adjust_weights(build_multipartite_graph(trace.candidates, trace.matrix),
                                         cfg.position_alpha)
        else:
            trace.graph = build_graph(trace.candidates, trace.matrix)

    def _rank_graph(self, trace: RankTrace, deadline: Optional[float]) -> None:
        cfg = self.config
        graph = trace.graph
        if len(graph.nodes) < 2 or is_edgeless(graph):
            logger.info(f"Edgeless graph ({len(graph.nodes)} nodes), using frequency/position order")
            trace.ranked = fallback_order(graph.nodes, cfg.damping_factor)
            return
        trace.result = pagerank(graph, cfg.damping_factor, cfg.max_iterations, cfg.tolerance, deadline)
        logger.debug(
            f"Ranked {len(graph.nodes)} nodes / {len(graph.edges)} edges in "
            f"{trace.result.iterations} iterations (converged={trace.result.converged})"
        )
        trace.ranked = rank_candidates(graph.nodes, trace.result.scores)

    def _postprocess(self, trace: RankTrace) -> None:
        cfg = self.config
        weighted = apply_domain_weights(trace.ranked, cfg.category_patterns, cfg.domain_weights)
        trace.unique = deduplicate(weighted, cfg.dedup_threshold, cfg.dedup_method)
        trace.selected = select(trace.unique, cfg)

    def _rank_units(self, text: str, trace: RankTrace, deadline: Optional[float]) -> None:
        cfg = self.config
        sentences = trace.mode == "sentences"
        extract = extract_sentences if sentences else extract_phrases
        trace.candidates = extract(text, self.tokenizer, cfg)
        if not trace.candidates:
            return

        if trace.ranker == "tfidf":
            if sentences:
                scores = sentence_tfidf_scores(trace.candidates)
                trace.ranked = above_mean(rank_candidates(trace.candidates, scores),
                                          cfg.tfidf_threshold_ratio, cfg.top_k)
            else:
                words = [w.text for w in extract_words(text, self.tokenizer, cfg)]
                weights = chunk_term_weights(words, cfg.chunk_size)
                trace.ranked = rank_candidates(trace.candidates, phrase_scores(trace.candidates, weights))
        elif trace.ranker == "centrality":
            trace.matrix = build_similarity_matrix(trace.candidates, "tfidf")
            trace.ranked = rank_candidates(trace.candidates, centrality_scores(trace.matrix))
        else:
            strategy = cfg.similarity if sentences else cfg.phrase_similarity
            trace.matrix = self._similarity(trace.candidates, strategy)
            self._build_graph(trace, cfg.graph_mode if sentences else cfg.phrase_graph_mode)
            self._rank_graph(trace, deadline)

    def _rank_keywords(self, text: str, trace: RankTrace, deadline: Optional[float]) -> None:
        cfg = self.config
        words = extract_words(text, self.tokenizer, cfg)
        if not words:
            return
        if trace.ranker == "textrank":
            trace.graph = build_cooccurrence_graph(words, cfg.window_size)
            trace.candidates = trace.graph.nodes
            self._rank_graph(trace, deadline)
            return
        keys = [w.text.lower() for w in words]
        if trace.ranker == "tfidf":
            weights = chunk_term_weights(keys, cfg.chunk_size)
        else:
            weights = term_centrality(keys, cfg.chunk_size)
        trace.candidates = word_candidates(words)
        trace.ranked = rank_candidates(trace.candidates, phrase_scores(trace.candidates, weights))

    # ---- naive fallback ----

    def _naive(self, text: str, mode: str) -> List[ScoredText]:
        cfg = self.config
        base = 1.0 - cfg.damping_factor
        if mode == "sentences":
            items = [
                ScoredText(text=s, score=base, position=k)
                for k, s in enumerate(split_sentences(text))
                if content_length(s) >= cfg.min_sentence_length
            ]
        else:
            words = extract_words(text, NaiveTokenizer(), cfg)
            if not words:
                raise StageError("no words in input")
            items = fallback_order(word_candidates(words), cfg.damping_factor)
        return select(items, cfg)
