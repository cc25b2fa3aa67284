from __future__ import annotations
import logging
from dataclasses import dataclass, field, fields, replace as _replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

FUSION_METHODS = ("rrf", "weighted", "hybrid")
SIMILARITY_METHODS = ("jaccard", "cosine", "phrase", "edit", "tfidf")
GRAPH_MODES = ("plain", "multipartite", "topic")
DEDUP_METHODS = ("edit", "tokens", "length")
RANKERS = ("textrank", "tfidf", "centrality")

STOPWORDS: FrozenSet[str] = frozenset({
    # minimal English stopword set (extend as needed)
    'the','a','an','and','or','but','if','then','else','for','to','of','in','on','at','by','with','as',
    'is','are','was','were','be','been','being','this','that','these','those','it','its','from','into',
    'we','you','they','he','she','i','me','my','your','our','their','his','her','them','us','do','does',
    'did','not','no','so','than','too','very','can','could','should','would','will','shall'
})

# jieba tag prefixes that carry content (nouns, verbs, adjectives, latin words)
CONTENT_POS_PREFIXES: Tuple[str, ...] = ("n", "v", "a", "eng", "word")

# functional sub-categories inside the content prefixes
EXCLUDED_POS: FrozenSet[str] = frozenset({
    "vshi", "vyou", "vf", "vx", "ad", "nx",
})

@dataclass
class RankerConfig:
    # iterative ranker
    damping_factor: float = 0.85
    max_iterations: int = 50
    tolerance: float = 1e-4

    # extraction
    min_unit_length: int = 2
    max_unit_length: int = 200
    min_sentence_length: int = 10
    max_phrase_length: int = 4
    max_candidates: int = 100
    window_size: int = 2

    # ranking strategy
    ranker: str = "textrank"
    tfidf_threshold_ratio: float = 1.2
    chunk_size: int = 15

    # similarity / graph
    similarity: str = "jaccard"
    graph_mode: str = "plain"
    phrase_similarity: str = "phrase"
    phrase_graph_mode: str = "multipartite"
    cluster_merge_threshold: float = 0.25
    position_alpha: float = 1.1

    # post-processing
    dedup_threshold: float = 0.8
    dedup_method: str = "edit"
    top_k: int = 20
    min_score: Optional[float] = None

    # fusion
    fusion_method: str = "rrf"
    fusion_k: int = 60
    lam: float = 0.5

    # collaborators
    refine_timeout: float = 8.0

    # domain tables, supplied by the caller
    domain_weights: Dict[str, float] = field(default_factory=dict)
    category_patterns: Dict[str, List[str]] = field(default_factory=dict)
    content_pos_prefixes: Tuple[str, ...] = CONTENT_POS_PREFIXES
    excluded_pos: FrozenSet[str] = EXCLUDED_POS
    stopwords: FrozenSet[str] = STOPWORDS

    def validate(self) -> "RankerConfig":
        if not 0.0 <= self.damping_factor <= 1.0:
            raise ConfigError(f"damping_factor must be in [0, 1], got {self.damping_factor}")
        if self.max_iterations < 1:
            raise ConfigError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.tolerance <= 0:
            raise ConfigError(f"tolerance must be > 0, got {self.tolerance}")
        if self.min_unit_length < 0 or self.max_unit_length < self.min_unit_length:
            raise ConfigError(
                f"invalid unit length bounds: [{self.min_unit_length}, {self.max_unit_length}]"
            )
        if self.max_phrase_length < 1:
            raise ConfigError(f"max_phrase_length must be >= 1, got {self.max_phrase_length}")
        if self.max_candidates < 1:
            raise ConfigError(f"max_candidates must be >= 1, got {self.max_candidates}")
        if self.window_size < 1:
            raise ConfigError(f"window_size must be >= 1, got {self.window_size}")
        if self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.tfidf_threshold_ratio < 0:
            raise ConfigError(f"tfidf_threshold_ratio must be >= 0, got {self.tfidf_threshold_ratio}")
        if self.top_k < 0:
            raise ConfigError(f"top_k must be >= 0, got {self.top_k}")
        if not 0.0 <= self.lam <= 1.0:
            raise ConfigError(f"lam must be in [0, 1], got {self.lam}")
        if self.fusion_k < 0:
            raise ConfigError(f"fusion_k must be >= 0, got {self.fusion_k}")
        for name, value in (("cluster_merge_threshold", self.cluster_merge_threshold),
                            ("dedup_threshold", self.dedup_threshold)):
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be in [0, 1], got {value}")
        for name, value, allowed in (
            ("ranker", self.ranker, RANKERS),
            ("fusion_method", self.fusion_method, FUSION_METHODS),
            ("similarity", self.similarity, SIMILARITY_METHODS),
            ("phrase_similarity", self.phrase_similarity, SIMILARITY_METHODS),
            ("graph_mode", self.graph_mode, GRAPH_MODES),
            ("phrase_graph_mode", self.phrase_graph_mode, GRAPH_MODES),
            ("dedup_method", self.dedup_method, DEDUP_METHODS),
        ):
            if value not in allowed:
                raise ConfigError(f"Unknown {name}: {value!r} (expected one of {allowed})")
        return self

    def replace(self, **changes: Any) -> "RankerConfig":
        return _replace(self, **changes).validate()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RankerConfig":
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config option: {key}")
                continue
            if key in ("stopwords", "excluded_pos"):
                value = frozenset(value)
            elif key == "content_pos_prefixes":
                value = tuple(value)
            kwargs[key] = value
        return cls(**kwargs).validate()


def load_config(path: Union[str, Path]) -> RankerConfig:
    """Load a ``RankerConfig`` from a YAML mapping file."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    logger.debug(f"Loaded config from {path}: {sorted(data)}")
    return RankerConfig.from_mapping(data)
