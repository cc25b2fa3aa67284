from __future__ import annotations
from dataclasses import dataclass, field
from typing import Hashable, List, Optional

@dataclass(frozen=True)
class Token:
    surface: str
    base_form: str = ""
    pos: str = "word"
    pos_detail: str = ""

    @property
    def text(self) -> str:
        return self.base_form or self.surface

@dataclass
class Candidate:
    text: str
    tokens: List[str] = field(default_factory=list)
    position: int = 0
    end_position: int = 0
    frequency: int = 1
    topic_id: Optional[int] = None

@dataclass
class Edge:
    i: int
    j: int
    weight: float  # >= 0

@dataclass
class Graph:
    nodes: List[Candidate]
    edges: List[Edge]
    directed: bool = False  # undirected edges count in both directions

@dataclass
class Cluster:
    id: int
    members: List[Candidate]
    representative: Candidate
    score: float = 0.0

@dataclass
class RankedItem:
    id: Hashable
    score: float

@dataclass
class FusedItem:
    id: Hashable
    score: float

@dataclass
class RankResult:
    scores: List[float]
    iterations: int
    converged: bool

@dataclass
class ScoredText:
    text: str
    score: float
    position: int = 0
