from __future__ import annotations
import math
from collections import defaultdict
from typing import Dict, List, Tuple

import networkx as nx
import numpy as np

from .candidates import word_candidates
from .datatypes import Candidate, Cluster, Edge, Graph, Token

def build_graph(candidates: List[Candidate], simM: np.ndarray, threshold: float = 0.0) -> Graph:
    """Undirected graph with one edge per pair whose similarity exceeds ``threshold``."""
    edges: List[Edge] = []
    n = len(candidates)
    for i in range(n):
        for j in range(i+1, n):
            w = float(simM[i][j])
            if w > threshold:
                edges.append(Edge(i=i, j=j, weight=w))
    return Graph(nodes=candidates, edges=edges)

def _same_topic(a: Candidate, b: Candidate) -> bool:
    return a.topic_id is not None and a.topic_id == b.topic_id

def build_multipartite_graph(candidates: List[Candidate], simM: np.ndarray) -> Graph:
    """
    Directed graph joining only candidates from different topics.

    Weight is similarity scaled by 1/|pos_i - pos_j| (1.0 when the
    positions coincide): nearby cross-topic mentions count more.
    """
    edges: List[Edge] = []
    n = len(candidates)
    for i in range(n):
        for j in range(n):
            if i == j or _same_topic(candidates[i], candidates[j]):
                continue
            distance = abs(candidates[i].position - candidates[j].position)
            position_weight = 1.0 / distance if distance > 0 else 1.0
            w = float(simM[i][j]) * position_weight
            if w > 0:
                edges.append(Edge(i=i, j=j, weight=w))
    return Graph(nodes=candidates, edges=edges, directed=True)

def as_directed(graph: Graph) -> Graph:
    if graph.directed:
        return graph
    edges: List[Edge] = []
    for e in graph.edges:
        edges.append(Edge(i=e.i, j=e.j, weight=e.weight))
        edges.append(Edge(i=e.j, j=e.i, weight=e.weight))
    return Graph(nodes=graph.nodes, edges=edges, directed=True)

def adjust_weights(graph: Graph, alpha: float = 1.1) -> Graph:
    """
    Promote the first-occurring candidate of each topic.

    Every edge into a topic's first candidate gains
    ``alpha * exp(1 / (position + 1)) * S`` where S is the total outgoing
    weight of the other members of that topic. Returns a new graph.
    """
    graph = as_directed(graph)
    nodes = graph.nodes

    first_of_topic: Dict[int, int] = {}
    for idx, c in enumerate(nodes):
        if c.topic_id is None:
            continue
        cur = first_of_topic.get(c.topic_id)
        if cur is None or c.position < nodes[cur].position:
            first_of_topic[c.topic_id] = idx

    out_weight: Dict[int, float] = defaultdict(float)
    for e in graph.edges:
        out_weight[e.i] += e.weight

    bonus: Dict[int, float] = {}
    for topic, first in first_of_topic.items():
        same_topic_out = sum(
            out_weight[idx] for idx, c in enumerate(nodes)
            if c.topic_id == topic and idx != first
        )
        boost = math.exp(1.0 / (nodes[first].position + 1))
        bonus[first] = alpha * boost * same_topic_out

    edges = [
        Edge(i=e.i, j=e.j, weight=e.weight + bonus.get(e.j, 0.0))
        for e in graph.edges
    ]
    return Graph(nodes=nodes, edges=edges, directed=True)

def build_cooccurrence_graph(words: List[Token], window: int = 2) -> Graph:
    """Word graph; edge weight counts co-occurrences within ``window`` following words."""
    nodes = word_candidates(words)
    index = {c.tokens[0]: k for k, c in enumerate(nodes)}
    keys = [w.text.lower() for w in words]
    weights: Dict[Tuple[int, int], float] = defaultdict(float)
    for i in range(len(keys)):
        for j in range(i + 1, min(i + window + 1, len(keys))):
            a, b = index[keys[i]], index[keys[j]]
            if a != b:
                weights[(min(a, b), max(a, b))] += 1.0
    edges = [Edge(i=a, j=b, weight=w) for (a, b), w in sorted(weights.items())]
    return Graph(nodes=nodes, edges=edges)

def build_topic_graph(clusters: List[Cluster]) -> Graph:
    """Graph over topics: mean inverse distance between member first positions."""
    nodes = [c.representative for c in clusters]
    edges: List[Edge] = []
    for a in range(len(clusters)):
        for b in range(a + 1, len(clusters)):
            inv = [
                1.0 / abs(p.position - q.position)
                for p in clusters[a].members
                for q in clusters[b].members
                if p.position != q.position
            ]
            if inv:
                edges.append(Edge(i=a, j=b, weight=sum(inv) / len(inv)))
    return Graph(nodes=nodes, edges=edges)

def weight_matrix(graph: Graph) -> np.ndarray:
    """W[j, i] is the weight of the edge j -> i; undirected edges fill both cells."""
    n = len(graph.nodes)
    W = np.zeros((n, n), dtype=float)
    for e in graph.edges:
        if e.i == e.j:
            continue
        W[e.i, e.j] += e.weight
        if not graph.directed:
            W[e.j, e.i] += e.weight
    return W

def to_networkx(graph: Graph) -> nx.Graph:
    G = nx.DiGraph() if graph.directed else nx.Graph()
    for i, node in enumerate(graph.nodes):
        G.add_node(i, text=node.text, position=node.position, topic=node.topic_id)
    for e in graph.edges:
        G.add_edge(e.i, e.j, weight=e.weight)
    return G
