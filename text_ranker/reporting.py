from __future__ import annotations
import io
from typing import List, Optional, Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
import pandas as pd

from .datatypes import Candidate, FusedItem, Graph, ScoredText
from .graphing import to_networkx

def _preview(text: str, width: int = 80) -> str:
    return text[:width] + "..." if len(text) > width else text

def _labels(n: int, prefix: str = "S") -> List[str]:
    return [f"{prefix}{i+1}" for i in range(n)]

def candidates_frame(candidates: List[Candidate]) -> pd.DataFrame:
    """One row per candidate: text, tokens, position, frequency and topic."""
    rows = []
    for i, c in enumerate(candidates):
        rows.append({
            "Node": f"S{i+1}",
            "Text": _preview(c.text),
            "Tokens": ", ".join(c.tokens[:8]) + ("..." if len(c.tokens) > 8 else ""),
            "Position": c.position,
            "Frequency": c.frequency,
            "Topic": c.topic_id,
        })
    return pd.DataFrame(rows, columns=["Node", "Text", "Tokens", "Position", "Frequency", "Topic"])

def similarity_frame(simM: np.ndarray) -> pd.DataFrame:
    labels = _labels(len(simM))
    return pd.DataFrame(simM, columns=labels, index=labels)

def edges_frame(graph: Graph) -> pd.DataFrame:
    rows = [
        {"From": f"S{e.i+1}", "To": f"S{e.j+1}", "Weight": round(e.weight, 4)}
        for e in graph.edges
    ]
    return pd.DataFrame(rows, columns=["From", "To", "Weight"])

def scores_frame(items: List[ScoredText]) -> pd.DataFrame:
    rows = [
        {"Rank": r+1, "Score": round(it.score, 4), "Position": it.position, "Text": _preview(it.text)}
        for r, it in enumerate(items)
    ]
    return pd.DataFrame(rows, columns=["Rank", "Score", "Position", "Text"])

def fused_frame(fused: List[FusedItem]) -> pd.DataFrame:
    rows = [{"Rank": r+1, "Id": f.id, "Fused Score": round(f.score, 6)} for r, f in enumerate(fused)]
    return pd.DataFrame(rows, columns=["Rank", "Id", "Fused Score"])

def draw_graph_visualization(graph: Graph, scores: Optional[Sequence[float]] = None) -> io.BytesIO:
    """Render the ranking graph as PNG; node size follows the score when given."""
    G = to_networkx(graph)

    fig, ax = plt.subplots(figsize=(10, 8))
    ax.set_title("Ranking Graph", fontsize=14, fontweight='bold')

    if len(G.nodes) > 0:
        pos = nx.spring_layout(G, k=2, iterations=50, seed=42)
        if scores is not None and len(scores) == len(G.nodes):
            top = max(scores) or 1.0
            sizes = [300 + 1200 * (s / top) for s in scores]
        else:
            sizes = 800
        nx.draw_networkx_nodes(G, pos, ax=ax, node_color='lightblue', node_size=sizes, alpha=0.7)

        edges = G.edges(data=True)
        if edges:
            weights = [d['weight'] for _, _, d in edges]
            max_weight = max(weights) or 1.0
            nx.draw_networkx_edges(G, pos, ax=ax,
                                   width=[3 * (w / max_weight) for w in weights],
                                   alpha=0.6, edge_color='gray')

        labels = {i: f"S{i+1}" for i in G.nodes()}
        nx.draw_networkx_labels(G, pos, labels, ax=ax, font_size=10, font_weight='bold')

        if len(G.nodes) <= 10:
            edge_labels = {(u, v): f"{d['weight']:.2f}" for u, v, d in G.edges(data=True)}
            nx.draw_networkx_edge_labels(G, pos, edge_labels, ax=ax, font_size=8)

    ax.axis('off')
    plt.tight_layout()

    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=150, bbox_inches='tight')
    buf.seek(0)
    plt.close(fig)
    return buf
