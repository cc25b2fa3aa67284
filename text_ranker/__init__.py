from .datatypes import Token, Candidate, Edge, Graph, Cluster, RankedItem, FusedItem, RankResult, ScoredText
from .errors import TextRankerError, ConfigError, DimensionMismatch, StageError
from .config import RankerConfig, load_config
from .logging_config import setup_logging
from .tokenizing import NaiveTokenizer, JiebaTokenizer, SharedTokenizer
from .candidates import extract_phrases, extract_sentences, extract_words
from .similarity import build_similarity_matrix, cosine_similarity, jaccard
from .clustering import cluster_candidates, assign_topics
from .graphing import build_graph, build_multipartite_graph, adjust_weights, build_cooccurrence_graph, build_topic_graph
from .scoring import pagerank, rank_candidates, fallback_order, apply_domain_weights
from .tfidf import sentence_tfidf_scores, tfidf_similarity_matrix, centrality_scores, chunk_term_weights, term_centrality
from .dedup import deduplicate
from .fusion import rrf_fuse, weighted_rrf_fuse, hybrid_fuse, fuse_rankings, filter_by_mean_score, score_against_query
from .selection import select, restore_document_order
from .pipeline import TextRanker, RankTrace, Stage, StageResult, run_stages
