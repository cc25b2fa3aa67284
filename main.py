from __future__ import annotations
import streamlit as st
import re
import logging
import numpy as np
from typing import Tuple

from text_ranker.config import GRAPH_MODES, FUSION_METHODS, RANKERS, SIMILARITY_METHODS, RankerConfig
from text_ranker.logging_config import setup_logging
from text_ranker.tokenizing import SharedTokenizer
from text_ranker.selection import restore_document_order
from text_ranker.pipeline import TextRanker
from text_ranker.reporting import (
    candidates_frame, similarity_frame, edges_frame, scores_frame, fused_frame, draw_graph_visualization,
)

logger = setup_logging(console_level=logging.INFO)

@st.cache_resource
def get_tokenizer() -> SharedTokenizer:
    # one jieba dictionary for every rerun of the script
    return SharedTokenizer()

def extract_rtf_text(rtf_content):
    """Extract plain text from RTF content."""
    text = re.sub(r'\\[a-z]+\d*', '', rtf_content)
    text = re.sub(r'[{}]', '', text)
    text = re.sub(r'\\\*.*?;', '', text)
    text = re.sub(r'\\[^a-z]', '', text)
    text = re.sub(r'\s+', ' ', text)
    return text.strip()

def extract_markdown_text(md_content):
    """Extract plain text from Markdown content."""
    text = re.sub(r'^#{1,6}\s+', '', md_content, flags=re.MULTILINE)
    text = re.sub(r'\*{1,2}(.*?)\*{1,2}', r'\1', text)
    text = re.sub(r'_{1,2}(.*?)_{1,2}', r'\1', text)
    text = re.sub(r'\[([^\]]+)\]\([^)]+\)', r'\1', text)
    text = re.sub(r'```.*?```', '', text, flags=re.DOTALL)
    text = re.sub(r'`([^`]+)`', r'\1', text)
    text = re.sub(r'^-{3,}$', '', text, flags=re.MULTILINE)
    text = re.sub(r'\n\s*\n', '\n\n', text)
    return text.strip()

def load_text_from_file(uploaded_file):
    """Load text content from uploaded file based on file type."""
    file_extension = uploaded_file.name.lower().split('.')[-1]
    content = uploaded_file.read().decode("utf-8")

    if file_extension == 'rtf':
        return extract_rtf_text(content)
    elif file_extension == 'md':
        return extract_markdown_text(content)
    else:  # txt and other formats
        return content

def create_sidebar_controls() -> Tuple[str, RankerConfig, bool]:
    """Create sidebar controls for parameters."""
    st.sidebar.header("Extraction")
    mode = st.sidebar.selectbox("Mode", ["sentences", "phrases", "keywords"], index=0)
    ranker = st.sidebar.selectbox("Ranker", RANKERS, index=0, help="textrank builds a graph; tfidf and centrality score with TF-IDF")
    top_k = st.sidebar.slider("Top K", min_value=1, max_value=50, value=5, step=1)

    st.sidebar.header("Graph")
    similarity = st.sidebar.selectbox(
        "Sentence similarity", [s for s in SIMILARITY_METHODS if s != "cosine"], index=0,
        help="Cosine needs an embedder and is not available in the demo",
    )
    graph_mode = st.sidebar.selectbox("Sentence graph", GRAPH_MODES, index=0)
    phrase_graph_mode = st.sidebar.selectbox("Phrase graph", GRAPH_MODES, index=1)
    damping = st.sidebar.slider("Damping factor", min_value=0.5, max_value=0.95, value=0.85, step=0.05)
    merge_threshold = st.sidebar.slider(
        "Topic merge threshold", min_value=0.05, max_value=1.0, value=0.25, step=0.05,
        help="Average-linkage similarity needed to merge two topics",
    )

    st.sidebar.header("Post-processing")
    dedup_threshold = st.sidebar.slider("Dedup threshold", min_value=0.5, max_value=1.0, value=0.8, step=0.05)
    fusion_method = st.sidebar.selectbox("Fusion method", FUSION_METHODS, index=0)
    lam = st.sidebar.slider("Hybrid λ", min_value=0.0, max_value=1.0, value=0.5, step=0.1)

    st.sidebar.header("Debug Options")
    debug_mode = st.sidebar.checkbox("Enable Debug Mode", value=True, help="Show detailed pipeline steps")

    config = RankerConfig(
        ranker=ranker,
        top_k=top_k,
        similarity=similarity,
        graph_mode=graph_mode,
        phrase_graph_mode=phrase_graph_mode,
        damping_factor=damping,
        cluster_merge_threshold=merge_threshold,
        dedup_threshold=dedup_threshold,
        fusion_method=fusion_method,
        lam=lam,
    ).validate()
    return mode, config, debug_mode

def debug_pipeline(ranker: TextRanker, text: str, mode: str):
    """Run one statistical ranking and show each intermediate step."""
    trace = ranker.trace(text, mode)
    candidates = trace.candidates

    # Step 1: Candidates
    st.header("Step 1: Candidate Extraction")
    with st.expander("Candidate Details", expanded=True):
        st.success(f"Extracted {len(candidates)} candidates")
        col1, col2 = st.columns(2)
        with col1:
            st.metric("Candidates", len(candidates))
        with col2:
            st.metric("Tokenizer", "jieba" if getattr(ranker.tokenizer, "available", False) else "naive")
        st.dataframe(candidates_frame(candidates), use_container_width=True)

    if not candidates:
        st.warning("No candidates found")
        return []

    # Step 2: Similarity
    st.header("Step 2: Similarity Matrix")
    with st.expander("Similarity Details", expanded=True):
        simM = trace.matrix
        if simM is None:
            st.info(f"The {trace.ranker} ranker builds no similarity matrix in {mode} mode")
        elif len(simM) <= 50:
            st.dataframe(similarity_frame(simM), use_container_width=True)
        else:
            n = len(simM)
            st.info(f"Matrix too large to display ({n}×{n} = {n**2:,} cells)")
            flat_sim = simM[np.triu_indices(n, k=1)]
            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("Max Similarity", f"{flat_sim.max():.3f}")
            with col2:
                st.metric("Mean Similarity", f"{flat_sim.mean():.3f}")
            with col3:
                st.metric("Std Similarity", f"{flat_sim.std():.3f}")

    # Step 3: Graph
    graph = trace.graph
    st.header("Step 3: Graph Construction")
    with st.expander("Graph Details", expanded=True):
        if graph is None:
            st.info(f"The {trace.ranker} ranker scores candidates without a graph")
        else:
            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("Nodes", len(graph.nodes))
            with col2:
                st.metric("Edges", len(graph.edges))
            with col3:
                st.metric("Topics", len(trace.clusters))
            if graph.edges:
                st.dataframe(edges_frame(graph), use_container_width=True)
            else:
                st.warning("No edges: candidates will be ordered by frequency and position")

    # Step 4: Ranking
    st.header("Step 4: Ranking")
    with st.expander("Ranking Details", expanded=True):
        result = trace.result
        if result is not None:
            col1, col2 = st.columns(2)
            with col1:
                st.metric("Iterations", result.iterations)
            with col2:
                st.metric("Converged", "yes" if result.converged else "no")
        elif graph is not None:
            st.info("Edgeless graph, fallback ordering used")
        st.dataframe(scores_frame(trace.ranked), use_container_width=True)

        if graph is not None and len(graph.nodes) <= 50:
            try:
                with st.spinner("Generating graph visualization..."):
                    graph_image = draw_graph_visualization(graph, result.scores if result else None)
                st.image(graph_image, caption="Node size follows score", use_column_width=True)
            except Exception as e:
                st.error(f"Could not generate graph visualization: {str(e)}")
        elif graph is not None:
            st.info(f"Graph too large to visualize ({len(graph.nodes)} nodes)")

    # Step 5: Post-processing
    st.header("Step 5: Dedup and Selection")
    with st.expander("Selection Details", expanded=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Ranked", len(trace.ranked))
        with col2:
            st.metric("After Dedup", len(trace.unique))
        with col3:
            st.metric("Selected", len(trace.selected))
    return trace.selected

def fusion_section(ranker: TextRanker, text: str, mode: str):
    """Fuse the rankings produced by TextRank and the TF-IDF rankers."""
    st.header("Rank Fusion")
    fused = ranker.extract_fused(text, mode, rankers=RANKERS)
    st.write(f"**Rankers:** {', '.join(RANKERS)}")
    st.write(f"**Method:** {ranker.config.fusion_method}, k={ranker.config.fusion_k}")
    st.dataframe(fused_frame(fused), use_container_width=True)

def main():
    st.title("TextRank Extractor")
    st.write("Upload a text file to extract key sentences, keyphrases or keywords")

    mode, config, debug_mode = create_sidebar_controls()

    uploaded_file = st.file_uploader(
        "Choose a text file",
        type=['txt', 'rtf', 'md'],
        help="Upload a text file (supports .txt, .rtf, .md formats)"
    )

    if uploaded_file is not None:
        text = load_text_from_file(uploaded_file)
        file_extension = uploaded_file.name.lower().split('.')[-1]

        st.subheader(f"Original Text ({file_extension.upper()} format)")
        st.text_area("Content", text, height=200, disabled=True)

        if st.button("Extract", type="primary"):
            ranker = TextRanker(config, tokenizer=get_tokenizer())
            try:
                if debug_mode:
                    st.markdown("---")
                    st.title("Pipeline Debug Mode")
                    result = debug_pipeline(ranker, text, mode)
                else:
                    with st.spinner("Ranking..."):
                        result = ranker.extract(text, mode)

                st.markdown("---")
                st.header("Result")
                st.dataframe(scores_frame(result), use_container_width=True)
                if mode == "sentences" and result:
                    st.text_area("In document order",
                                 " ".join(it.text for it in restore_document_order(result)),
                                 height=150, disabled=True)
                if result:
                    fusion_section(ranker, text, mode)
            except Exception as e:
                logger.exception("Extraction failed")
                st.error(f"Error during extraction: {str(e)}")
                st.exception(e)

if __name__ == "__main__":
    main()
