"""Embedding indexing and hybrid (semantic + pin name) search."""

from .embedding_indexer import EmbeddingIndexer
from .hybrid_search import (
    HybridSearchEngine,
    merge_hybrid_results,
    merge_pin_results,
    rank_substring_matches,
)

__all__ = [
    "EmbeddingIndexer",
    "HybridSearchEngine",
    "merge_hybrid_results",
    "merge_pin_results",
    "rank_substring_matches",
]
