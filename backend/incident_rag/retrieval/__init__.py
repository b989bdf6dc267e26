"""
Retrieval module for incident search.

Contains:
- Query preprocessing and IT abbreviation expansion
- Keyword index boundary with a BM25 implementation
- Vector index boundary with a ChromaDB implementation
- OpenAI query embeddings
- Keyword and vector search adapters
- Min-max score normalization and weighted hybrid fusion
- The retrieval pipeline sequencing all of the above
"""

from .models import (
    SearchMode,
    AbbreviationMatch,
    SearchFilters,
    IncidentFields,
    CandidateResult,
    NormalizedResult,
    FusedResult,
    HybridWeights,
    RankedResult,
    SearchTrace,
    SearchOutcome,
)
from .preprocessing import (
    PreprocessedQuery,
    AbbreviationExpander,
    preprocess_query,
    preprocessing_summary,
)
from .keyword_index import (
    KeywordQuery,
    KeywordHit,
    KeywordIndex,
    BM25KeywordIndex,
    load_keyword_index,
)
from .vector_index import (
    VectorQuery,
    VectorHit,
    VectorIndex,
    ChromaVectorIndex,
)
from .embedding import (
    EmbeddingClient,
    OpenAIEmbeddingClient,
)
from .keyword_search import KeywordSearchAdapter
from .vector_search import VectorSearchAdapter
from .scoring import normalize_scores
from .hybrid import (
    HybridFuser,
    ResolutionStatusPolicy,
    fuse_results,
)
from .pipeline import RetrievalPipeline

__all__ = [
    "SearchMode",
    "AbbreviationMatch",
    "SearchFilters",
    "IncidentFields",
    "CandidateResult",
    "NormalizedResult",
    "FusedResult",
    "HybridWeights",
    "RankedResult",
    "SearchTrace",
    "SearchOutcome",
    "PreprocessedQuery",
    "AbbreviationExpander",
    "preprocess_query",
    "preprocessing_summary",
    "KeywordQuery",
    "KeywordHit",
    "KeywordIndex",
    "BM25KeywordIndex",
    "load_keyword_index",
    "VectorQuery",
    "VectorHit",
    "VectorIndex",
    "ChromaVectorIndex",
    "EmbeddingClient",
    "OpenAIEmbeddingClient",
    "KeywordSearchAdapter",
    "VectorSearchAdapter",
    "normalize_scores",
    "HybridFuser",
    "ResolutionStatusPolicy",
    "fuse_results",
    "RetrievalPipeline",
]
