from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from ..core.config import Settings, get_settings
from ..retrieval.embedding import OpenAIEmbeddingClient
from ..retrieval.hybrid import HybridFuser
from ..retrieval.keyword_index import load_keyword_index
from ..retrieval.keyword_search import KeywordSearchAdapter
from ..retrieval.models import HybridWeights
from ..retrieval.pipeline import RetrievalPipeline
from ..retrieval.vector_index import ChromaVectorIndex
from ..retrieval.vector_search import VectorSearchAdapter
from .cache_service import CacheService


logger = logging.getLogger("incident_rag.services.search")


def build_retrieval_pipeline(settings: Optional[Settings] = None) -> RetrievalPipeline:
    """Wire the configured keyword index, vector index and embedding client into a pipeline."""
    settings = settings or get_settings()

    cache = CacheService() if settings.embedding_cache_enabled else None
    embedder = OpenAIEmbeddingClient(settings, cache=cache)

    keyword = KeywordSearchAdapter(
        load_keyword_index(settings.incident_corpus_path),
        fuzzy_max_edits=settings.fuzzy_max_edits,
    )
    vector = VectorSearchAdapter(embedder, ChromaVectorIndex.from_settings(settings))
    fuser = HybridFuser(HybridWeights(
        vector_weight=settings.hybrid_vector_weight,
        keyword_weight=settings.hybrid_keyword_weight,
    ))

    logger.info(
        "Retrieval pipeline ready",
        extra={
            "embedding_model": settings.embedding_model_openai,
            "embedding_dimensions": settings.embedding_dimensions,
            "chroma_collection": settings.chroma_collection,
            "embedding_cache": cache is not None,
        },
    )
    return RetrievalPipeline(
        keyword,
        vector,
        fuser=fuser,
        default_top_k=settings.default_top_k,
        max_top_k=settings.max_top_k,
        pool_multiplier=settings.hybrid_pool_multiplier,
        timeout_seconds=settings.search_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_retrieval_pipeline() -> RetrievalPipeline:
    return build_retrieval_pipeline(get_settings())
