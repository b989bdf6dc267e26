from __future__ import annotations

import logging
import time
from typing import List, Optional, Protocol

from openai import OpenAI

from ..core.config import Settings
from ..core.errors import EmbeddingDimensionMismatch
from ..services.cache_service import CacheService, embedding_cache_key


class EmbeddingClient(Protocol):
    """Turns query text into a fixed-dimension vector."""

    dimensions: int

    def embed_query(self, text: str) -> List[float]:
        ...


class OpenAIEmbeddingClient:
    """
    Query embeddings from the OpenAI embeddings API.

    Every returned vector is checked against the configured dimension; a
    mismatch raises ``EmbeddingDimensionMismatch`` instead of being truncated
    or padded. Vectors can optionally be cached in Redis by model and text;
    a cached vector of the wrong size is evicted and fetched again.
    """

    def __init__(
        self,
        settings: Settings,
        openai_client: Optional[OpenAI] = None,
        cache: Optional[CacheService] = None,
    ):
        self.settings = settings
        self.model = settings.embedding_model_openai
        self.dimensions = settings.embedding_dimensions
        self.cache_ttl = settings.embedding_cache_ttl
        self._openai_client = openai_client
        self.cache = cache
        self.logger = logging.getLogger("incident_rag.retrieval.embedding")

    def _client(self) -> OpenAI:
        if self._openai_client is None:
            api_key = self.settings.openai_api_key
            self._openai_client = OpenAI(api_key=api_key) if api_key else OpenAI()
        return self._openai_client

    def embed_query(self, text: str) -> List[float]:
        cache_key = embedding_cache_key(self.model, text)
        if self.cache is not None:
            cached = self.cache.get_json(cache_key, layer="embedding")
            if cached is not None and len(cached) == self.dimensions:
                return cached
            if cached is not None:
                # Written under another dimensions setting; regenerate it.
                self.logger.warning(
                    "Evicting cached query embedding of wrong size",
                    extra={"expected": self.dimensions, "actual": len(cached)},
                )
                self.cache.delete(cache_key)

        start = time.perf_counter()
        response = self._client().embeddings.create(
            model=self.model,
            input=text,
            dimensions=self.dimensions,
        )
        embedding = self._checked(list(response.data[0].embedding), text)
        self.logger.debug(
            "Generated OpenAI query embedding",
            extra={
                "model": self.model,
                "dimensions": len(embedding),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        if self.cache is not None:
            self.cache.set_json(cache_key, embedding, self.cache_ttl)
        return embedding

    def _checked(self, embedding: List[float], text: str) -> List[float]:
        if len(embedding) != self.dimensions:
            raise EmbeddingDimensionMismatch(self.dimensions, len(embedding), query=text)
        return embedding
