"""
Vector search adapter.

Embeds the query, asks the vector index for the nearest incidents (cosine
similarity), and maps the hits onto ``CandidateResult`` objects. Either a
full ranked list or an error comes back; there is no partial result.
"""

import logging
import time
from typing import List, Optional

from ..core.errors import VectorSearchFailure
from .embedding import EmbeddingClient
from .models import CandidateResult, IncidentFields, SearchFilters, SearchMode
from .vector_index import VectorHit, VectorIndex, VectorQuery


logger = logging.getLogger("incident_rag.retrieval.vector_search")


class VectorSearchAdapter:
    """Semantic search over incident embeddings."""

    # Candidate pool handed to the index relative to the requested limit.
    CANDIDATE_MULTIPLIER = 10
    MIN_CANDIDATES = 100

    def __init__(self, embedder: EmbeddingClient, index: VectorIndex) -> None:
        self._embedder = embedder
        self._index = index

    def search(
        self,
        query: str,
        top_k: int,
        filters: Optional[SearchFilters] = None,
    ) -> List[CandidateResult]:
        """
        Run a vector search.

        Args:
            query: Search text (normally the search-optimized query)
            top_k: Maximum number of results
            filters: Optional exact-match filters narrowing the candidates

        Returns:
            Candidates ordered by cosine similarity (descending)

        Raises:
            EmbeddingDimensionMismatch: If the embedding has the wrong length
            VectorSearchFailure: If the embedding service or the index fails
        """
        filter_values = filters.as_dict() if filters is not None else {}
        start = time.perf_counter()
        try:
            query_vector = self._embedder.embed_query(query)
            hits = self._index.query(VectorQuery(
                query_vector=query_vector,
                filters=filter_values,
                limit=top_k,
                num_candidates=max(top_k * self.CANDIDATE_MULTIPLIER, self.MIN_CANDIDATES),
            ))
        except VectorSearchFailure:
            raise
        except Exception as exc:
            logger.error("Vector search failed: %s", exc, extra={"error_code": "vector_search_failed"})
            raise VectorSearchFailure(str(exc), query=query) from exc

        results = [self._to_candidate(hit) for hit in hits[:top_k]]
        logger.info(
            "Vector search completed",
            extra={
                "results": len(results),
                "filters": filter_values,
                "top_result": results[0].record_id if results else None,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return results

    @staticmethod
    def _to_candidate(hit: VectorHit) -> CandidateResult:
        metadata = hit.metadata
        return CandidateResult(
            record_id=hit.record_id,
            summary=str(metadata.get("summary") or ""),
            description=str(metadata.get("description") or ""),
            content=hit.content,
            raw_score=float(hit.similarity_score),
            source_engine=SearchMode.VECTOR,
            fields=IncidentFields.from_metadata(metadata),
        )
