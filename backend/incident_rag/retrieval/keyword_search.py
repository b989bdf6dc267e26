"""
Keyword search adapter.

Sends one compound query (exact match over identifier-like fields OR fuzzy
match over free-text fields) to the keyword index and maps the hits onto
``CandidateResult`` objects.
"""

import logging
import time
from typing import List, Optional, Sequence

from ..core.errors import KeywordSearchFailure
from .keyword_index import EXACT_FIELDS, FUZZY_FIELDS, KeywordHit, KeywordIndex, KeywordQuery
from .models import CandidateResult, IncidentFields, SearchFilters, SearchMode


logger = logging.getLogger("incident_rag.retrieval.keyword_search")


class KeywordSearchAdapter:
    """Keyword (lexical) search over the incident corpus."""

    def __init__(
        self,
        index: KeywordIndex,
        exact_fields: Sequence[str] = EXACT_FIELDS,
        fuzzy_fields: Sequence[str] = FUZZY_FIELDS,
        fuzzy_max_edits: int = 1,
    ) -> None:
        self._index = index
        self._exact_fields = tuple(exact_fields)
        self._fuzzy_fields = tuple(fuzzy_fields)
        self._fuzzy_max_edits = fuzzy_max_edits

    def search(
        self,
        query: str,
        top_k: int,
        filters: Optional[SearchFilters] = None,
    ) -> List[CandidateResult]:
        """
        Run a keyword search.

        Args:
            query: Search text (normally the search-optimized query)
            top_k: Maximum number of results
            filters: Not supported by the keyword path; logged and ignored

        Returns:
            Candidates ordered by relevance score (descending)

        Raises:
            KeywordSearchFailure: If the keyword index call fails
        """
        if filters is not None and not filters.is_empty():
            logger.warning(
                "Keyword search does not support filters, ignoring them",
                extra={"filters": filters.as_dict()},
            )

        request = KeywordQuery(
            query=query,
            exact_fields=self._exact_fields,
            fuzzy_fields=self._fuzzy_fields,
            fuzzy_max_edits=self._fuzzy_max_edits,
            limit=top_k,
        )
        start = time.perf_counter()
        try:
            hits = self._index.search(request)
        except Exception as exc:
            logger.error("Keyword search failed: %s", exc, extra={"error_code": "keyword_search_failed"})
            raise KeywordSearchFailure(str(exc), query=query) from exc

        results = [self._to_candidate(hit) for hit in hits[:top_k]]
        logger.info(
            "Keyword search completed",
            extra={
                "results": len(results),
                "top_result": results[0].record_id if results else None,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return results

    @staticmethod
    def _to_candidate(hit: KeywordHit) -> CandidateResult:
        fields = hit.fields
        description = str(fields.get("description") or "")
        return CandidateResult(
            record_id=hit.record_id,
            summary=str(fields.get("summary") or ""),
            description=description,
            content=str(fields.get("searchableText") or description),
            raw_score=float(hit.relevance_score),
            source_engine=SearchMode.KEYWORD,
            fields=IncidentFields.from_metadata(fields),
        )
