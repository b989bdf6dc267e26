"""
Weighted fusion of keyword and vector results.

Hybrid scoring works on min-max normalized lists:
    fused(d) = vector_weight * v(d) + keyword_weight * k(d)

A record missing from one list contributes nothing for that engine, so records
found by both engines are rewarded rather than averaged down. Fusion never
raises; it only ever sees lists from adapter calls that succeeded.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import FusedResult, HybridWeights, NormalizedResult, SearchMode


logger = logging.getLogger("incident_rag.retrieval.hybrid")


def fuse_results(
    norm_keyword: Sequence[NormalizedResult],
    norm_vector: Sequence[NormalizedResult],
    weights: HybridWeights,
) -> List[FusedResult]:
    """
    Merge two normalized lists by record id.

    The vector list seeds the merge. Keyword entries either add their weighted
    score to an existing record or are appended as new records. When a keyword
    entry carries a longer ``content`` snippet than the existing record, the
    longer snippet is kept; the other display fields stay as they were.

    The output keeps insertion order and is neither sorted, filtered nor
    truncated.

    Example:
        >>> from incident_rag.retrieval.models import CandidateResult, SearchMode
        >>> v = [NormalizedResult(CandidateResult("X", "", "", "", 0.9, SearchMode.VECTOR), 0.8)]
        >>> k = [NormalizedResult(CandidateResult("X", "", "", "", 7.0, SearchMode.KEYWORD), 0.5)]
        >>> round(fuse_results(k, v, HybridWeights(0.6, 0.4))[0].fused_score, 2)
        0.68
    """
    merged: Dict[str, FusedResult] = {}

    for item in norm_vector:
        candidate = item.candidate
        merged[candidate.record_id] = FusedResult(
            record_id=candidate.record_id,
            summary=candidate.summary,
            description=candidate.description,
            content=candidate.content,
            fused_score=item.norm_score * weights.vector_weight,
            fields=candidate.fields,
            match_type=SearchMode.HYBRID,
        )

    for item in norm_keyword:
        candidate = item.candidate
        contribution = item.norm_score * weights.keyword_weight
        existing = merged.get(candidate.record_id)
        if existing is not None:
            existing.fused_score += contribution
            if len(candidate.content) > len(existing.content):
                existing.content = candidate.content
            continue
        merged[candidate.record_id] = FusedResult(
            record_id=candidate.record_id,
            summary=candidate.summary,
            description=candidate.description,
            content=candidate.content,
            fused_score=contribution,
            fields=candidate.fields,
            match_type=SearchMode.HYBRID,
        )

    return list(merged.values())


def rank_fused(results: Iterable[FusedResult], top_k: int) -> List[FusedResult]:
    """Stable sort by fused score (descending) and keep the first ``top_k``."""
    return sorted(results, key=lambda r: r.fused_score, reverse=True)[:top_k]


class HybridFuser:
    """
    Holds the current fusion weights and fuses result lists with them.

    Weights are an immutable ``HybridWeights`` value replaced as a whole, so
    a caller that took a snapshot keeps fusing with one consistent pair even
    while another caller swaps in new weights.
    """

    def __init__(self, weights: Optional[HybridWeights] = None) -> None:
        self._weights = weights or HybridWeights()
        self._lock = threading.Lock()
        self._weights.warn_if_unbalanced()

    @property
    def weights(self) -> HybridWeights:
        """Current weights snapshot."""
        return self._weights

    def update_weights(self, vector_weight: float, keyword_weight: float) -> HybridWeights:
        """
        Replace the weights.

        Raises:
            ValueError: If either weight lies outside [0, 1]
        """
        new_weights = HybridWeights(vector_weight=vector_weight, keyword_weight=keyword_weight)
        new_weights.warn_if_unbalanced()
        with self._lock:
            previous = self._weights
            self._weights = new_weights
        logger.info(
            "Updated hybrid search weights",
            extra={
                "previous_vector_weight": previous.vector_weight,
                "previous_keyword_weight": previous.keyword_weight,
                "vector_weight": new_weights.vector_weight,
                "keyword_weight": new_weights.keyword_weight,
            },
        )
        return new_weights

    def fuse(
        self,
        norm_keyword: Sequence[NormalizedResult],
        norm_vector: Sequence[NormalizedResult],
        weights: Optional[HybridWeights] = None,
    ) -> List[FusedResult]:
        return fuse_results(norm_keyword, norm_vector, weights or self._weights)


class ResolutionStatusPolicy:
    """
    Hybrid search only surfaces incidents with a proven resolution.

    Every fused result whose status is not one of ``allowed`` is dropped,
    whatever filters the caller passed in.
    """

    DEFAULT_ALLOWED: Tuple[str, ...] = ("Resolved", "Closed")

    def __init__(self, allowed: Sequence[str] = DEFAULT_ALLOWED) -> None:
        self.allowed = frozenset(allowed)

    def permits(self, result: FusedResult) -> bool:
        return result.fields.status in self.allowed

    def apply(self, results: Iterable[FusedResult]) -> List[FusedResult]:
        results = list(results)
        kept = [r for r in results if self.permits(r)]
        if len(kept) != len(results):
            logger.debug(
                "Dropped unresolved incidents from hybrid results",
                extra={"dropped": len(results) - len(kept), "kept": len(kept)},
            )
        return kept
