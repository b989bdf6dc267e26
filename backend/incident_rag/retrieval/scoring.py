"""
Score normalization.

Keyword relevance scores are unbounded while cosine similarities live in
[-1, 1], so each engine's list is rescaled into [0, 1] on its own before the
two lists are fused.
"""

from typing import List, Sequence

from .models import CandidateResult, NormalizedResult


def normalize_scores(results: Sequence[CandidateResult]) -> List[NormalizedResult]:
    """
    Min-max normalize one engine's result list.

    The highest raw score maps to 1.0 and the lowest to 0.0. When every raw
    score is equal (including a single result) all results get 1.0. An empty
    list stays empty. Order is preserved.

    Example:
        >>> from incident_rag.retrieval.models import CandidateResult, SearchMode
        >>> raw = [CandidateResult(str(i), "", "", "", s, SearchMode.KEYWORD) for i, s in enumerate([10, 5, 0])]
        >>> [r.norm_score for r in normalize_scores(raw)]
        [1.0, 0.5, 0.0]
    """
    if not results:
        return []

    scores = [r.raw_score for r in results]
    low = min(scores)
    high = max(scores)
    spread = high - low

    if spread == 0:
        return [NormalizedResult(candidate=r, norm_score=1.0) for r in results]

    return [
        NormalizedResult(candidate=r, norm_score=(r.raw_score - low) / spread)
        for r in results
    ]
