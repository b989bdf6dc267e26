"""
Retrieval orchestrator.

Sequences one search request: validate, preprocess, call the engine(s),
and for hybrid mode normalize, fuse, apply the resolution status policy, sort
and truncate. The adapters are synchronous; each call runs in a worker
thread bounded by a timeout, and the two hybrid calls run concurrently.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Type

from ..core.errors import InvalidQuery, KeywordSearchFailure, SearchBackendFailure, VectorSearchFailure
from ..logging_utils import bind_search_context
from .hybrid import HybridFuser, ResolutionStatusPolicy, rank_fused
from .keyword_search import KeywordSearchAdapter
from .models import (
    CandidateResult,
    HybridWeights,
    RankedResult,
    SearchFilters,
    SearchMode,
    SearchOutcome,
    SearchTrace,
)
from .preprocessing import AbbreviationExpander, preprocess_query
from .scoring import normalize_scores
from .vector_search import VectorSearchAdapter


logger = logging.getLogger("incident_rag.retrieval.pipeline")

SearchCall = Callable[[str, int, Optional[SearchFilters]], List[CandidateResult]]


def new_request_id() -> str:
    return f"search-{uuid.uuid4().hex}"


class RetrievalPipeline:
    """
    Keyword, vector and hybrid search over the incident corpus.

    Example:
        >>> pipeline = RetrievalPipeline(keyword_adapter, vector_adapter)
        >>> outcome = asyncio.run(pipeline.search("VPN drops after login", "hybrid", top_k=5))
        >>> for result in outcome.results:
        ...     print(f"{result.record_id}: {result.score:.3f}")
    """

    DEFAULT_POOL_MULTIPLIER = 3

    def __init__(
        self,
        keyword_search: KeywordSearchAdapter,
        vector_search: VectorSearchAdapter,
        fuser: Optional[HybridFuser] = None,
        status_policy: Optional[ResolutionStatusPolicy] = None,
        default_top_k: int = 5,
        max_top_k: int = 50,
        pool_multiplier: int = DEFAULT_POOL_MULTIPLIER,
        timeout_seconds: Optional[float] = 10.0,
        expander: Optional[AbbreviationExpander] = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            keyword_search: Keyword search adapter
            vector_search: Vector search adapter
            fuser: Hybrid fuser holding the current weights (default 0.6/0.4)
            status_policy: Post-fusion status filter for hybrid mode
            default_top_k: Result count when the caller passes none
            max_top_k: Upper bound applied to every requested result count
            pool_multiplier: Candidates fetched per engine in hybrid mode,
                as a multiple of ``top_k``
            timeout_seconds: Per adapter call; None disables the bound
            expander: Abbreviation expander used by preprocessing
        """
        self._keyword = keyword_search
        self._vector = vector_search
        self._fuser = fuser or HybridFuser()
        self._status_policy = status_policy or ResolutionStatusPolicy()
        self._default_top_k = default_top_k
        self._max_top_k = max_top_k
        self._pool_multiplier = pool_multiplier
        self._timeout = timeout_seconds
        self._expander = expander

    @property
    def hybrid_weights(self) -> HybridWeights:
        return self._fuser.weights

    def update_hybrid_weights(self, vector_weight: float, keyword_weight: float) -> HybridWeights:
        """Atomically replace the hybrid weights used by subsequent requests."""
        return self._fuser.update_weights(vector_weight, keyword_weight)

    async def search(
        self,
        query: str,
        search_type: "str | SearchMode" = SearchMode.HYBRID,
        top_k: Optional[int] = None,
        filters: Optional[SearchFilters] = None,
        request_id: Optional[str] = None,
    ) -> SearchOutcome:
        """
        Run one search request.

        Args:
            query: Raw user query; must be non-blank
            search_type: "keyword", "vector" or "hybrid"
            top_k: Maximum results, clamped to ``max_top_k``
            filters: Exact-match filters, forwarded to the vector engine only
            request_id: Trace id; generated when absent

        Returns:
            SearchOutcome with results sorted by score (descending)

        Raises:
            InvalidQuery: Blank query or a result count below 1
            UnsupportedSearchMode: Unknown search type
            KeywordSearchFailure: Keyword engine failed or timed out
            VectorSearchFailure: Embedding or vector engine failed or timed out
        """
        if query is None or not str(query).strip():
            raise InvalidQuery("Query is required and must be a non-empty string")
        mode = SearchMode.parse(search_type)
        limit = self._resolve_top_k(top_k)

        trace = SearchTrace(
            request_id=request_id or new_request_id(),
            search_type=mode,
            started_at=datetime.now(timezone.utc),
        )
        bind_search_context(search_type=mode.value)
        start = time.perf_counter()

        if self._expander is not None:
            prepared = preprocess_query(query, expander=self._expander)
        else:
            prepared = preprocess_query(query)
        trace.search_query = prepared.search_optimized
        trace.abbreviations_found = prepared.abbreviations_found
        if prepared.abbreviations_found:
            logger.debug(
                "Expanded abbreviations in query",
                extra={"abbreviations": [m.original for m in prepared.abbreviations_found]},
            )

        if mode is SearchMode.KEYWORD:
            candidates = await self._call(self._keyword.search, KeywordSearchFailure, prepared.search_optimized, limit, filters)
            results = [RankedResult.from_candidate(c) for c in candidates[:limit]]
        elif mode is SearchMode.VECTOR:
            candidates = await self._call(self._vector.search, VectorSearchFailure, prepared.search_optimized, limit, filters)
            results = [RankedResult.from_candidate(c) for c in candidates[:limit]]
        else:
            results = await self._hybrid(prepared.search_optimized, limit, filters)

        trace = trace.finished(round((time.perf_counter() - start) * 1000, 2))
        logger.info(
            "Search completed",
            extra={
                "search_request_id": trace.request_id,
                "top_k": limit,
                "results": len(results),
                "duration_ms": trace.processing_time_ms,
            },
        )
        return SearchOutcome(results=results, trace=trace)

    async def _hybrid(
        self,
        query: str,
        top_k: int,
        filters: Optional[SearchFilters],
    ) -> List[RankedResult]:
        # One weights snapshot per request.
        weights = self._fuser.weights
        pool_size = top_k * self._pool_multiplier

        keyword_candidates, vector_candidates = await self._gather_engines(query, pool_size, filters)

        fused = self._fuser.fuse(
            normalize_scores(keyword_candidates),
            normalize_scores(vector_candidates),
            weights,
        )
        resolved = self._status_policy.apply(fused)
        ranked = rank_fused(resolved, top_k)

        logger.debug(
            "Hybrid fusion completed",
            extra={
                "keyword_candidates": len(keyword_candidates),
                "vector_candidates": len(vector_candidates),
                "fused": len(fused),
                "resolved": len(resolved),
                "vector_weight": weights.vector_weight,
                "keyword_weight": weights.keyword_weight,
            },
        )
        return [RankedResult.from_fused(r) for r in ranked]

    async def _gather_engines(
        self,
        query: str,
        pool_size: int,
        filters: Optional[SearchFilters],
    ) -> Tuple[List[CandidateResult], List[CandidateResult]]:
        """Run both engines concurrently; the first failure cancels the other and aborts."""
        keyword_task = asyncio.ensure_future(
            self._call(self._keyword.search, KeywordSearchFailure, query, pool_size, None)
        )
        vector_task = asyncio.ensure_future(
            self._call(self._vector.search, VectorSearchFailure, query, pool_size, filters)
        )
        tasks = (keyword_task, vector_task)

        try:
            _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

        return keyword_task.result(), vector_task.result()

    async def _call(
        self,
        search: SearchCall,
        failure: Type[SearchBackendFailure],
        query: str,
        top_k: int,
        filters: Optional[SearchFilters],
    ) -> List[CandidateResult]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(search, query, top_k, filters),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "%s search timed out",
                failure.engine.capitalize(),
                extra={"timeout_seconds": self._timeout, "error_code": f"{failure.engine}_search_timeout"},
            )
            raise failure(f"timed out after {self._timeout}s", query=query) from exc

    def _resolve_top_k(self, top_k: Optional[int]) -> int:
        if top_k is None:
            top_k = self._default_top_k
        if isinstance(top_k, bool) or not isinstance(top_k, int):
            raise InvalidQuery("topK must be an integer")
        if top_k < 1:
            raise InvalidQuery("topK must be at least 1")
        return min(top_k, self._max_top_k)
