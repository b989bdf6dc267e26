from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.errors import (
    EmbeddingDimensionMismatch,
    InvalidQuery,
    SearchBackendFailure,
    UnsupportedSearchMode,
)
from ...retrieval.models import RankedResult, SearchFilters, SearchMode
from ...retrieval.pipeline import RetrievalPipeline
from ...retrieval.preprocessing import preprocess_query, preprocessing_summary
from ...services.search_service import get_retrieval_pipeline


router = APIRouter(prefix="/api", tags=["search"])
logger = logging.getLogger("incident_rag.api.search")

CONTENT_PREVIEW_CHARS = 500


class FiltersPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    incident_id: Optional[str] = Field(default=None, alias="incidentId")
    category: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    search_type: str = Field(default="hybrid", alias="searchType")
    # Checked by the pipeline, so a non-integer topK is a 400 like other query errors.
    top_k: Optional[Any] = Field(default=None, alias="topK")
    filters: Optional[FiltersPayload] = None


class PreprocessRequest(BaseModel):
    query: Optional[str] = None


class WeightsPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vector_weight: float = Field(alias="vectorWeight")
    keyword_weight: float = Field(alias="keywordWeight")


def get_retrieval_pipeline_dep() -> RetrievalPipeline:
    return get_retrieval_pipeline()


def _serialize_result(result: RankedResult) -> Dict[str, Any]:
    return {
        "recordId": result.record_id,
        "summary": result.summary,
        "description": result.description,
        "content": result.content[:CONTENT_PREVIEW_CHARS],
        "score": result.score,
        "matchType": result.match_type.value,
        "incident": {
            "incidentId": result.record_id,
            "summary": result.summary,
            "description": result.description,
            **result.fields.to_dict(),
        },
    }


@router.post("/search")
async def search_incidents(
    payload: SearchRequest,
    request: Request,
    pipeline: RetrievalPipeline = Depends(get_retrieval_pipeline_dep),
) -> dict:
    filters = None
    if payload.filters is not None:
        filters = SearchFilters(
            incident_id=payload.filters.incident_id,
            category=payload.filters.category,
            status=payload.filters.status,
            priority=payload.filters.priority,
        )
    try:
        outcome = await pipeline.search(
            payload.query or "",
            payload.search_type,
            top_k=payload.top_k,
            filters=filters,
        )
    except (InvalidQuery, UnsupportedSearchMode) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except EmbeddingDimensionMismatch as exc:
        request.state.search_type = SearchMode.parse(payload.search_type).value
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except SearchBackendFailure as exc:
        request.state.search_type = SearchMode.parse(payload.search_type).value
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    trace = outcome.trace
    request.state.search_type = trace.search_type.value
    return {
        "success": True,
        "data": {
            "results": [_serialize_result(r) for r in outcome.results],
            "metadata": {
                "searchType": trace.search_type.value,
                "resultCount": outcome.result_count,
                "processingTimeMs": trace.processing_time_ms,
                "requestId": trace.request_id,
                "searchQuery": trace.search_query,
                "abbreviationsFound": [
                    {"original": m.original, "expanded": m.expanded, "category": m.category}
                    for m in trace.abbreviations_found
                ],
            },
        },
    }


@router.post("/preprocess")
async def preprocess(payload: PreprocessRequest) -> dict:
    if not payload.query or not payload.query.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query is required and must be a non-empty string",
        )
    result = preprocess_query(payload.query)
    return {
        "success": True,
        "data": {
            "original": result.original,
            "normalized": result.normalized,
            "withAbbreviations": result.with_abbreviations,
            "searchOptimized": result.search_optimized,
            "abbreviationsFound": [
                {"original": m.original, "expanded": m.expanded, "category": m.category}
                for m in result.abbreviations_found
            ],
            "summary": preprocessing_summary(result),
        },
    }


@router.get("/search/weights")
async def get_weights(pipeline: RetrievalPipeline = Depends(get_retrieval_pipeline_dep)) -> dict:
    weights = pipeline.hybrid_weights
    return {"vectorWeight": weights.vector_weight, "keywordWeight": weights.keyword_weight}


@router.put("/search/weights")
async def update_weights(
    payload: WeightsPayload,
    pipeline: RetrievalPipeline = Depends(get_retrieval_pipeline_dep),
) -> dict:
    try:
        weights = pipeline.update_hybrid_weights(payload.vector_weight, payload.keyword_weight)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {
        "vectorWeight": weights.vector_weight,
        "keywordWeight": weights.keyword_weight,
        "balanced": abs(weights.total - 1.0) <= 0.01,
    }


__all__ = ["router", "get_retrieval_pipeline_dep"]
