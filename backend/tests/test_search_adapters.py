"""
Tests for the keyword and vector search adapters.
"""

import logging

import pytest

from conftest import InMemoryVectorIndex, StaticKeywordIndex, StubEmbedder
from incident_rag.core.errors import (
    EmbeddingDimensionMismatch,
    KeywordSearchFailure,
    VectorSearchFailure,
)
from incident_rag.retrieval.keyword_index import EXACT_FIELDS, FUZZY_FIELDS, KeywordHit
from incident_rag.retrieval.keyword_search import KeywordSearchAdapter
from incident_rag.retrieval.models import SearchFilters, SearchMode
from incident_rag.retrieval.vector_search import VectorSearchAdapter


# =============================================================================
# Keyword adapter
# =============================================================================

class TestKeywordSearchAdapter:

    def test_sends_compound_query(self):
        index = StaticKeywordIndex()
        KeywordSearchAdapter(index, fuzzy_max_edits=1).search("vpn drops", top_k=7)

        request = index.requests[0]
        assert request.query == "vpn drops"
        assert tuple(request.exact_fields) == EXACT_FIELDS
        assert tuple(request.fuzzy_fields) == FUZZY_FIELDS
        assert request.fuzzy_max_edits == 1
        assert request.limit == 7

    def test_maps_hits_to_candidates(self):
        index = StaticKeywordIndex([
            KeywordHit("INC1", 4.2, {
                "summary": "VPN drops",
                "description": "Tunnel drops",
                "searchableText": "Summary: VPN drops",
                "status": "Resolved",
                "rootCause": "Idle timeout",
            }),
            KeywordHit("INC2", 1.3, {"summary": "Printer", "description": "Paper jam"}),
        ])

        results = KeywordSearchAdapter(index).search("vpn", top_k=5)

        assert [r.record_id for r in results] == ["INC1", "INC2"]
        first, second = results
        assert first.source_engine is SearchMode.KEYWORD
        assert first.raw_score == 4.2
        assert first.content == "Summary: VPN drops"
        assert first.fields.status == "Resolved"
        assert first.fields.root_cause == "Idle timeout"
        # No searchable text: falls back to the description.
        assert second.content == "Paper jam"
        assert second.fields.status is None

    def test_never_returns_more_than_top_k(self):
        index = StaticKeywordIndex([KeywordHit(f"INC{i}", 10 - i, {}) for i in range(10)])
        assert len(KeywordSearchAdapter(index).search("q", top_k=3)) == 3

    def test_filters_are_ignored_with_warning(self, caplog):
        index = StaticKeywordIndex([KeywordHit("INC1", 1.0, {"category": "Hardware"})])

        with caplog.at_level(logging.WARNING, logger="incident_rag.retrieval.keyword_search"):
            results = KeywordSearchAdapter(index).search(
                "printer", top_k=5, filters=SearchFilters(category="Network Issue")
            )

        assert [r.record_id for r in results] == ["INC1"]
        assert "does not support filters" in caplog.text

    def test_index_error_is_wrapped(self):
        index = StaticKeywordIndex(error=ConnectionError("index unreachable"))

        with pytest.raises(KeywordSearchFailure) as exc_info:
            KeywordSearchAdapter(index).search("vpn", top_k=5)

        assert exc_info.value.engine == "keyword"
        assert exc_info.value.query == "vpn"
        assert "index unreachable" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_against_bm25_index(self, keyword_index):
        results = KeywordSearchAdapter(keyword_index).search("firewal", top_k=5)
        assert [r.record_id for r in results] == ["INC006"]
        assert results[0].summary == "Firewall blocking VPN traffic"
        assert results[0].content.startswith("Incident ID: INC006")


# =============================================================================
# Vector adapter
# =============================================================================

class TestVectorSearchAdapter:

    def test_embeds_query_and_requests_neighbours(self, embedder, vector_index):
        results = VectorSearchAdapter(embedder, vector_index).search("vpn drops", top_k=3)

        assert embedder.calls == ["vpn drops"]
        request = vector_index.requests[0]
        assert request.query_vector == embedder.vector
        assert request.limit == 3
        assert request.num_candidates == 100
        assert request.filters == {}
        assert [r.record_id for r in results] == ["INC001", "INC003", "INC006"]
        assert all(r.source_engine is SearchMode.VECTOR for r in results)

    def test_candidate_pool_grows_with_top_k(self, embedder, vector_index):
        VectorSearchAdapter(embedder, vector_index).search("vpn", top_k=20)
        assert vector_index.requests[0].num_candidates == 200

    def test_metadata_becomes_typed_fields(self, embedder, vector_index):
        result = VectorSearchAdapter(embedder, vector_index).search("dns", top_k=6)[3]
        assert result.record_id == "INC002"
        assert result.summary == "DNS resolution failing for internal domains"
        assert result.fields.status == "Closed"
        assert result.fields.priority == "P1"
        assert result.fields.resolution_steps.startswith("Updated the conditional forwarder")
        assert result.raw_score == 0.52

    def test_filters_narrow_candidates(self, embedder, vector_index):
        filters = SearchFilters(category="Network Issue")
        results = VectorSearchAdapter(embedder, vector_index).search("vpn", top_k=10, filters=filters)

        assert vector_index.requests[0].filters == {"category": "Network Issue"}
        assert [r.record_id for r in results] == ["INC001", "INC006", "INC002"]
        assert all(r.fields.category == "Network Issue" for r in results)

    def test_embedding_error_is_wrapped(self, vector_index):
        embedder = StubEmbedder(error=RuntimeError("rate limited"))

        with pytest.raises(VectorSearchFailure) as exc_info:
            VectorSearchAdapter(embedder, vector_index).search("vpn", top_k=5)

        assert "rate limited" in str(exc_info.value)
        assert vector_index.requests == []

    def test_index_error_is_wrapped(self, embedder):
        index = InMemoryVectorIndex([], error=TimeoutError("cluster down"))

        with pytest.raises(VectorSearchFailure) as exc_info:
            VectorSearchAdapter(embedder, index).search("vpn", top_k=5)

        assert exc_info.value.engine == "vector"
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    def test_dimension_mismatch_propagates_unchanged(self, vector_index):
        mismatch = EmbeddingDimensionMismatch(expected=4, actual=3, query="vpn")
        embedder = StubEmbedder(error=mismatch)

        with pytest.raises(EmbeddingDimensionMismatch) as exc_info:
            VectorSearchAdapter(embedder, vector_index).search("vpn", top_k=5)

        assert exc_info.value is mismatch
        assert exc_info.value.expected == 4
        assert exc_info.value.actual == 3
