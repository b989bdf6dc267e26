from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from conftest import InMemoryVectorIndex, StaticKeywordIndex, StubEmbedder
from incident_rag.api.routes import search as search_routes
from incident_rag.core.errors import EmbeddingDimensionMismatch
from incident_rag.retrieval.keyword_search import KeywordSearchAdapter
from incident_rag.retrieval.pipeline import RetrievalPipeline
from incident_rag.retrieval.vector_search import VectorSearchAdapter


@pytest.fixture
def failing_pipeline(client):
    def install(keyword_error=None, embed_error=None):
        pipeline = RetrievalPipeline(
            KeywordSearchAdapter(StaticKeywordIndex(error=keyword_error)),
            VectorSearchAdapter(StubEmbedder(error=embed_error), InMemoryVectorIndex([])),
        )
        client.app.dependency_overrides[search_routes.get_retrieval_pipeline_dep] = lambda: pipeline
        return pipeline

    return install


def test_health_and_metrics(client):
    assert client.get("/health").json() == {"status": "ok"}

    client.get("/health")
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "http_requests_total" in metrics.text


def test_hybrid_search_response_shape(client):
    resp = client.post("/api/search", json={"query": "vpn", "searchType": "hybrid", "topK": 3})

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["success"] is True
    results = payload["data"]["results"]
    metadata = payload["data"]["metadata"]

    assert len(results) == 3
    assert metadata["searchType"] == "hybrid"
    assert metadata["resultCount"] == 3
    assert metadata["processingTimeMs"] >= 0
    assert metadata["requestId"].startswith("search-")
    assert metadata["searchQuery"] == "VPN Virtual Private Network"
    for result in results:
        assert set(result) >= {"recordId", "summary", "description", "content", "score", "matchType", "incident"}
        assert result["matchType"] == "hybrid"
        assert result["incident"]["status"] in {"Resolved", "Closed"}
        assert result["incident"]["incidentId"] == result["recordId"]
    scores = [r["score"] for r in results]
    assert scores == sorted(scores, reverse=True)


def test_defaults_to_hybrid_with_five_results(client):
    resp = client.post("/api/search", json={"query": "vpn"})
    assert resp.status_code == 200
    metadata = resp.json()["data"]["metadata"]
    assert metadata["searchType"] == "hybrid"
    assert metadata["resultCount"] <= 5


def test_vector_search_with_filters(client):
    resp = client.post(
        "/api/search",
        json={"query": "network trouble", "searchType": "vector", "topK": 10, "filters": {"category": "Network Issue"}},
    )
    assert resp.status_code == 200
    results = resp.json()["data"]["results"]
    assert [r["recordId"] for r in results] == ["INC001", "INC006", "INC002"]
    assert all(r["incident"]["category"] == "Network Issue" for r in results)


def test_keyword_search_ignores_filters(client):
    resp = client.post(
        "/api/search",
        json={"query": "printer", "searchType": "keyword", "filters": {"incidentId": "INC001"}},
    )
    assert resp.status_code == 200
    results = resp.json()["data"]["results"]
    assert [r["recordId"] for r in results] == ["INC004"]
    assert results[0]["matchType"] == "keyword"


def test_content_is_truncated(client):
    resp = client.post("/api/search", json={"query": "firewall", "searchType": "keyword"})
    content = resp.json()["data"]["results"][0]["content"]
    assert 0 < len(content) <= search_routes.CONTENT_PREVIEW_CHARS


@pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "   "}])
def test_blank_query_is_bad_request(client, body):
    resp = client.post("/api/search", json=body)
    assert resp.status_code == 400


def test_unknown_search_type_is_bad_request(client):
    resp = client.post("/api/search", json={"query": "vpn", "searchType": "semantic"})
    assert resp.status_code == 400
    assert "semantic" in resp.json()["detail"]


@pytest.mark.parametrize("top_k", [0, -3, 5.5, "abc", "5", True])
def test_invalid_top_k_is_bad_request(client, top_k):
    resp = client.post("/api/search", json={"query": "vpn", "topK": top_k})
    assert resp.status_code == 400
    assert "topK" in resp.json()["detail"]


def test_backend_failure_is_bad_gateway(client, failing_pipeline):
    failing_pipeline(keyword_error=ConnectionError("index down"))
    resp = client.post("/api/search", json={"query": "vpn", "searchType": "keyword"})
    assert resp.status_code == 502
    assert "Keyword search failed" in resp.json()["detail"]


def test_dimension_mismatch_is_server_error(client, failing_pipeline):
    failing_pipeline(embed_error=EmbeddingDimensionMismatch(expected=3072, actual=1024))
    resp = client.post("/api/search", json={"query": "vpn", "searchType": "vector"})
    assert resp.status_code == 500
    assert "expected 3072, got 1024" in resp.json()["detail"]


def test_preprocess_endpoint(client):
    resp = client.post("/api/preprocess", json={"query": "DNS  lookup failing"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["normalized"] == "DNS lookup failing"
    assert data["searchOptimized"] == "DNS Domain Name System lookup failing"
    assert data["withAbbreviations"] == "DNS (Domain Name System) lookup failing"
    assert data["abbreviationsFound"] == [
        {"original": "DNS", "expanded": "Domain Name System", "category": "Networking"}
    ]
    assert "Abbreviations expanded (1):" in data["summary"]


def test_unicode_case_variant_query_is_searched(client):
    resp = client.post("/api/search", json={"query": "DNſ lookup failing", "topK": 3})

    assert resp.status_code == 200
    metadata = resp.json()["data"]["metadata"]
    assert metadata["searchQuery"] == "DNS Domain Name System lookup failing"
    assert [m["original"] for m in metadata["abbreviationsFound"]] == ["DNS"]


def test_preprocess_rejects_blank_query(client):
    assert client.post("/api/preprocess", json={"query": " "}).status_code == 400


def test_weights_round_trip(client):
    assert client.get("/api/search/weights").json() == {"vectorWeight": 0.6, "keywordWeight": 0.4}

    resp = client.put("/api/search/weights", json={"vectorWeight": 0.7, "keywordWeight": 0.5})
    assert resp.status_code == 200
    assert resp.json() == {"vectorWeight": 0.7, "keywordWeight": 0.5, "balanced": False}
    assert client.get("/api/search/weights").json() == {"vectorWeight": 0.7, "keywordWeight": 0.5}


def test_weights_out_of_range_are_rejected(client):
    resp = client.put("/api/search/weights", json={"vectorWeight": 1.5, "keywordWeight": 0.4})
    assert resp.status_code == 400
    assert client.app.state.test_pipeline.hybrid_weights.vector_weight == 0.6


def test_request_id_header_is_echoed(client):
    resp = client.get("/health", headers={"x-request-id": "abc-123"})
    assert resp.headers["x-request-id"] == "abc-123"


@pytest.mark.parametrize("header", ["", "has spaces", "x" * 129, "id;drop"])
def test_malformed_request_id_is_replaced(client, header):
    resp = client.get("/health", headers={"x-request-id": header})
    assert resp.headers["x-request-id"].startswith("req-")


def test_process_time_header(client):
    resp = client.post("/api/search", json={"query": "vpn", "searchType": "keyword"})
    assert float(resp.headers["x-process-time-ms"]) >= 0


def _search_count(search_type, outcome):
    value = REGISTRY.get_sample_value(
        "incident_rag_search_requests_total",
        {"search_type": search_type, "outcome": outcome},
    )
    return value or 0.0


def test_search_requests_are_counted_by_type_and_outcome(client, failing_pipeline):
    vector_ok = _search_count("vector", "ok")
    unknown_rejected = _search_count("unknown", "rejected")
    keyword_failed = _search_count("keyword", "failed")

    client.post("/api/search", json={"query": "vpn", "searchType": "VECTOR"})
    client.post("/api/search", json={"query": "vpn", "searchType": "semantic"})
    failing_pipeline(keyword_error=ConnectionError("index down"))
    client.post("/api/search", json={"query": "vpn", "searchType": "keyword"})

    assert _search_count("vector", "ok") == vector_ok + 1
    assert _search_count("unknown", "rejected") == unknown_rejected + 1
    assert _search_count("keyword", "failed") == keyword_failed + 1
