import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from fastapi.testclient import TestClient

from incident_rag.core.config import get_settings
from incident_rag.retrieval.keyword_index import BM25KeywordIndex, KeywordHit, KeywordQuery
from incident_rag.retrieval.keyword_search import KeywordSearchAdapter
from incident_rag.retrieval.pipeline import RetrievalPipeline
from incident_rag.retrieval.vector_index import VectorHit, VectorQuery
from incident_rag.retrieval.vector_search import VectorSearchAdapter


INCIDENTS: List[Dict[str, Any]] = [
    {
        "incidentId": "INC001",
        "summary": "VPN tunnel drops after login",
        "description": "Remote users lose the VPN tunnel a few minutes after authenticating.",
        "status": "Resolved",
        "priority": "P2",
        "category": "Network Issue",
        "team": "Network Operations",
        "rootCause": "Idle timeout on the VPN concentrator was set to 120 seconds.",
        "resolutionSteps": "Raised the idle timeout and pushed the new profile.",
    },
    {
        "incidentId": "INC002",
        "summary": "DNS resolution failing for internal domains",
        "description": "Internal hostnames do not resolve from the office network.",
        "status": "Closed",
        "priority": "P1",
        "category": "Network Issue",
        "team": "Network Operations",
        "rootCause": "Forwarder pointed at a decommissioned resolver.",
        "resolutionSteps": "Updated the conditional forwarder and flushed caches.",
    },
    {
        "incidentId": "INC003",
        "summary": "VPN client crashes on startup",
        "description": "The VPN client exits immediately after the latest update.",
        "status": "Open",
        "priority": "P3",
        "category": "Software",
        "team": "Desktop Support",
    },
    {
        "incidentId": "INC004",
        "summary": "Printer jam on floor 3",
        "description": "Shared printer reports a paper jam that cannot be cleared.",
        "status": "Resolved",
        "priority": "P4",
        "category": "Hardware",
        "team": "Desktop Support",
        "resolutionSteps": "Replaced the fuser roller.",
    },
    {
        "incidentId": "INC005",
        "summary": "Email delivery delayed",
        "description": "Outbound email sits in the queue for up to an hour.",
        "status": "In Progress",
        "priority": "P2",
        "category": "Email",
        "team": "Messaging",
    },
    {
        "incidentId": "INC006",
        "summary": "Firewall blocking VPN traffic",
        "description": "New firewall rule set drops VPN traffic from branch offices.",
        "status": "Resolved",
        "priority": "P2",
        "category": "Network Issue",
        "team": "Security",
        "rootCause": "Rule ordering placed a deny above the VPN allow rule.",
        "resolutionSteps": "Reordered the firewall rules.",
    },
]


class StubEmbedder:
    """Returns a fixed vector and records every embedded text."""

    def __init__(self, dimensions: int = 4, vector: Optional[List[float]] = None, error: Optional[Exception] = None):
        self.dimensions = dimensions
        self.vector = vector if vector is not None else [0.1] * dimensions
        self.error = error
        self.calls: List[str] = []

    def embed_query(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)


class InMemoryVectorIndex:
    """
    Vector index over fixed similarities.

    Records are returned in descending similarity after exact-match filtering
    on their metadata, the way a real index applies pre-filters.
    """

    def __init__(self, scored_records: Sequence[tuple], error: Optional[Exception] = None, delay: float = 0.0):
        self.scored_records = list(scored_records)
        self.error = error
        self.delay = delay
        self.requests: List[VectorQuery] = []

    def query(self, request: VectorQuery) -> List[VectorHit]:
        self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        matches = [
            (record, similarity)
            for record, similarity in self.scored_records
            if all(record.get(key) == value for key, value in request.filters.items())
        ]
        matches.sort(key=lambda item: item[1], reverse=True)
        return [
            VectorHit(
                record_id=record["incidentId"],
                content=record.get("description", ""),
                similarity_score=similarity,
                metadata=dict(record),
            )
            for record, similarity in matches[: request.limit]
        ]


class StaticKeywordIndex:
    """Keyword index returning canned hits."""

    def __init__(self, hits: Optional[List[KeywordHit]] = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.hits = hits or []
        self.error = error
        self.delay = delay
        self.requests: List[KeywordQuery] = []

    def search(self, query: KeywordQuery) -> List[KeywordHit]:
        self.requests.append(query)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.hits[: query.limit]


# Cosine similarities for a "VPN drops" style query.
VECTOR_SIMILARITIES = {
    "INC001": 0.91,
    "INC003": 0.88,
    "INC006": 0.84,
    "INC002": 0.52,
    "INC005": 0.31,
    "INC004": 0.12,
}


@pytest.fixture
def incidents() -> List[Dict[str, Any]]:
    return [dict(record) for record in INCIDENTS]


@pytest.fixture
def keyword_index(incidents) -> BM25KeywordIndex:
    return BM25KeywordIndex(incidents)


@pytest.fixture
def vector_index(incidents) -> InMemoryVectorIndex:
    return InMemoryVectorIndex([(r, VECTOR_SIMILARITIES[r["incidentId"]]) for r in incidents])


@pytest.fixture
def embedder() -> StubEmbedder:
    return StubEmbedder()


@pytest.fixture
def pipeline(keyword_index, vector_index, embedder) -> RetrievalPipeline:
    return RetrievalPipeline(
        KeywordSearchAdapter(keyword_index),
        VectorSearchAdapter(embedder, vector_index),
        timeout_seconds=5.0,
    )


@pytest.fixture(scope="function")
def client(pipeline, tmp_path_factory: pytest.TempPathFactory) -> Generator[TestClient, None, None]:
    os.environ["ENVIRONMENT"] = "development"
    os.environ["LOG_DIR"] = str(tmp_path_factory.mktemp("logs"))

    get_settings.cache_clear()
    from incident_rag.api.routes import search as search_routes
    from incident_rag.main import create_app

    app = create_app()
    app.state.test_pipeline = pipeline
    app.dependency_overrides[search_routes.get_retrieval_pipeline_dep] = lambda: pipeline

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

    # setup_logging detaches the package logger from root; caplog needs it back.
    package_logger = logging.getLogger("incident_rag")
    package_logger.handlers.clear()
    package_logger.propagate = True
