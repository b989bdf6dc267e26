"""
Vector index boundary and its ChromaDB implementation.

Incident embeddings live in a Chroma collection created with the cosine
space; filters are applied as exact-match ``where`` predicates before
ranking.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

import chromadb
from chromadb.config import Settings as ChromaSettings

from ..core.config import Settings


logger = logging.getLogger("incident_rag.retrieval.vector_index")


@dataclass
class VectorQuery:
    """Request sent to the vector index."""
    query_vector: List[float]
    filters: Dict[str, str] = field(default_factory=dict)
    limit: int = 10
    num_candidates: int = 100


@dataclass
class VectorHit:
    """One nearest neighbour returned by the vector index."""
    record_id: str
    content: str
    similarity_score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class VectorIndex(Protocol):
    """Protocol for vector similarity backends."""

    def query(self, request: VectorQuery) -> List[VectorHit]:
        """Return at most ``request.limit`` hits ordered by similarity (descending)."""
        ...


def build_where_clause(filters: Mapping[str, str]) -> Optional[Dict[str, Any]]:
    """Translate exact-match filters into a Chroma ``where`` clause."""
    conditions = [{key: {"$eq": value}} for key, value in filters.items() if value]
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return {"$and": conditions}


def build_chroma_client(settings: Settings) -> "chromadb.api.ClientAPI":
    """Create a Chroma client for a remote server, a persistent directory, or in-memory."""
    if settings.chroma_server_host:
        return chromadb.HttpClient(
            host=settings.chroma_server_host,
            port=settings.chroma_server_port,
            ssl=settings.chroma_server_ssl,
            headers={"Authorization": f"Bearer {settings.chroma_server_api_key}"} if settings.chroma_server_api_key else None,
        )
    if settings.chroma_persist_directory:
        persist_dir = Path(settings.chroma_persist_directory)
        persist_dir.mkdir(parents=True, exist_ok=True)
        return chromadb.PersistentClient(
            path=str(persist_dir),
            settings=ChromaSettings(anonymized_telemetry=False),
        )
    return chromadb.Client(settings=ChromaSettings(anonymized_telemetry=False))


class ChromaVectorIndex:
    """
    Vector index backed by a ChromaDB collection.

    Chroma sizes its HNSW candidate list internally, so ``num_candidates`` is
    only logged.
    """

    def __init__(self, collection: Any) -> None:
        self._collection = collection

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChromaVectorIndex":
        client = build_chroma_client(settings)
        collection = client.get_or_create_collection(
            settings.chroma_collection,
            metadata={"hnsw:space": "cosine"},
        )
        return cls(collection)

    def query(self, request: VectorQuery) -> List[VectorHit]:
        if request.limit <= 0:
            return []

        where = build_where_clause(request.filters)
        logger.debug(
            "Querying vector collection",
            extra={
                "limit": request.limit,
                "num_candidates": request.num_candidates,
                "filters": request.filters,
            },
        )
        kwargs: Dict[str, Any] = {
            "query_embeddings": [request.query_vector],
            "n_results": request.limit,
            "include": ["documents", "metadatas", "distances"],
        }
        if where is not None:
            kwargs["where"] = where
        results = self._collection.query(**kwargs)

        hits: List[VectorHit] = []
        if not results.get("ids") or not results["ids"][0]:
            return hits

        documents = results.get("documents") or [[]]
        metadatas = results.get("metadatas") or [[]]
        for idx, record_id in enumerate(results["ids"][0]):
            metadata = dict(metadatas[0][idx] or {}) if idx < len(metadatas[0]) else {}
            content = documents[0][idx] if idx < len(documents[0]) else ""
            # Cosine distance in [0, 2]; similarity is 1 - distance.
            similarity = 1.0 - float(results["distances"][0][idx])
            hits.append(VectorHit(
                record_id=str(metadata.get("incidentId") or record_id),
                content=content or "",
                similarity_score=similarity,
                metadata=metadata,
            ))
        return hits


__all__ = [
    "VectorQuery",
    "VectorHit",
    "VectorIndex",
    "ChromaVectorIndex",
    "build_where_clause",
    "build_chroma_client",
]
