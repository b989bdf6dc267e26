"""
Error taxonomy for incident retrieval.

Adapters raise, the normalizer and fuser never raise, and the retrieval
pipeline (plus the HTTP layer above it) is the only place these errors are
turned into a public response.
"""

from typing import Optional


class IncidentSearchError(Exception):
    """Base class for all retrieval errors."""


class InvalidQuery(IncidentSearchError):
    """Raised when the query is empty/whitespace or the request is malformed."""


class UnsupportedSearchMode(IncidentSearchError):
    """Raised when the requested search type is not keyword, vector or hybrid."""

    def __init__(self, mode: str) -> None:
        super().__init__(f"Unsupported search type: {mode!r}")
        self.mode = mode


class SearchBackendFailure(IncidentSearchError):
    """A search engine call failed. Safe to retry the whole request."""

    engine = "unknown"

    def __init__(self, message: str, query: Optional[str] = None) -> None:
        super().__init__(f"{self.engine.capitalize()} search failed: {message}")
        self.query = query


class KeywordSearchFailure(SearchBackendFailure):
    engine = "keyword"


class VectorSearchFailure(SearchBackendFailure):
    engine = "vector"


class EmbeddingDimensionMismatch(VectorSearchFailure):
    """The embedding service returned a vector of unexpected length."""

    def __init__(self, expected: int, actual: int, query: Optional[str] = None) -> None:
        super().__init__(
            f"embedding dimension mismatch (expected {expected}, got {actual})",
            query=query,
        )
        self.expected = expected
        self.actual = actual


__all__ = [
    "IncidentSearchError",
    "InvalidQuery",
    "UnsupportedSearchMode",
    "SearchBackendFailure",
    "KeywordSearchFailure",
    "VectorSearchFailure",
    "EmbeddingDimensionMismatch",
]
