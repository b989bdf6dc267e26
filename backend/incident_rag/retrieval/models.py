"""
Core data types for incident retrieval.

All result types are request-scoped: adapters create them fresh for each
search and nothing here is persisted. ``HybridWeights`` is the only value that
outlives a request, and it is immutable so it can be swapped atomically.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..core.errors import UnsupportedSearchMode


logger = logging.getLogger("incident_rag.retrieval.models")


class SearchMode(str, Enum):
    """Supported search strategies."""
    KEYWORD = "keyword"
    VECTOR = "vector"
    HYBRID = "hybrid"

    @classmethod
    def parse(cls, value: "str | SearchMode") -> "SearchMode":
        """Parse a search type string, raising ``UnsupportedSearchMode`` on unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise UnsupportedSearchMode(str(value)) from exc


@dataclass(frozen=True)
class AbbreviationMatch:
    """An abbreviation found in a query together with its expansion."""
    original: str
    expanded: str
    category: str


@dataclass(frozen=True)
class SearchFilters:
    """Exact-match filters, applied to the vector path only."""
    incident_id: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None

    _WIRE_NAMES = {
        "incident_id": "incidentId",
        "category": "category",
        "status": "status",
        "priority": "priority",
    }

    def as_dict(self) -> Dict[str, str]:
        """Return the non-empty filters keyed by their index field names."""
        values: Dict[str, str] = {}
        for attr, wire_name in self._WIRE_NAMES.items():
            value = getattr(self, attr)
            if value is not None and str(value).strip():
                values[wire_name] = str(value).strip()
        return values

    def is_empty(self) -> bool:
        return not self.as_dict()


@dataclass(frozen=True)
class IncidentFields:
    """
    Sparse structured fields of an incident record.

    Index metadata is an open key/value bag; only the fields the retrieval
    core and its consumers rely on are lifted into typed attributes.
    """
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    root_cause: Optional[str] = None
    resolution_steps: Optional[str] = None
    created_date: Optional[str] = None
    resolved_date: Optional[str] = None

    _KEYS = {
        "status": ("status",),
        "priority": ("priority",),
        "category": ("category",),
        "root_cause": ("rootCause", "root_cause"),
        "resolution_steps": ("resolutionSteps", "resolution_steps"),
        "created_date": ("createdDate", "created_date"),
        "resolved_date": ("resolvedDate", "resolved_date"),
    }

    @classmethod
    def from_metadata(cls, metadata: Optional[Mapping[str, Any]]) -> "IncidentFields":
        """Build from a metadata mapping using camelCase or snake_case keys."""
        if not metadata:
            return cls()
        values: Dict[str, Optional[str]] = {}
        for attr, keys in cls._KEYS.items():
            for key in keys:
                value = metadata.get(key)
                if value not in (None, ""):
                    values[attr] = str(value)
                    break
        return cls(**values)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "status": self.status,
            "priority": self.priority,
            "category": self.category,
            "rootCause": self.root_cause,
            "resolutionSteps": self.resolution_steps,
            "createdDate": self.created_date,
            "resolvedDate": self.resolved_date,
        }


@dataclass
class CandidateResult:
    """One record as returned by a single search engine."""
    record_id: str
    summary: str
    description: str
    content: str
    raw_score: float
    source_engine: SearchMode
    fields: IncidentFields = field(default_factory=IncidentFields)


@dataclass
class NormalizedResult:
    """A candidate whose engine-specific score was rescaled into [0, 1]."""
    candidate: CandidateResult
    norm_score: float

    @property
    def record_id(self) -> str:
        return self.candidate.record_id


@dataclass
class FusedResult:
    """A record after weighted fusion of the keyword and vector lists."""
    record_id: str
    summary: str
    description: str
    content: str
    fused_score: float
    fields: IncidentFields = field(default_factory=IncidentFields)
    match_type: SearchMode = SearchMode.HYBRID


@dataclass(frozen=True)
class HybridWeights:
    """
    Fusion weights for hybrid search.

    The weights need not sum to 1.0; the ranking stays well-defined, the
    fused scores are just not on a 0-1 scale.
    """
    vector_weight: float = 0.6
    keyword_weight: float = 0.4

    def __post_init__(self) -> None:
        for name in ("vector_weight", "keyword_weight"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0")

    @property
    def total(self) -> float:
        return self.vector_weight + self.keyword_weight

    def warn_if_unbalanced(self) -> bool:
        """Log a warning when the weights don't sum to 1.0. Returns True if warned."""
        if abs(self.total - 1.0) > 0.01:
            logger.warning(
                "Hybrid weights don't sum to 1.0",
                extra={
                    "vector_weight": self.vector_weight,
                    "keyword_weight": self.keyword_weight,
                    "total": round(self.total, 4),
                },
            )
            return True
        return False


@dataclass
class RankedResult:
    """Public shape of a single search result."""
    record_id: str
    summary: str
    description: str
    content: str
    score: float
    match_type: SearchMode
    fields: IncidentFields = field(default_factory=IncidentFields)

    @classmethod
    def from_candidate(cls, candidate: CandidateResult) -> "RankedResult":
        return cls(
            record_id=candidate.record_id,
            summary=candidate.summary,
            description=candidate.description,
            content=candidate.content,
            score=candidate.raw_score,
            match_type=candidate.source_engine,
            fields=candidate.fields,
        )

    @classmethod
    def from_fused(cls, fused: FusedResult) -> "RankedResult":
        return cls(
            record_id=fused.record_id,
            summary=fused.summary,
            description=fused.description,
            content=fused.content,
            score=fused.fused_score,
            match_type=fused.match_type,
            fields=fused.fields,
        )


@dataclass
class SearchTrace:
    """Per-request trace metadata."""
    request_id: str
    search_type: SearchMode
    started_at: datetime
    search_query: str = ""
    abbreviations_found: Tuple[AbbreviationMatch, ...] = ()
    processing_time_ms: float = 0.0

    def finished(self, processing_time_ms: float) -> "SearchTrace":
        return replace(self, processing_time_ms=processing_time_ms)


@dataclass
class SearchOutcome:
    """Ranked results plus the trace of the request that produced them."""
    results: List[RankedResult]
    trace: SearchTrace

    @property
    def result_count(self) -> int:
        return len(self.results)


__all__ = [
    "SearchMode",
    "AbbreviationMatch",
    "SearchFilters",
    "IncidentFields",
    "CandidateResult",
    "NormalizedResult",
    "FusedResult",
    "HybridWeights",
    "RankedResult",
    "SearchTrace",
    "SearchOutcome",
]
