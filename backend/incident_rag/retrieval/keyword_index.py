"""
Keyword index boundary and its default BM25 implementation.

The keyword adapter talks to a ``KeywordIndex``; any hosted full-text engine
can sit behind that protocol. ``BM25KeywordIndex`` is the bundled
implementation: it scores incident records with rank_bm25's BM25Okapi and
emulates a compound "should" query:

- an exact clause over identifier-like fields (incident id, status, priority,
  category, team, ...), which adds a fixed boost when the field's whole value
  appears in the query;
- a fuzzy clause over free-text fields, where each query term also matches
  vocabulary terms within ``fuzzy_max_edits`` edits.

A record is returned only if at least one clause hits.
"""

import json
import logging
import math
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Set, Tuple

from rank_bm25 import BM25Okapi

from .tokenizer import tokenize, within_edit_distance


logger = logging.getLogger("incident_rag.retrieval.keyword_index")

EXACT_FIELDS: Tuple[str, ...] = (
    "incidentId",
    "status",
    "priority",
    "category",
    "subcategory",
    "urgency",
    "impact",
    "assignee",
    "reporter",
    "team",
)

FUZZY_FIELDS: Tuple[str, ...] = (
    "summary",
    "description",
    "rootCause",
    "resolutionSteps",
    "workNotes",
    "searchableText",
)

# Fields copied onto every hit.
PROJECTED_FIELDS: Tuple[str, ...] = (
    "incidentId",
    "summary",
    "description",
    "status",
    "priority",
    "category",
    "rootCause",
    "resolutionSteps",
    "createdDate",
    "resolvedDate",
    "searchableText",
)

_SEARCHABLE_TEXT_LABELS: Tuple[Tuple[str, str], ...] = (
    ("Incident ID", "incidentId"),
    ("Summary", "summary"),
    ("Description", "description"),
    ("Status", "status"),
    ("Priority", "priority"),
    ("Category", "category"),
    ("Assignee", "assignee"),
    ("Reporter", "reporter"),
    ("Created Date", "createdDate"),
    ("Resolved Date", "resolvedDate"),
    ("Resolution Steps", "resolutionSteps"),
    ("Root Cause", "rootCause"),
    ("Impact", "impact"),
    ("Urgency", "urgency"),
    ("Environment", "environment"),
    ("Component", "component"),
    ("Team", "team"),
)


@dataclass
class KeywordQuery:
    """Request sent to the keyword index."""
    query: str
    exact_fields: Sequence[str] = EXACT_FIELDS
    fuzzy_fields: Sequence[str] = FUZZY_FIELDS
    fuzzy_max_edits: int = 1
    limit: int = 10


@dataclass
class KeywordHit:
    """One scored record returned by the keyword index."""
    record_id: str
    relevance_score: float
    fields: Dict[str, Any] = field(default_factory=dict)


class KeywordIndex(Protocol):
    """Protocol for keyword (lexical) search backends."""

    def search(self, query: KeywordQuery) -> List[KeywordHit]:
        """Return at most ``query.limit`` hits ordered by relevance (descending)."""
        ...


def build_searchable_text(record: Mapping[str, Any]) -> str:
    """Flatten an incident record into the labelled text block used for full-text search."""
    lines = []
    for label, key in _SEARCHABLE_TEXT_LABELS:
        value = record.get(key)
        lines.append(f"{label}: {value if value not in (None, '') else 'N/A'}")
    return "\n".join(lines)


class LuceneIdfBM25(BM25Okapi):
    """
    BM25Okapi with the Lucene idf, ``log(1 + (N - n + 0.5) / (n + 0.5))``.

    The idf is always positive: a record containing any query term scores
    above zero, one containing none scores exactly zero.
    """

    def _calc_idf(self, nd: Dict[str, int]) -> None:
        for word, freq in nd.items():
            self.idf[word] = math.log(1.0 + (self.corpus_size - freq + 0.5) / (freq + 0.5))
        self.average_idf = sum(self.idf.values()) / len(self.idf) if self.idf else 0.0


class BM25KeywordIndex:
    """
    In-process keyword index over incident records.

    BM25 models are built lazily per set of fuzzy fields and cached; the
    index is read-only after construction and safe to share across threads.

    Example:
        >>> index = BM25KeywordIndex([
        ...     {"incidentId": "INC001", "summary": "VPN tunnel drops", "status": "Resolved"},
        ...     {"incidentId": "INC002", "summary": "Printer jam", "status": "Open"},
        ...     {"incidentId": "INC003", "summary": "Mailbox quota exceeded", "status": "Closed"},
        ... ])
        >>> [hit.record_id for hit in index.search(KeywordQuery("vpn tunel"))]
        ['INC001']
    """

    EXACT_MATCH_BOOST = 2.0

    def __init__(self, records: Sequence[Mapping[str, Any]], id_field: str = "incidentId") -> None:
        self._id_field = id_field
        self._records: List[Dict[str, Any]] = []
        for record in records:
            item = dict(record)
            if not item.get(id_field):
                logger.warning("Skipping incident record without an id", extra={"id_field": id_field})
                continue
            if not item.get("searchableText"):
                item["searchableText"] = build_searchable_text(item)
            self._records.append(item)
        self._models: Dict[Tuple[str, ...], Tuple["LuceneIdfBM25", Set[str]]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_json(cls, path: Path, id_field: str = "incidentId") -> "BM25KeywordIndex":
        """
        Load incident records from a JSON file.

        The file holds either a list of incident objects or an object with an
        ``incidents`` list.
        """
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        records = payload.get("incidents", []) if isinstance(payload, dict) else payload
        index = cls(records, id_field=id_field)
        logger.info(
            "Loaded keyword index corpus",
            extra={"path": str(path), "records": index.record_count},
        )
        return index

    @property
    def record_count(self) -> int:
        return len(self._records)

    def search(self, query: KeywordQuery) -> List[KeywordHit]:
        if not self._records or query.limit <= 0:
            return []

        query_tokens = tokenize(query.query)
        if not query_tokens:
            return []

        fuzzy_scores = self._fuzzy_scores(query_tokens, tuple(query.fuzzy_fields), query.fuzzy_max_edits)

        scored: List[Tuple[int, float]] = []
        for idx, record in enumerate(self._records):
            score = fuzzy_scores[idx] + self._exact_score(record, query_tokens, query.exact_fields)
            if score > 0.0:
                scored.append((idx, score))

        # Stable sort keeps corpus order among equal scores.
        scored.sort(key=lambda item: item[1], reverse=True)

        hits = []
        for idx, score in scored[: query.limit]:
            record = self._records[idx]
            hits.append(KeywordHit(
                record_id=str(record[self._id_field]),
                relevance_score=score,
                fields={key: record[key] for key in PROJECTED_FIELDS if key in record},
            ))
        return hits

    # --- Internal -------------------------------------------------------

    def _fuzzy_scores(self, query_tokens: List[str], fuzzy_fields: Tuple[str, ...], max_edits: int) -> List[float]:
        if not fuzzy_fields:
            return [0.0] * len(self._records)
        model, vocabulary = self._model_for(fuzzy_fields)
        terms = self._expand_terms(query_tokens, vocabulary, max_edits)
        if not terms:
            return [0.0] * len(self._records)
        return [float(score) for score in model.get_scores(terms)]

    def _model_for(self, fuzzy_fields: Tuple[str, ...]) -> Tuple["LuceneIdfBM25", Set[str]]:
        with self._lock:
            cached = self._models.get(fuzzy_fields)
            if cached is not None:
                return cached
            corpus = [
                tokenize(" ".join(str(record.get(name) or "") for name in fuzzy_fields))
                for record in self._records
            ]
            # BM25Okapi divides by the average document length.
            if not any(corpus):
                corpus = [["\x00"] for _ in corpus]
            vocabulary = {token for document in corpus for token in document}
            cached = (LuceneIdfBM25(corpus), vocabulary)
            self._models[fuzzy_fields] = cached
            return cached

    @staticmethod
    def _expand_terms(query_tokens: List[str], vocabulary: Set[str], max_edits: int) -> List[str]:
        terms: List[str] = []
        seen: Set[str] = set()
        for token in query_tokens:
            if len(token) <= max_edits:
                candidates = [token] if token in vocabulary else []
            else:
                candidates = sorted(
                    term for term in vocabulary if within_edit_distance(token, term, max_edits)
                )
            for term in candidates:
                if term not in seen:
                    seen.add(term)
                    terms.append(term)
        return terms

    def _exact_score(self, record: Mapping[str, Any], query_tokens: List[str], exact_fields: Sequence[str]) -> float:
        score = 0.0
        for name in exact_fields:
            value = record.get(name)
            if value in (None, ""):
                continue
            value_tokens = tokenize(str(value))
            if value_tokens and _contains_sequence(query_tokens, value_tokens):
                score += self.EXACT_MATCH_BOOST
        return score


def _contains_sequence(tokens: List[str], needle: List[str]) -> bool:
    width = len(needle)
    return any(tokens[i:i + width] == needle for i in range(len(tokens) - width + 1))


def load_keyword_index(path: Optional[Path]) -> BM25KeywordIndex:
    """Build the default keyword index from ``path``, or an empty one if no corpus is configured."""
    if path is None or not Path(path).exists():
        logger.warning(
            "Incident corpus not found, keyword index is empty",
            extra={"path": str(path) if path else None},
        )
        return BM25KeywordIndex([])
    return BM25KeywordIndex.from_json(path)


__all__ = [
    "EXACT_FIELDS",
    "FUZZY_FIELDS",
    "KeywordQuery",
    "KeywordHit",
    "KeywordIndex",
    "BM25KeywordIndex",
    "build_searchable_text",
    "load_keyword_index",
]
