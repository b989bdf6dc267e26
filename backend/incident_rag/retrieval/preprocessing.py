"""
Query preprocessing for incident search.

Normalizes raw query text and expands IT abbreviations. Two expanded forms
are produced:

- ``search_optimized``: ``"DNS Domain Name System"``, sent to both engines so
  either spelling can match.
- ``with_abbreviations``: ``"DNS (Domain Name System)"``, for display.

Expansion is idempotent: an abbreviation already followed by its own
expansion (in either form) is matched together with it and re-rendered, so
expanding an expanded query never doubles the expansion.

Everything here is pure and deterministic; no I/O.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Tuple

from .abbreviations import IT_ABBREVIATION_ENTRIES, AbbreviationEntry
from .models import AbbreviationMatch


_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class PreprocessedQuery:
    """Result of preprocessing one raw query."""
    original: str
    normalized: str
    with_abbreviations: str
    search_optimized: str
    abbreviations_found: Tuple[AbbreviationMatch, ...] = ()


class AbbreviationExpander:
    """Whole-word, case-insensitive abbreviation matcher over a fixed dictionary."""

    def __init__(self, entries: Iterable[AbbreviationEntry] = IT_ABBREVIATION_ENTRIES) -> None:
        # Longest abbreviation first so "CI/CD" wins over "CI" at the same position.
        self._entries = sorted(entries, key=lambda e: len(e.abbreviation), reverse=True)
        # One named group per entry; a match resolves to its entry by group name.
        self._by_group: Dict[str, AbbreviationEntry] = {}
        alternatives = []
        for index, entry in enumerate(self._entries):
            abbrev, expansion = entry.abbreviation, entry.expansion
            group = f"e{index}"
            self._by_group[group] = entry
            alternatives.append(
                f"(?P<{group}>{re.escape(abbrev)}"
                f"(?: {re.escape(expansion)}| \\({re.escape(expansion)}\\))?)"
            )
        self._pattern = re.compile(
            r"(?<!\w)(?:" + "|".join(alternatives) + r")(?!\w)",
            re.IGNORECASE,
        )

    def _scan(
        self,
        text: str,
        render: Callable[[AbbreviationEntry], str],
    ) -> Tuple[str, Tuple[AbbreviationMatch, ...]]:
        found: Dict[str, AbbreviationMatch] = {}

        def _replace(match: "re.Match[str]") -> str:
            entry = self._by_group[match.lastgroup]
            if entry.abbreviation not in found:
                found[entry.abbreviation] = AbbreviationMatch(
                    original=entry.abbreviation,
                    expanded=entry.expansion,
                    category=entry.category,
                )
            return render(entry)

        return self._pattern.sub(_replace, text), tuple(found.values())

    def expand(self, text: str) -> Tuple[str, Tuple[AbbreviationMatch, ...]]:
        """Display expansion: ``"VPN down"`` -> ``"VPN (Virtual Private Network) down"``."""
        return self._scan(text, lambda e: f"{e.abbreviation} ({e.expansion})")

    def search_expansion(self, text: str) -> str:
        """Search expansion: ``"VPN down"`` -> ``"VPN Virtual Private Network down"``."""
        expanded, _ = self._scan(text, lambda e: f"{e.abbreviation} {e.expansion}")
        return expanded

    def find(self, text: str) -> Tuple[AbbreviationMatch, ...]:
        """Return the abbreviations found in ``text``, in order of first occurrence."""
        _, found = self._scan(text, lambda e: e.abbreviation)
        return found


_DEFAULT_EXPANDER = AbbreviationExpander()


def normalize_query(query: str) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    return _WHITESPACE.sub(" ", query.strip())


def expand_abbreviations(query: str) -> Tuple[str, Tuple[AbbreviationMatch, ...]]:
    return _DEFAULT_EXPANDER.expand(query)


def search_expansion(query: str) -> str:
    return _DEFAULT_EXPANDER.search_expansion(query)


def find_abbreviations(query: str) -> Tuple[AbbreviationMatch, ...]:
    return _DEFAULT_EXPANDER.find(query)


def preprocess_query(
    query: str,
    expand: bool = True,
    normalize: bool = True,
    expander: AbbreviationExpander = _DEFAULT_EXPANDER,
) -> PreprocessedQuery:
    """
    Preprocess a raw query for search.

    Args:
        query: Raw user query
        expand: Expand abbreviations (default True)
        normalize: Collapse whitespace runs (default True); the text is
            always trimmed
        expander: Abbreviation expander to use

    Returns:
        PreprocessedQuery with normalized, display and search-optimized forms
    """
    normalized = normalize_query(query) if normalize else query.strip()

    if not expand:
        return PreprocessedQuery(
            original=query,
            normalized=normalized,
            with_abbreviations=normalized,
            search_optimized=normalized,
        )

    with_abbreviations, found = expander.expand(normalized)
    return PreprocessedQuery(
        original=query,
        normalized=normalized,
        with_abbreviations=with_abbreviations,
        search_optimized=expander.search_expansion(normalized),
        abbreviations_found=found,
    )


def preprocessing_summary(result: PreprocessedQuery) -> str:
    """Human-readable summary of a preprocessing result."""
    parts = [f'Original: "{result.original}"']
    if result.abbreviations_found:
        parts.append(f"\nAbbreviations expanded ({len(result.abbreviations_found)}):")
        for match in result.abbreviations_found:
            parts.append(f"  • {match.original} → {match.expanded} [{match.category}]")
    parts.append(f'\nSearch-optimized: "{result.search_optimized}"')
    return "\n".join(parts)


__all__ = [
    "PreprocessedQuery",
    "AbbreviationExpander",
    "normalize_query",
    "expand_abbreviations",
    "search_expansion",
    "find_abbreviations",
    "preprocess_query",
    "preprocessing_summary",
]
