#!/usr/bin/env python3
"""
Incident Search Script.

Runs one keyword, vector or hybrid search against the configured indexes and
prints the ranked incidents, or only shows how a query is preprocessed.

Usage:
    python backend/scripts/search_incidents.py "VPN drops after login" [--type hybrid] [--top-k 5]
    python backend/scripts/search_incidents.py "DNS down" --preprocess-only

Options:
    --type              keyword, vector or hybrid (default hybrid)
    --top-k             Number of results (default from settings)
    --category, --status, --priority, --incident-id
                        Exact-match filters (vector path only)
    --preprocess-only   Show the preprocessing result without searching
    --verbose           Show debug logging
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

# Add the backend directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from incident_rag.core.errors import IncidentSearchError
from incident_rag.retrieval.models import RankedResult, SearchFilters, SearchOutcome
from incident_rag.retrieval.pipeline import RetrievalPipeline
from incident_rag.retrieval.preprocessing import preprocess_query, preprocessing_summary


@dataclass
class SearchReport:
    """Printable report of one search run."""

    query: str
    outcome: SearchOutcome

    @property
    def results(self) -> List[RankedResult]:
        return self.outcome.results

    def summary(self) -> str:
        """Generate a human-readable summary."""
        trace = self.outcome.trace
        lines = [
            "=" * 72,
            f"INCIDENT SEARCH ({trace.search_type.value})",
            "=" * 72,
            f"Query:            {self.query}",
            f"Search query:     {trace.search_query}",
            f"Results:          {self.outcome.result_count}",
            f"Processing time:  {trace.processing_time_ms:.1f} ms",
            f"Request id:       {trace.request_id}",
            "-" * 72,
        ]
        if not self.results:
            lines.append("No matching incidents.")
        for rank, result in enumerate(self.results, start=1):
            fields = result.fields
            lines.append(
                f"{rank:>2}. {result.record_id:<14} {result.score:8.4f}  "
                f"[{fields.status or 'N/A'} | {fields.priority or 'N/A'} | {fields.category or 'N/A'}]"
            )
            if result.summary:
                lines.append(f"    {result.summary}")
        lines.append("=" * 72)
        return "\n".join(lines)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the script."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Search IT incidents with keyword, vector or hybrid retrieval",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("query", help="Natural-language search query")
    parser.add_argument(
        "--type",
        dest="search_type",
        default="hybrid",
        help="Search type: keyword, vector or hybrid (default hybrid)",
    )
    parser.add_argument("--top-k", type=int, default=None, help="Number of results")
    parser.add_argument("--category", help="Filter by category (vector path only)")
    parser.add_argument("--status", help="Filter by status (vector path only)")
    parser.add_argument("--priority", help="Filter by priority (vector path only)")
    parser.add_argument("--incident-id", help="Filter by incident id (vector path only)")
    parser.add_argument(
        "--preprocess-only",
        action="store_true",
        help="Only show how the query is preprocessed",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    return parser


def run_search(pipeline: RetrievalPipeline, args: argparse.Namespace) -> SearchReport:
    filters = SearchFilters(
        incident_id=args.incident_id,
        category=args.category,
        status=args.status,
        priority=args.priority,
    )
    outcome = asyncio.run(pipeline.search(
        args.query,
        args.search_type,
        top_k=args.top_k,
        filters=None if filters.is_empty() else filters,
    ))
    return SearchReport(query=args.query, outcome=outcome)


def main(argv: Optional[Sequence[str]] = None, pipeline: Optional[RetrievalPipeline] = None) -> int:
    """
    Main entry point for the search script.

    Returns:
        Exit code: 0 on success (including zero results), 2 on error
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logger = logging.getLogger("search_incidents")

    if args.preprocess_only:
        print(preprocessing_summary(preprocess_query(args.query)))
        return 0

    try:
        if pipeline is None:
            from incident_rag.services.search_service import get_retrieval_pipeline

            pipeline = get_retrieval_pipeline()
        report = run_search(pipeline, args)
    except IncidentSearchError as e:
        logger.error(f"Search failed: {e}")
        print(f"Search failed: {e}", file=sys.stderr)
        return 2

    print(report.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
