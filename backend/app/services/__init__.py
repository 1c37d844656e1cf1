from .query_builder import build_search_query
from .search_client import fetch_search_results
from .candidate_filter import filter_candidates
from .rating_engine import rate_competitor, rating_label
from .temporal_merge import merge_with_snapshot
from .threat_engine import assess_threat
from .competitor_store import CompetitorStore, InMemoryCompetitorStore, SqlAlchemyCompetitorStore
from .competitor_agent import analyze_competitors, run_batch_search

__all__ = [
    "build_search_query",
    "fetch_search_results",
    "filter_candidates",
    "rate_competitor",
    "rating_label",
    "merge_with_snapshot",
    "assess_threat",
    "CompetitorStore",
    "InMemoryCompetitorStore",
    "SqlAlchemyCompetitorStore",
    "analyze_competitors",
    "run_batch_search",
]
