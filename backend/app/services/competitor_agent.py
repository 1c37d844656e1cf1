"""Competitive-Landscape Analyzer.

Runs the full pipeline for one market problem:

  query builder -> result fetcher -> candidate filter -> rating engine
    -> temporal merge (+ snapshot write) -> threat aggregator

Rules
-----
- Exactly ONE outbound search call per analysis
- NO LLM calls, NO semantic classification: rule tables only
- Snapshot read failure -> continue as if no prior snapshot existed
- Snapshot write failure -> logged and reported in ``warnings``; the
  computed analysis is still returned
- Runs for the SAME problem serialise their load-merge-write section;
  different problems never wait on each other
"""

from __future__ import annotations

import asyncio
import logging
import os
import weakref
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from ..constants import DEFAULT_BATCH_DELAY_SECONDS, DEFAULT_OPPORTUNITY_SCORE
from ..exceptions import AnalyzerError, ConfigurationError, PersistenceError
from ..schemas.competitor_schema import (
    CompetitorRecord,
    CompetitorSearchResponse,
    CompetitorSnapshotResponse,
    ProblemContext,
)
from .candidate_filter import filter_candidates
from .competitor_store import CompetitorStore
from .query_builder import build_search_query
from .rating_engine import score_candidate
from .rule_tables import RuleSet, get_rules
from .search_client import fetch_search_results
from .temporal_merge import merge_with_snapshot
from .threat_engine import assess_threat

logger = logging.getLogger(__name__)

# Per-problem merge locks; entries vanish once no run holds a reference.
_problem_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


# ===================================================================== #
#  Internal helpers                                                       #
# ===================================================================== #

@asynccontextmanager
async def _problem_lock(problem_id: str):
    """Hold the merge lock for *problem_id* for the duration of the block."""
    lock = _problem_locks.get(problem_id)
    if lock is None:
        lock = asyncio.Lock()
        _problem_locks[problem_id] = lock
    async with lock:
        yield


def _opportunity(problem: ProblemContext) -> float:
    if problem.opportunity_score is None:
        return float(DEFAULT_OPPORTUNITY_SCORE)
    return float(problem.opportunity_score)


async def _load_snapshot_or_empty(
    store: CompetitorStore,
    problem_id: str,
    warnings: List[str],
) -> Dict[str, CompetitorRecord]:
    """Read the prior snapshot; a failed read degrades to 'no snapshot'."""
    try:
        return await asyncio.to_thread(store.load_snapshot, problem_id)
    except PersistenceError as exc:
        logger.warning("Snapshot read failed for problem=%s, continuing without history: %s", problem_id, exc)
        warnings.append("Previous competitor snapshot unavailable; rating changes not computed")
        return {}


def _by_rating(records: Sequence[CompetitorRecord]) -> List[CompetitorRecord]:
    """Strongest first; ties keep acceptance order."""
    return sorted(records, key=lambda r: r.rating, reverse=True)


# ===================================================================== #
#  Public API                                                             #
# ===================================================================== #

async def analyze_competitors(
    problem: ProblemContext,
    store: Optional[CompetitorStore] = None,
    *,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    rules: Optional[RuleSet] = None,
    now: Optional[datetime] = None,
) -> CompetitorSearchResponse:
    """Analyze the competitive landscape of one problem.

    Parameters
    ----------
    problem:
        Validated request context.  Without ``problem_id`` the run is
        stateless: every competitor is new and nothing is persisted.
    store:
        Competitor snapshot store; ``None`` also forces stateless mode.
    api_key, client:
        Forwarded to the result fetcher.
    rules:
        Rule set override (defaults to the process-wide tables).
    now:
        Timestamp used for lifecycle fields.  Defaults to the current UTC time.

    Raises
    ------
    InvalidInput, ConfigurationError, UpstreamError
        Propagated from the query builder and result fetcher.
    """
    rules = rules or get_rules()
    query = build_search_query(problem.problem_title, problem.niche, rules=rules)
    print(f"🔎 [COMP] Analyzing competitors for problem={problem.problem_id or '<stateless>'} query={query!r}")

    raw_results = await fetch_search_results(query, api_key=api_key, client=client)
    candidates = filter_candidates(raw_results, rules)
    scored = [score_candidate(candidate, rules) for candidate in candidates]

    warnings: List[str] = []
    if problem.problem_id and store is not None:
        async with _problem_lock(problem.problem_id):
            snapshot = await _load_snapshot_or_empty(store, problem.problem_id, warnings)
            merged = merge_with_snapshot(scored, snapshot, now or datetime.now(timezone.utc))
            try:
                await asyncio.to_thread(store.upsert_many, problem.problem_id, merged)
            except PersistenceError as exc:
                logger.error("Snapshot write failed for problem=%s: %s", problem.problem_id, exc)
                warnings.append("Competitor snapshot could not be saved; results were not persisted")
    else:
        merged = merge_with_snapshot(scored, {}, now or datetime.now(timezone.utc))

    threat = assess_threat(merged, _opportunity(problem), rules)
    print(
        f"✅ [COMP] {len(merged)} competitors, "
        f"{sum(1 for r in merged if r.is_new)} new, threat={threat.level.value} ({threat.score})"
    )

    return CompetitorSearchResponse(
        competitors=_by_rating(merged),
        threat_level=threat,
        query=query,
        warnings=warnings,
    )


async def load_stored_competitors(
    problem_id: str,
    store: CompetitorStore,
    opportunity_score: float = DEFAULT_OPPORTUNITY_SCORE,
    rules: Optional[RuleSet] = None,
) -> Optional[CompetitorSnapshotResponse]:
    """Return the persisted snapshot for *problem_id*, or None if there is none.

    Raises ``PersistenceError`` on read failure: unlike a live analysis there
    is nothing to fall back to.
    """
    snapshot = await asyncio.to_thread(store.load_snapshot, problem_id)
    if not snapshot:
        return None

    records = sorted(snapshot.values(), key=lambda r: r.position)
    return CompetitorSnapshotResponse(
        problem_id=problem_id,
        competitors=records,
        threat_level=assess_threat(records, opportunity_score, rules),
    )


# ===================================================================== #
#  Batch backfill                                                         #
# ===================================================================== #

def get_batch_delay() -> float:
    """Seconds between provider calls in a batch (``BATCH_SEARCH_DELAY_SECONDS``)."""
    raw = os.getenv("BATCH_SEARCH_DELAY_SECONDS")
    if not raw:
        return DEFAULT_BATCH_DELAY_SECONDS
    try:
        return max(0.0, float(raw))
    except ValueError:
        logger.warning("Ignoring invalid BATCH_SEARCH_DELAY_SECONDS=%r", raw)
        return DEFAULT_BATCH_DELAY_SECONDS


def plan_batch(
    problems: Sequence[ProblemContext],
    store: CompetitorStore,
) -> Tuple[List[ProblemContext], List[ProblemContext]]:
    """Split *problems* into ``(already_analyzed, missing_competitors)``."""
    with_records = store.problem_ids_with_records(p.problem_id for p in problems if p.problem_id)
    done = [p for p in problems if p.problem_id in with_records]
    missing = [p for p in problems if p.problem_id not in with_records]
    return done, missing


async def run_batch_search(
    problems: Sequence[ProblemContext],
    store: CompetitorStore,
    *,
    delay_seconds: Optional[float] = None,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Analyze each problem in turn, pausing between provider calls.

    A failure for one problem is logged and the batch moves on, except for
    ``ConfigurationError`` which would fail every remaining problem too.

    Returns the number of problems analyzed successfully.
    """
    delay = get_batch_delay() if delay_seconds is None else delay_seconds
    print(f"[BATCH] Starting competitor backfill for {len(problems)} problems")

    success_count = 0
    for index, problem in enumerate(problems):
        try:
            result = await analyze_competitors(problem, store, api_key=api_key, client=client)
            success_count += 1
            print(f"[BATCH] Success for {problem.problem_title!r}: {len(result.competitors)} competitors")
        except ConfigurationError as exc:
            logger.error("Batch aborted, search provider not configured: %s", exc)
            break
        except AnalyzerError as exc:
            logger.error("Batch search failed for problem=%s: %s", problem.problem_id, exc)
        except Exception:
            logger.exception("Unexpected error in batch search for problem=%s", problem.problem_id)

        if delay > 0 and index < len(problems) - 1:
            await asyncio.sleep(delay)

    print(f"[BATCH] Complete! Successfully processed: {success_count}")
    return success_count
