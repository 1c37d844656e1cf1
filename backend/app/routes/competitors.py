"""Competitor routes — run and read competitive-landscape analyses.

Endpoints:
  POST /search-competitors            — Analyze competitors for one problem
  GET  /competitors/{problem_id}      — Read the persisted snapshot for a problem
  POST /batch-search-competitors      — Backfill problems that have no snapshot yet
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from ..constants import DEFAULT_OPPORTUNITY_SCORE
from ..database import SessionLocal
from ..schemas.competitor_schema import (
    BatchSearchRequest,
    BatchSearchResponse,
    CompetitorSearchResponse,
    CompetitorSnapshotResponse,
    ProblemContext,
)
from ..services.competitor_agent import (
    analyze_competitors,
    load_stored_competitors,
    plan_batch,
    run_batch_search,
)
from ..services.competitor_store import CompetitorStore, SqlAlchemyCompetitorStore

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Competitors"],
    responses={
        400: {"description": "Invalid request body"},
        500: {"description": "Configuration, upstream or persistence failure"},
    },
)


def get_competitor_store() -> CompetitorStore:
    """Dependency returning the snapshot store (overridden in tests)."""
    return SqlAlchemyCompetitorStore(SessionLocal)


# ── Routes ───────────────────────────────────────────────────────────────

@router.post(
    "/search-competitors",
    response_model=CompetitorSearchResponse,
    summary="Search Competitors",
    response_description="Scored competitors, threat level and the query used",
)
async def search_competitors(
    problem: ProblemContext,
    store: CompetitorStore = Depends(get_competitor_store),
) -> CompetitorSearchResponse:
    """Run the competitive-landscape analysis for one problem.

    Without ``problemId`` the analysis is stateless and nothing is saved.
    """
    return await analyze_competitors(problem, store)


@router.get(
    "/competitors/{problem_id}",
    response_model=CompetitorSnapshotResponse,
    summary="Get Stored Competitors",
    response_description="Persisted competitor snapshot with a recomputed threat level",
)
async def get_stored_competitors(
    problem_id: str,
    opportunity_score: float = Query(DEFAULT_OPPORTUNITY_SCORE, ge=0, le=100, alias="opportunityScore"),
    store: CompetitorStore = Depends(get_competitor_store),
) -> CompetitorSnapshotResponse:
    """Return the last persisted snapshot for a problem, ordered by position."""
    result = await load_stored_competitors(problem_id, store, opportunity_score)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No competitors stored for problem {problem_id}",
        )
    return result


@router.post(
    "/batch-search-competitors",
    response_model=BatchSearchResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Backfill Competitors",
    response_description="Counts of problems with and without stored competitors",
)
def batch_search_competitors(
    request: BatchSearchRequest,
    background_tasks: BackgroundTasks,
    store: CompetitorStore = Depends(get_competitor_store),
) -> BatchSearchResponse:
    """Start a background search for every problem that has no snapshot yet."""
    done, missing = plan_batch(request.problems, store)
    logger.info("Batch backfill: %d already analyzed, %d missing", len(done), len(missing))

    if missing:
        background_tasks.add_task(run_batch_search, missing, store)

    return BatchSearchResponse(
        message="Background competitor search started" if missing else "All problems already have competitors",
        total_problems=len(request.problems),
        problems_with_competitors=len(done),
        problems_missing_competitors=len(missing),
    )
