"""Temporal Merge.

Reconciles this run's scored candidates with the problem's previously
persisted competitor snapshot.

Rules
-----
- Match by exact URL only
- Matched:   previous_rating = old rating, rating_change = new - old,
             first_seen_at kept, last_seen_at = now, is_new = False
- Unmatched: previous_rating = None, rating_change = 0,
             first_seen_at = last_seen_at = now, is_new = True
- Snapshot entries absent from this run are NOT touched here
- Pure: the snapshot is read, never mutated; persistence happens elsewhere
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping

from ..schemas.competitor_schema import CompetitorRecord, ScoredCandidate


def merge_candidate(
    candidate: ScoredCandidate,
    previous: CompetitorRecord | None,
    now: datetime,
) -> CompetitorRecord:
    """Build the merged record for a single candidate."""
    if previous is None:
        return CompetitorRecord(
            name=candidate.name,
            url=candidate.url,
            description=candidate.snippet,
            rating=candidate.rating,
            rating_label=candidate.rating_label,
            position=candidate.position,
            previous_rating=None,
            rating_change=0,
            first_seen_at=now,
            last_seen_at=now,
            is_new=True,
        )

    return CompetitorRecord(
        name=candidate.name,
        url=candidate.url,
        description=candidate.snippet,
        rating=candidate.rating,
        rating_label=candidate.rating_label,
        position=candidate.position,
        previous_rating=previous.rating,
        rating_change=candidate.rating - previous.rating,
        first_seen_at=previous.first_seen_at,
        last_seen_at=now,
        is_new=False,
    )


def merge_with_snapshot(
    candidates: Iterable[ScoredCandidate],
    snapshot: Mapping[str, CompetitorRecord],
    now: datetime,
) -> List[CompetitorRecord]:
    """Merge every candidate against *snapshot* (keyed by URL).

    Pass an empty mapping for stateless runs: every candidate is then new.
    """
    return [merge_candidate(c, snapshot.get(c.url), now) for c in candidates]
