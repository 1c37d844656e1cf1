"""Deterministic Rating Engine.

Assigns each filtered candidate a 10-100 rating and a qualitative label
using the rank position and fixed keyword categories.

Rules
-----
- NO API calls
- NO DB writes
- NO LLMs
- Each keyword category contributes at most once
- The label is ALWAYS derived from the final clamped rating
"""

from __future__ import annotations

from typing import Optional, Tuple

from ..constants import MAX_RATING, MIN_RATING
from ..schemas.competitor_schema import Candidate, RatingLabel, ScoredCandidate
from .competitor_normalizer import derive_competitor_name
from .rule_tables import RuleSet, get_rules


def _clamp(value: int, lo: int = MIN_RATING, hi: int = MAX_RATING) -> int:
    """Clamp *value* to [lo, hi]."""
    return max(lo, min(hi, value))


def position_points(position: int, rules: RuleSet) -> int:
    for bucket in rules.position_points:
        if position <= bucket.max_position:
            return bucket.points
    return rules.default_position_points


def rating_label(rating: int, rules: Optional[RuleSet] = None) -> RatingLabel:
    """Map a rating onto its tier (thresholds are sorted highest first)."""
    rules = rules or get_rules()
    for threshold in rules.rating_labels:
        if rating >= threshold.min_rating:
            return threshold.label
    return rules.rating_labels[-1].label


def rate_competitor(
    title: str,
    snippet: str,
    position: int,
    rules: Optional[RuleSet] = None,
) -> Tuple[int, RatingLabel]:
    """Compute ``(rating, label)`` for one candidate.

    Parameters
    ----------
    title, snippet:
        Result text, scanned case-insensitively.
    position:
        1-based position in the FINAL filtered list (not the provider rank).
    """
    rules = rules or get_rules()
    text = f"{title or ''} {snippet or ''}".lower()

    score = position_points(position, rules)
    for category in rules.keyword_categories:
        if any(keyword in text for keyword in category.keywords):
            score += category.points

    rating = _clamp(score)
    return rating, rating_label(rating, rules)


def score_candidate(candidate: Candidate, rules: Optional[RuleSet] = None) -> ScoredCandidate:
    """Attach name, rating and label to a filtered candidate."""
    rules = rules or get_rules()
    rating, label = rate_competitor(candidate.title, candidate.snippet, candidate.position, rules)
    return ScoredCandidate(
        **candidate.model_dump(),
        name=derive_competitor_name(candidate.title, candidate.domain, candidate.base_domain, rules),
        rating=rating,
        rating_label=label,
    )
