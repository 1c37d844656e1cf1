"""Threat Aggregator.

Reduces the merged competitor list plus the problem's own opportunity score
into a single threat verdict.

    raw    = avg_rating * 0.4 + major_players * 10
    threat = raw * (1 - opportunity / 200)        # opportunity dampens threat
    score  = round_half_up(clamp(threat, 10, 100))

Rules
-----
- Pure deterministic math, NO I/O
- Empty competitor list -> Low / 20 / "no significant competitors found"
- A higher opportunity score never raises the threat score
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ..constants import (
    EMPTY_THREAT_DESCRIPTION,
    EMPTY_THREAT_SCORE,
    MAX_THREAT_SCORE,
    MIN_THREAT_SCORE,
)
from ..schemas.competitor_schema import CompetitorRecord, ThreatAssessment, ThreatLevelName
from .rule_tables import RuleSet, get_rules

logger = logging.getLogger(__name__)


def _clamp(value: float, lo: float = MIN_THREAT_SCORE, hi: float = MAX_THREAT_SCORE) -> float:
    """Clamp *value* to [lo, hi]."""
    return max(lo, min(hi, value))


def threat_score(
    ratings: Sequence[int],
    opportunity_score: float,
    rules: Optional[RuleSet] = None,
) -> int:
    """Numeric threat score for a non-empty list of ratings."""
    rules = rules or get_rules()
    threat = rules.threat

    avg_rating = sum(ratings) / len(ratings)
    major_players = sum(1 for r in ratings if r >= threat.major_player_rating)
    # Computed for diagnostics only; not part of the formula.
    max_rating = max(ratings)

    raw = avg_rating * threat.average_weight + major_players * threat.major_player_weight
    dampened = raw * (1 - opportunity_score / threat.opportunity_divisor)
    # Round half up (34.5 -> 35).
    score = int(math.floor(_clamp(dampened) + 0.5))

    logger.debug(
        "Threat inputs avg=%.1f max=%d major=%d opportunity=%.1f -> raw=%.1f score=%d",
        avg_rating, max_rating, major_players, opportunity_score, raw, score,
    )
    return score


def level_for_score(score: int, rules: Optional[RuleSet] = None) -> tuple[ThreatLevelName, str]:
    """Bucket a score into ``(level, description)``; buckets sorted highest first."""
    rules = rules or get_rules()
    for bucket in rules.threat.levels:
        if score >= bucket.min_score:
            return bucket.level, bucket.description
    lowest = rules.threat.levels[-1]
    return lowest.level, lowest.description


def assess_threat(
    competitors: Sequence[CompetitorRecord],
    opportunity_score: float,
    rules: Optional[RuleSet] = None,
) -> ThreatAssessment:
    """Combine competitor strength with the problem's opportunity score."""
    if not competitors:
        return ThreatAssessment(
            level=ThreatLevelName.LOW,
            score=EMPTY_THREAT_SCORE,
            description=EMPTY_THREAT_DESCRIPTION,
        )

    rules = rules or get_rules()
    score = threat_score([c.rating for c in competitors], opportunity_score, rules)
    level, description = level_for_score(score, rules)
    return ThreatAssessment(level=level, score=score, description=description)
