"""Versioned rule tables for candidate filtering, rating and threat buckets.

The tables are data, not code: they ship as ``app/rules/competitor_rules.json``
and can be swapped without touching the pipeline by pointing the
``COMPETITOR_RULES_PATH`` environment variable at another file.  Every
table is validated into a :class:`RuleSet` on load so a malformed file fails
fast at start-up instead of mid-request.
"""

from __future__ import annotations

import functools
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..schemas.competitor_schema import RatingLabel, ThreatLevelName

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).resolve().parent.parent / "rules" / "competitor_rules.json"


class PositionPoints(BaseModel):
    max_position: int = Field(..., ge=1)
    points: int


class KeywordCategory(BaseModel):
    """A bucket of phrases; any hit adds ``points`` once."""

    name: str
    points: int
    keywords: list[str] = Field(..., min_length=1)

    @field_validator("keywords")
    @classmethod
    def lowercase_keywords(cls, v: list[str]) -> list[str]:
        return [k.lower() for k in v]


class LabelThreshold(BaseModel):
    min_rating: int = Field(..., ge=0)
    label: RatingLabel


class ThreatBucket(BaseModel):
    min_score: int = Field(..., ge=0)
    level: ThreatLevelName
    description: str


class ThreatRules(BaseModel):
    average_weight: float = 0.4
    major_player_rating: int = 80
    major_player_weight: float = 10
    opportunity_divisor: float = Field(200, gt=0)
    levels: list[ThreatBucket] = Field(..., min_length=1)

    @field_validator("levels")
    @classmethod
    def sort_levels(cls, v: list[ThreatBucket]) -> list[ThreatBucket]:
        return sorted(v, key=lambda b: b.min_score, reverse=True)


class RuleSet(BaseModel):
    """Complete, validated set of tunable analyzer rules."""

    version: str
    query_template: str = "best {subject} apps {year}"
    denylist: dict[str, list[str]]
    denied_tlds: list[str] = Field(default_factory=list)
    app_signals: list[str] = Field(..., min_length=1)
    generic_hosts: list[str] = Field(default_factory=list)
    position_points: list[PositionPoints]
    default_position_points: int = 10
    keyword_categories: list[KeywordCategory]
    rating_labels: list[LabelThreshold] = Field(..., min_length=1)
    threat: ThreatRules

    @field_validator("position_points")
    @classmethod
    def sort_position_points(cls, v: list[PositionPoints]) -> list[PositionPoints]:
        return sorted(v, key=lambda p: p.max_position)

    @field_validator("rating_labels")
    @classmethod
    def sort_rating_labels(cls, v: list[LabelThreshold]) -> list[LabelThreshold]:
        if min(t.min_rating for t in v) > 0:
            raise ValueError("rating_labels must include a bucket starting at 0")
        return sorted(v, key=lambda t: t.min_rating, reverse=True)

    @field_validator("app_signals", "denied_tlds", "generic_hosts")
    @classmethod
    def lowercase_entries(cls, v: list[str]) -> list[str]:
        return [entry.lower() for entry in v]

    @field_validator("denylist")
    @classmethod
    def lowercase_denylist(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {category: [entry.lower() for entry in entries] for category, entries in v.items()}

    @property
    def denied_domain_keywords(self) -> tuple[str, ...]:
        """All denylist entries flattened across categories."""
        return tuple(entry for entries in self.denylist.values() for entry in entries)


def load_rules(path: Optional[Path] = None) -> RuleSet:
    """Read and validate a rule file (defaults to the bundled table)."""
    rules_path = Path(path) if path else DEFAULT_RULES_PATH
    rules = RuleSet.model_validate_json(rules_path.read_text(encoding="utf-8"))
    logger.info("Loaded competitor rules version=%s from %s", rules.version, rules_path)
    return rules


@functools.lru_cache(maxsize=1)
def get_rules() -> RuleSet:
    """Process-wide rule set, honouring ``COMPETITOR_RULES_PATH`` if set."""
    env_path = os.getenv("COMPETITOR_RULES_PATH")
    return load_rules(Path(env_path) if env_path else None)
