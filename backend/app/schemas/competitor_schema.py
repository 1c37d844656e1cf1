from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RatingLabel(str, Enum):
    """Four-bucket qualitative tier, always derived from the numeric rating."""

    EMERGING = "Emerging"
    GROWING = "Growing"
    ESTABLISHED = "Established"
    MAJOR_PLAYER = "Major Player"


class ThreatLevelName(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    CRITICAL = "Critical"


class CamelModel(BaseModel):
    """Base for every wire-facing model: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ===================================================================== #
#  Pipeline input                                                         #
# ===================================================================== #

class ProblemContext(CamelModel):
    """Request body for a competitor search.

    ``problem_id`` is optional: without it the analyzer runs statelessly and
    nothing is persisted.
    """

    problem_id: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Opaque problem identifier; keys the persisted competitor snapshot",
    )
    problem_title: str = Field(..., max_length=500)
    niche: Optional[str] = Field(default=None, max_length=200)
    opportunity_score: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="Exogenous attractiveness of the problem (0-100); dampens the threat score",
    )

    @field_validator("problem_title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Problem title is required")
        return stripped

    @field_validator("problem_id", "niche")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None


# ===================================================================== #
#  Intermediate pipeline values                                           #
# ===================================================================== #

class RawResult(BaseModel):
    """One organic result as returned by the search provider."""

    title: str = ""
    url: str = ""
    snippet: str = ""
    rank_position: int = Field(..., ge=1)


class Candidate(BaseModel):
    """A raw result that survived filtering, renumbered in acceptance order."""

    title: str
    url: str
    snippet: str
    domain: str
    base_domain: str
    position: int = Field(..., ge=1)


class ScoredCandidate(Candidate):
    """A candidate with its display name, rating and label attached."""

    name: str
    rating: int = Field(..., ge=10, le=100)
    rating_label: RatingLabel


# ===================================================================== #
#  Output entities                                                        #
# ===================================================================== #

class CompetitorRecord(CamelModel):
    """The persisted/returned competitor entity for one (problem, url) pair."""

    name: str
    url: str
    description: str = ""
    rating: int = Field(..., ge=10, le=100)
    rating_label: RatingLabel
    position: int = Field(..., ge=1)
    previous_rating: Optional[int] = None
    rating_change: int = 0
    first_seen_at: datetime
    last_seen_at: datetime
    is_new: bool = True


class ThreatAssessment(CamelModel):
    level: ThreatLevelName
    score: int = Field(..., ge=10, le=100)
    description: str


class CompetitorSearchResponse(CamelModel):
    """Successful analysis: competitors, threat verdict and the query used."""

    success: bool = True
    competitors: list[CompetitorRecord]
    threat_level: ThreatAssessment
    query: str
    warnings: list[str] = Field(default_factory=list)


class CompetitorSnapshotResponse(CamelModel):
    """Persisted snapshot for a problem, as last written by the analyzer."""

    success: bool = True
    problem_id: str
    competitors: list[CompetitorRecord]
    threat_level: ThreatAssessment


# ===================================================================== #
#  Batch backfill                                                         #
# ===================================================================== #

class BatchSearchRequest(CamelModel):
    problems: list[ProblemContext] = Field(..., min_length=1)

    @field_validator("problems")
    @classmethod
    def problems_have_ids(cls, v: list[ProblemContext]) -> list[ProblemContext]:
        for problem in v:
            if problem.problem_id is None:
                raise ValueError("Every problem in a batch needs a problemId")
        return v


class BatchSearchResponse(CamelModel):
    success: bool = True
    message: str
    total_problems: int
    problems_with_competitors: int
    problems_missing_competitors: int
