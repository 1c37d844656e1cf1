# Schemas package
from .competitor_schema import (
    BatchSearchRequest,
    BatchSearchResponse,
    Candidate,
    CompetitorRecord,
    CompetitorSearchResponse,
    CompetitorSnapshotResponse,
    ProblemContext,
    RatingLabel,
    RawResult,
    ScoredCandidate,
    ThreatAssessment,
    ThreatLevelName,
)

__all__ = [
    "ProblemContext",
    "RawResult",
    "Candidate",
    "ScoredCandidate",
    "CompetitorRecord",
    "ThreatAssessment",
    "CompetitorSearchResponse",
    "CompetitorSnapshotResponse",
    "BatchSearchRequest",
    "BatchSearchResponse",
    "RatingLabel",
    "ThreatLevelName",
]
