"""Centralized constants shared across the analyzer services and routes.

Tunable scoring behaviour (denylist, signal vocabulary, keyword weights,
thresholds) does NOT live here: it is versioned data in
``app/rules/competitor_rules.json``.  This module only holds the fixed
operational limits of the pipeline.
"""

from __future__ import annotations

# ── Search provider ─────────────────────────────────────────────────────
# SerpAPI Google engine; region/language pinned for reproducible rankings.
SERPAPI_SEARCH_URL: str = "https://serpapi.com/search.json"
SERPAPI_ENGINE: str = "google"
SEARCH_RESULT_LIMIT: int = 15
SEARCH_REGION: str = "us"
SEARCH_LANGUAGE: str = "en"

# ── Candidate filtering ─────────────────────────────────────────────────
MAX_COMPETITORS: int = 8

# ── Rating bounds ───────────────────────────────────────────────────────
MIN_RATING: int = 10
MAX_RATING: int = 100

# ── Threat score bounds ─────────────────────────────────────────────────
MIN_THREAT_SCORE: int = 10
MAX_THREAT_SCORE: int = 100

# ── Threat assessment ───────────────────────────────────────────────────
# Used when the caller does not supply an opportunity score.
DEFAULT_OPPORTUNITY_SCORE: int = 50
EMPTY_THREAT_SCORE: int = 20
EMPTY_THREAT_DESCRIPTION: str = "no significant competitors found"

# ── Batch backfill ──────────────────────────────────────────────────────
# Seconds to wait between provider calls (SerpAPI rate limits).
DEFAULT_BATCH_DELAY_SECONDS: float = 5.0

# ── Persistence ─────────────────────────────────────────────────────────
DEFAULT_DATABASE_URL: str = "sqlite:///./competitors.db"
