"""Result Fetcher.

Issues ONE organic web search against SerpAPI (Google engine) and returns the
results in provider order.

Rules
-----
- Exactly one outbound request per call
- NO retries (callers may wrap this with their own policy)
- NO filtering / scoring: order and content are passed through untouched
- Idempotent and side-effect free beyond the HTTP call
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from ..constants import (
    SEARCH_LANGUAGE,
    SEARCH_REGION,
    SEARCH_RESULT_LIMIT,
    SERPAPI_ENGINE,
    SERPAPI_SEARCH_URL,
)
from ..exceptions import ConfigurationError, UpstreamError
from ..schemas.competitor_schema import RawResult
from .http_client import get_client, get_timeout, is_credential_rejected

logger = logging.getLogger(__name__)

# SerpAPI answers 200 with this error text when Google simply had no hits.
_NO_RESULTS_MARKER = "hasn't returned any results"


# ===================================================================== #
#  Internal helpers                                                       #
# ===================================================================== #

def _get_serpapi_key() -> str:
    """Read the SerpAPI key from the environment."""
    key = os.getenv("SERPAPI_KEY", "").strip()
    if not key:
        print("❌ [SERP] API key missing (SERPAPI_KEY), cannot search competitors")
        logger.error("SERPAPI_KEY not configured")
        raise ConfigurationError("SERP API not configured")
    return key


def _parse_organic_results(items: List[Dict[str, Any]], max_results: int) -> List[RawResult]:
    """Map SerpAPI ``organic_results`` items to :class:`RawResult`, keeping order."""
    results: List[RawResult] = []
    for rank, item in enumerate(items[:max_results], start=1):
        if not isinstance(item, dict):
            continue
        results.append(
            RawResult(
                title=str(item.get("title") or ""),
                url=str(item.get("link") or ""),
                snippet=str(item.get("snippet") or ""),
                rank_position=rank,
            )
        )
    return results


# ===================================================================== #
#  Public API                                                             #
# ===================================================================== #

async def fetch_search_results(
    query: str,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    max_results: int = SEARCH_RESULT_LIMIT,
) -> List[RawResult]:
    """Run one SerpAPI search and return the ordered organic results.

    Parameters
    ----------
    query:
        Plain-text search query (see ``query_builder``).
    api_key:
        SerpAPI credential.  Read from ``SERPAPI_KEY`` when omitted.
    client:
        Optional ``httpx.AsyncClient``; the shared pooled client is used
        otherwise.
    max_results:
        Result-count cap requested from the provider.

    Raises
    ------
    ConfigurationError
        Credential missing, or rejected by the provider (HTTP 401/403).
    UpstreamError
        Any other non-2xx response, transport failure, or unreadable body.
    """
    key = (api_key or "").strip() or _get_serpapi_key()
    params: Dict[str, Any] = {
        "engine": SERPAPI_ENGINE,
        "q": query,
        "api_key": key,
        "num": max_results,
        "gl": SEARCH_REGION,
        "hl": SEARCH_LANGUAGE,
    }
    http = client or get_client()

    print(f"🔎 [SERP] Searching competitors: {query!r}")

    try:
        response = await http.get(
            SERPAPI_SEARCH_URL,
            params=params,
            timeout=get_timeout("serpapi"),
        )
    except httpx.TimeoutException as exc:
        logger.warning("SerpAPI timeout for query=%r", query)
        raise UpstreamError("Search provider timed out") from exc
    except httpx.HTTPError as exc:
        logger.warning("SerpAPI transport error for query=%r: %s", query, exc)
        raise UpstreamError(f"Search provider request failed: {exc}") from exc

    status_code = response.status_code
    print(f"📦 [SERP] HTTP {status_code} for query={query!r}")

    if is_credential_rejected(status_code):
        logger.error("SerpAPI rejected the configured credential (HTTP %d)", status_code)
        raise ConfigurationError(f"SERP API credential rejected (HTTP {status_code})")

    if not response.is_success:
        logger.error("SerpAPI error %d: %s", status_code, response.text[:300])
        raise UpstreamError("Failed to fetch competitor data", upstream_status=status_code)

    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamError("Search provider returned an unreadable body", upstream_status=status_code) from exc
    if not isinstance(data, dict):
        raise UpstreamError("Search provider returned an unreadable body", upstream_status=status_code)

    organic = data.get("organic_results") or []
    if not isinstance(organic, list):
        raise UpstreamError("Search provider returned malformed organic results", upstream_status=status_code)
    error_text = data.get("error")
    if not organic and error_text:
        if _NO_RESULTS_MARKER in str(error_text).lower():
            print(f"📄 [SERP] No results for query={query!r}")
            return []
        raise UpstreamError(f"Search provider error: {error_text}", upstream_status=status_code)

    results = _parse_organic_results(organic, max_results)
    print(f"📄 [SERP] Organic results: {len(results)} for query={query!r}")
    return results
