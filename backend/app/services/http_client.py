"""
Pooled HTTP client for the search provider.

One httpx.AsyncClient is shared by every analysis in the process so
concurrent runs reuse keep-alive connections to SerpAPI.  The FastAPI
lifespan closes it on shutdown.
"""

from typing import Optional

import httpx


# Per-provider read timeouts (in seconds)
PROVIDER_TIMEOUTS = {
    "serpapi": 10.0,
}
CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 10.0

# Provider answers that mean the API key itself was refused
CREDENTIAL_REJECTED_CODES = frozenset({401, 403})

_shared: Optional[httpx.AsyncClient] = None


def get_client() -> httpx.AsyncClient:
    """Return the process-wide client, creating it on first use."""
    global _shared
    if _shared is None or _shared.is_closed:
        _shared = httpx.AsyncClient(
            timeout=httpx.Timeout(DEFAULT_READ_TIMEOUT, connect=CONNECT_TIMEOUT),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            follow_redirects=True,
        )
    return _shared


async def close_client() -> None:
    global _shared
    if _shared is not None:
        await _shared.aclose()
    _shared = None


def get_timeout(provider: str) -> httpx.Timeout:
    """Timeout for one call to *provider* (unknown names get the default)."""
    read = PROVIDER_TIMEOUTS.get(provider.lower(), DEFAULT_READ_TIMEOUT)
    return httpx.Timeout(read, connect=CONNECT_TIMEOUT)


def is_credential_rejected(status_code: int) -> bool:
    return status_code in CREDENTIAL_REJECTED_CODES
