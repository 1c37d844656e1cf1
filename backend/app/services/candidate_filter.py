"""Candidate Filter.

Reduces the provider's ranked results to at most ``MAX_COMPETITORS``
plausible product pages, one per organisation.

Pipeline (per raw result, in provider order):
  1. Parse the URL; unparsable -> skip
  2. Derive ``domain`` (host, lowercase, no ``www.``) and ``base_domain``
     (last two labels)
  3. Denylisted domain (news, social, Q&A, reference, jobs, aggregators,
     government/education/non-profit TLDs) -> skip
  4. Base domain already accepted -> skip (first-seen-wins)
  5. No app-signal token in title + snippet + URL -> skip
  6. Stop accepting once the cap is reached

The dedup step depends on earlier acceptances, so the whole pass is a fold
over the ordered results with an explicit accumulator (:class:`FilterState`).
"""

from __future__ import annotations

import functools
import logging
from typing import Iterable, List, NamedTuple, Optional, Tuple
from urllib.parse import urlparse

from ..constants import MAX_COMPETITORS
from ..schemas.competitor_schema import Candidate, RawResult
from .rule_tables import RuleSet, get_rules

logger = logging.getLogger(__name__)


class FilterState(NamedTuple):
    """Accumulator threaded through the fold."""

    accepted: Tuple[Candidate, ...] = ()
    seen_base_domains: frozenset = frozenset()
    rejected: Tuple[Tuple[str, str], ...] = ()  # (url or title, reason)


# ===================================================================== #
#  Domain helpers                                                         #
# ===================================================================== #

def parse_domains(url: str) -> Optional[Tuple[str, str]]:
    """Return ``(domain, base_domain)`` for *url*, or None if unparsable.

    >>> parse_domains("https://www.app.notion.so/pricing")
    ('app.notion.so', 'notion.so')
    """
    try:
        parsed = urlparse((url or "").strip())
        host = (parsed.hostname or "").lower().rstrip(".")
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https") or "." not in host:
        return None

    domain = host[4:] if host.startswith("www.") else host
    labels = [label for label in domain.split(".") if label]
    if len(labels) < 2:
        return None
    return domain, ".".join(labels[-2:])


def is_denied_domain(domain: str, rules: RuleSet) -> bool:
    """True if *domain* belongs to a non-product site category."""
    if any(entry in domain for entry in rules.denied_domain_keywords):
        return True
    return any(
        domain.endswith(tld) or f"{tld}." in domain or domain == tld.lstrip(".")
        for tld in rules.denied_tlds
    )


def has_app_signal(title: str, snippet: str, url: str, rules: RuleSet) -> bool:
    """Keyword test: does the result look like a product page at all?"""
    text = f"{title} {snippet} {url}".lower()
    return any(signal in text for signal in rules.app_signals)


# ===================================================================== #
#  Fold step                                                              #
# ===================================================================== #

def _step(state: FilterState, raw: RawResult, rules: RuleSet, limit: int) -> FilterState:
    """Consume one raw result and return the next accumulator."""
    if len(state.accepted) >= limit:
        return state

    def reject(reason: str) -> FilterState:
        return state._replace(rejected=state.rejected + ((raw.url or raw.title, reason),))

    domains = parse_domains(raw.url)
    if domains is None:
        return reject("unparsable url")
    domain, base_domain = domains

    if is_denied_domain(domain, rules):
        return reject("denylisted domain")

    if base_domain in state.seen_base_domains:
        return reject("duplicate organisation")

    if not has_app_signal(raw.title, raw.snippet, raw.url, rules):
        return reject("no product signal")

    candidate = Candidate(
        title=raw.title.strip(),
        url=raw.url.strip(),
        snippet=raw.snippet.strip(),
        domain=domain,
        base_domain=base_domain,
        position=len(state.accepted) + 1,
    )
    return FilterState(
        accepted=state.accepted + (candidate,),
        seen_base_domains=state.seen_base_domains | {base_domain},
        rejected=state.rejected,
    )


# ===================================================================== #
#  Public API                                                             #
# ===================================================================== #

def filter_candidates(
    raw_results: Iterable[RawResult],
    rules: Optional[RuleSet] = None,
    limit: int = MAX_COMPETITORS,
) -> List[Candidate]:
    """Filter and dedupe raw results; positions are renumbered 1..k.

    The output preserves provider order and never holds two candidates with
    the same base domain.  An empty list is a valid result.
    """
    rules = rules or get_rules()
    final = functools.reduce(
        lambda state, raw: _step(state, raw, rules, limit),
        raw_results,
        FilterState(),
    )

    if final.rejected:
        print(f"🚫 [COMP] Filtered out {len(final.rejected)} results:")
        for label, reason in final.rejected[:10]:
            print(f"   • {label} [{reason}]")
    logger.info("Candidate filter accepted %d results", len(final.accepted))

    return list(final.accepted)
