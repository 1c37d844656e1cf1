"""Deterministic Query Builder.

Turns a problem's title (or niche, when one is given) into the single text
query sent to the search provider.

Rules
-----
- NO LLM calls
- NO external API calls
- Pure transformation: same input -> same output
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import InvalidInput
from .rule_tables import RuleSet, get_rules

_WHITESPACE = re.compile(r"\s+")


def _clean(value: Optional[str]) -> str:
    """Collapse internal whitespace; empty string if None."""
    return _WHITESPACE.sub(" ", value or "").strip()


def build_search_query(
    title: str,
    niche: Optional[str] = None,
    year: Optional[int] = None,
    rules: Optional[RuleSet] = None,
) -> str:
    """Build the competitor search query for a problem.

    Parameters
    ----------
    title:
        Problem title; must not be blank.
    niche:
        Optional niche; when present it replaces the title as the subject.
    year:
        Year appended to the query.  Defaults to the current UTC year.
    rules:
        Rule set supplying the query template.

    Raises
    ------
    InvalidInput
        If *title* is blank.
    """
    subject_title = _clean(title)
    if not subject_title:
        raise InvalidInput("Problem title is required")

    rules = rules or get_rules()
    subject = _clean(niche) or subject_title
    if year is None:
        year = datetime.now(timezone.utc).year

    return rules.query_template.format(subject=subject, year=year)
