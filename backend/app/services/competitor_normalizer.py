"""Competitor display-name derivation.

Rules:
  - Default: the organisation label of the base domain, first letter
    capitalised (``notion.so`` -> ``Notion``)
  - Generic / listing hosts (app stores, Google Sites, ...) say nothing about
    the organisation, so the first segment of the page title is used instead
  - Title segments are cut at ``-``, ``|``, ``:`` and capped at 30 chars
"""

from __future__ import annotations

import re
from typing import Optional

from .rule_tables import RuleSet, get_rules

_TITLE_SEPARATORS = re.compile(r"\s*[\-\|:–—]\s*")
_PARENTHETICAL = re.compile(r"\s*\(.*?\)\s*")
_MAX_TITLE_NAME = 30


def _is_generic_host(domain: str, rules: RuleSet) -> bool:
    return any(domain == host or domain.endswith(f".{host}") for host in rules.generic_hosts)


def name_from_title(title: str) -> str:
    """First title segment, parentheticals removed, capped at 30 chars."""
    first = _TITLE_SEPARATORS.split((title or "").strip(), maxsplit=1)[0]
    first = _PARENTHETICAL.sub(" ", first).strip()
    return first[:_MAX_TITLE_NAME].strip()


def name_from_domain(base_domain: str) -> str:
    label = (base_domain or "").split(".")[0]
    return label[:1].upper() + label[1:]


def derive_competitor_name(
    title: str,
    domain: str,
    base_domain: str,
    rules: Optional[RuleSet] = None,
) -> str:
    """Best-effort organisation name for a filtered candidate."""
    rules = rules or get_rules()
    if _is_generic_host(domain, rules):
        from_title = name_from_title(title)
        if from_title:
            return from_title
    return name_from_domain(base_domain) or name_from_title(title) or "Unknown"
