"""Query builder tests — subject selection, year, whitespace, blank title."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timezone

import pytest

from app.exceptions import InvalidInput
from app.services.query_builder import build_search_query


class TestBuildSearchQuery:
    def test_title_with_explicit_year(self):
        assert build_search_query("habit tracking", year=2025) == "best habit tracking apps 2025"

    def test_niche_replaces_title(self):
        query = build_search_query("people forget to drink water", niche="hydration reminder", year=2025)
        assert query == "best hydration reminder apps 2025"

    def test_blank_niche_falls_back_to_title(self):
        assert build_search_query("meal planning", niche="   ", year=2024) == "best meal planning apps 2024"

    def test_whitespace_collapsed(self):
        assert build_search_query("  remote   team\n standups ", year=2025) == "best remote team standups apps 2025"

    def test_defaults_to_current_year(self):
        year = datetime.now(timezone.utc).year
        assert build_search_query("budgeting").endswith(f"apps {year}")

    def test_deterministic(self):
        assert build_search_query("x", year=2025) == build_search_query("x", year=2025)

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title_rejected(self, title):
        with pytest.raises(InvalidInput) as exc_info:
            build_search_query(title, niche="something", year=2025)
        assert exc_info.value.message == "Problem title is required"
        assert exc_info.value.status_code == 400
