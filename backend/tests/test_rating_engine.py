"""Rating engine tests — position buckets, keyword categories, clamping, labels."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from app.schemas.competitor_schema import Candidate, RatingLabel
from app.services.rating_engine import position_points, rate_competitor, rating_label, score_candidate
from app.services.rule_tables import load_rules

RULES = load_rules()


class TestPositionPoints:
    @pytest.mark.parametrize(
        "position,expected",
        [(1, 30), (3, 30), (4, 20), (6, 20), (7, 10), (8, 10)],
    )
    def test_buckets(self, position, expected):
        assert position_points(position, RULES) == expected


class TestRateCompetitor:
    def test_funding_and_users_at_top(self):
        rating, label = rate_competitor("Acme raises Series B funding", "Trusted by 100,000 users", 1, RULES)
        assert rating == 60
        assert label is RatingLabel.ESTABLISHED

    def test_floor_is_ten(self):
        rating, label = rate_competitor("Acme", "A quiet little product", 8, RULES)
        assert rating == 10
        assert label is RatingLabel.EMERGING

    def test_clamped_to_hundred(self):
        title = "Best leading app: Series C funding, 2 million users"
        snippet = "Free trial, enterprise plans, 5-star review, on the App Store"
        rating, label = rate_competitor(title, snippet, 1, RULES)
        assert rating == 100
        assert label is RatingLabel.MAJOR_PLAYER

    def test_category_counted_once(self):
        once, _ = rate_competitor("Series A", "", 7, RULES)
        many, _ = rate_competitor("Series A funding raised", "more funding raised", 7, RULES)
        assert once == many == 25

    def test_case_insensitive(self):
        lower, _ = rate_competitor("popular pricing", "", 4, RULES)
        upper, _ = rate_competitor("POPULAR PRICING", "", 4, RULES)
        assert lower == upper == 40

    def test_missing_text_scores_position_only(self):
        rating, _ = rate_competitor(None, None, 5, RULES)
        assert rating == 20


class TestRatingLabel:
    @pytest.mark.parametrize(
        "rating,expected",
        [
            (10, RatingLabel.EMERGING),
            (39, RatingLabel.EMERGING),
            (40, RatingLabel.GROWING),
            (59, RatingLabel.GROWING),
            (60, RatingLabel.ESTABLISHED),
            (79, RatingLabel.ESTABLISHED),
            (80, RatingLabel.MAJOR_PLAYER),
            (100, RatingLabel.MAJOR_PLAYER),
        ],
    )
    def test_thresholds(self, rating, expected):
        assert rating_label(rating, RULES) is expected

    def test_wire_value_has_space(self):
        assert RatingLabel.MAJOR_PLAYER.value == "Major Player"


class TestScoreCandidate:
    def test_attaches_name_rating_label(self):
        candidate = Candidate(
            title="Todoist | The to-do list app",
            url="https://todoist.com/",
            snippet="Join 30 million users",
            domain="todoist.com",
            base_domain="todoist.com",
            position=2,
        )
        scored = score_candidate(candidate, RULES)
        assert scored.name == "Todoist"
        # 30 position + magnitude 10 + user_base 15
        assert scored.rating == 55
        assert scored.rating_label is RatingLabel.GROWING
        assert scored.position == 2
        assert scored.url == candidate.url
