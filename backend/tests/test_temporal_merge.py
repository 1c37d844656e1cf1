"""Temporal merge tests — new vs returning competitors, lifecycle timestamps."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta, timezone

from app.schemas.competitor_schema import CompetitorRecord, RatingLabel, ScoredCandidate
from app.services.temporal_merge import merge_candidate, merge_with_snapshot

FIRST_RUN = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)
NOW = FIRST_RUN + timedelta(days=30)


def _scored(url, rating, position=1, label=RatingLabel.GROWING):
    return ScoredCandidate(
        title="Acme app",
        url=url,
        snippet="Acme helps teams ship",
        domain="acme.io",
        base_domain="acme.io",
        position=position,
        name="Acme",
        rating=rating,
        rating_label=label,
    )


def _stored(url, rating):
    return CompetitorRecord(
        name="Acme",
        url=url,
        description="old description",
        rating=rating,
        rating_label=RatingLabel.GROWING,
        position=3,
        first_seen_at=FIRST_RUN,
        last_seen_at=FIRST_RUN,
    )


class TestMergeCandidate:
    def test_new_competitor(self):
        record = merge_candidate(_scored("https://acme.io/", 45), None, NOW)
        assert record.is_new is True
        assert record.previous_rating is None
        assert record.rating_change == 0
        assert record.first_seen_at == record.last_seen_at == NOW
        assert record.description == "Acme helps teams ship"

    def test_returning_competitor(self):
        previous = _stored("https://acme.io/", 45)
        record = merge_candidate(_scored("https://acme.io/", 60, label=RatingLabel.ESTABLISHED), previous, NOW)
        assert record.is_new is False
        assert record.previous_rating == 45
        assert record.rating_change == 15
        assert record.first_seen_at == FIRST_RUN
        assert record.last_seen_at == NOW
        assert record.rating_label is RatingLabel.ESTABLISHED

    def test_rating_drop_is_negative(self):
        record = merge_candidate(_scored("https://acme.io/", 30), _stored("https://acme.io/", 55), NOW)
        assert record.rating_change == -25

    def test_unchanged_rating(self):
        record = merge_candidate(_scored("https://acme.io/", 45), _stored("https://acme.io/", 45), NOW)
        assert record.rating_change == 0
        assert record.is_new is False


class TestMergeWithSnapshot:
    def test_matches_by_exact_url_only(self):
        snapshot = {"https://acme.io/": _stored("https://acme.io/", 40)}
        merged = merge_with_snapshot(
            [_scored("https://acme.io/", 50), _scored("https://acme.io/pricing", 50, position=2)],
            snapshot,
            NOW,
        )
        assert [r.is_new for r in merged] == [False, True]

    def test_empty_snapshot_marks_all_new(self):
        merged = merge_with_snapshot([_scored(f"https://c{i}.com/", 40, i) for i in range(1, 4)], {}, NOW)
        assert all(r.is_new and r.previous_rating is None for r in merged)
        assert [r.position for r in merged] == [1, 2, 3]

    def test_snapshot_not_mutated(self):
        previous = _stored("https://acme.io/", 40)
        snapshot = {previous.url: previous}
        merge_with_snapshot([_scored("https://acme.io/", 70)], snapshot, NOW)
        assert snapshot["https://acme.io/"].rating == 40
        assert snapshot["https://acme.io/"].last_seen_at == FIRST_RUN

    def test_absent_entries_not_returned(self):
        snapshot = {"https://gone.com/": _stored("https://gone.com/", 40)}
        merged = merge_with_snapshot([_scored("https://acme.io/", 50)], snapshot, NOW)
        assert [r.url for r in merged] == ["https://acme.io/"]

    def test_record_serialises_camel_case(self):
        record = merge_candidate(_scored("https://acme.io/", 45), None, NOW)
        payload = record.model_dump(by_alias=True, mode="json")
        assert {"ratingLabel", "previousRating", "ratingChange", "firstSeenAt", "lastSeenAt", "isNew"} <= set(payload)
        assert payload["ratingLabel"] == "Growing"
