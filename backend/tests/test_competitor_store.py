"""Competitor store tests — SQLAlchemy and in-memory backends."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base
from app.exceptions import PersistenceError
from app.models import ProblemCompetitor
from app.schemas.competitor_schema import CompetitorRecord, RatingLabel
from app.services.competitor_store import InMemoryCompetitorStore, SqlAlchemyCompetitorStore

T0 = datetime(2025, 2, 1, 12, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(days=7)


def _record(url, rating=50, position=1, first=T0, last=T0, previous=None):
    return CompetitorRecord(
        name="Acme",
        url=url,
        description="desc",
        rating=rating,
        rating_label=RatingLabel.GROWING if rating < 60 else RatingLabel.ESTABLISHED,
        position=position,
        previous_rating=previous,
        rating_change=0 if previous is None else rating - previous,
        first_seen_at=first,
        last_seen_at=last,
        is_new=previous is None,
    )


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'store.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture(params=["sqlalchemy", "memory"])
def store(request, session_factory):
    if request.param == "sqlalchemy":
        return SqlAlchemyCompetitorStore(session_factory)
    return InMemoryCompetitorStore()


# ===================================================================== #
#  Behaviour shared by both backends                                      #
# ===================================================================== #

class TestStoreContract:
    def test_empty_snapshot(self, store):
        assert store.load_snapshot("p-1") == {}

    def test_round_trip(self, store):
        store.upsert_many("p-1", [_record("https://a.com/"), _record("https://b.com/", position=2)])
        snapshot = store.load_snapshot("p-1")
        assert set(snapshot) == {"https://a.com/", "https://b.com/"}
        assert snapshot["https://a.com/"].first_seen_at == T0
        assert snapshot["https://a.com/"].rating_label is RatingLabel.GROWING

    def test_snapshots_scoped_by_problem(self, store):
        store.upsert("p-1", _record("https://a.com/"))
        store.upsert("p-2", _record("https://a.com/", rating=70))
        assert store.load_snapshot("p-1")["https://a.com/"].rating == 50
        assert store.load_snapshot("p-2")["https://a.com/"].rating == 70

    def test_update_keeps_first_seen(self, store):
        store.upsert("p-1", _record("https://a.com/"))
        store.upsert("p-1", _record("https://a.com/", rating=65, first=T1, last=T1, previous=50))
        stored = store.load_snapshot("p-1")["https://a.com/"]
        assert stored.first_seen_at == T0
        assert stored.last_seen_at == T1
        assert stored.rating == 65
        assert stored.previous_rating == 50
        assert stored.rating_change == 15
        assert stored.is_new is False

    def test_no_deletes(self, store):
        store.upsert_many("p-1", [_record("https://a.com/"), _record("https://b.com/", position=2)])
        store.upsert_many("p-1", [_record("https://a.com/", last=T1)])
        assert set(store.load_snapshot("p-1")) == {"https://a.com/", "https://b.com/"}

    def test_problem_ids_with_records(self, store):
        store.upsert("p-1", _record("https://a.com/"))
        assert store.problem_ids_with_records(["p-1", "p-2"]) == {"p-1"}
        assert store.problem_ids_with_records([]) == set()


# ===================================================================== #
#  SQLAlchemy specifics                                                   #
# ===================================================================== #

class TestSqlAlchemyStore:
    def test_one_row_per_problem_and_url(self, session_factory):
        store = SqlAlchemyCompetitorStore(session_factory)
        store.upsert("p-1", _record("https://a.com/"))
        store.upsert("p-1", _record("https://a.com/", rating=70, last=T1, previous=50))

        db = session_factory()
        try:
            rows = db.query(ProblemCompetitor).filter(ProblemCompetitor.problem_id == "p-1").all()
        finally:
            db.close()
        assert len(rows) == 1
        assert rows[0].rating == 70
        assert rows[0].rating_label == "Established"

    def test_missing_table_raises_persistence_error(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        store = SqlAlchemyCompetitorStore(sessionmaker(bind=engine))
        with pytest.raises(PersistenceError):
            store.load_snapshot("p-1")
        with pytest.raises(PersistenceError):
            store.upsert("p-1", _record("https://a.com/"))
        engine.dispose()

    @pytest.mark.parametrize(
        "label,rating",
        [("MajorPlayer", 90), ("Established", 150)],
    )
    def test_unreadable_row_raises_persistence_error(self, session_factory, label, rating):
        db = session_factory()
        db.add(ProblemCompetitor(
            problem_id="p-bad", url="https://a.com/", name="Acme",
            rating=rating, rating_label=label, position=1,
            first_seen_at=T0, last_seen_at=T0,
        ))
        db.commit()
        db.close()

        store = SqlAlchemyCompetitorStore(session_factory)
        with pytest.raises(PersistenceError):
            store.load_snapshot("p-bad")
        # other problems are unaffected
        assert store.load_snapshot("p-good") == {}

    def test_empty_upsert_is_noop(self, session_factory):
        store = SqlAlchemyCompetitorStore(session_factory)
        store.upsert_many("p-1", [])
        assert store.load_snapshot("p-1") == {}


class TestInMemoryStore:
    def test_len_counts_records(self):
        store = InMemoryCompetitorStore()
        store.upsert_many("p-1", [_record("https://a.com/"), _record("https://b.com/", position=2)])
        store.upsert("p-1", _record("https://a.com/", last=T1))
        assert len(store) == 2
