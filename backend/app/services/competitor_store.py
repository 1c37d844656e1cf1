"""Competitor snapshot persistence.

The analyzer only needs a narrow capability against the per-problem
competitor collection, keyed by ``(problem_id, url)``:

- ``load_snapshot(problem_id)``  -> every stored record for the problem
- ``upsert(problem_id, record)`` -> replace-or-insert one record
- ``upsert_many(problem_id, records)`` -> one run's writes as a single unit
- ``problem_ids_with_records(ids)`` -> which problems already have a snapshot

No deletes are ever issued.  An update never rewrites ``first_seen_at``, so
applying the same run twice leaves the lifecycle intact.

To add a backend:
1. Subclass ``CompetitorStore``.
2. Wrap backend failures in ``PersistenceError``.
"""

from __future__ import annotations

import abc
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Iterator, Set, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import PersistenceError
from ..models.problem_competitor import ProblemCompetitor
from ..schemas.competitor_schema import CompetitorRecord, RatingLabel

logger = logging.getLogger(__name__)


# ===================================================================== #
#  Abstract interface                                                     #
# ===================================================================== #

class CompetitorStore(abc.ABC):
    """Interface every competitor snapshot backend must implement."""

    @abc.abstractmethod
    def load_snapshot(self, problem_id: str) -> Dict[str, CompetitorRecord]:
        """Return all stored records for *problem_id*, keyed by URL."""

    @abc.abstractmethod
    def upsert_many(self, problem_id: str, records: Iterable[CompetitorRecord]) -> None:
        """Replace-or-insert every record in one logical unit."""

    @abc.abstractmethod
    def problem_ids_with_records(self, problem_ids: Iterable[str]) -> Set[str]:
        """Subset of *problem_ids* that already have at least one record."""

    def upsert(self, problem_id: str, record: CompetitorRecord) -> None:
        self.upsert_many(problem_id, [record])


# ===================================================================== #
#  In-memory store (tests, stateless deployments)                         #
# ===================================================================== #

class InMemoryCompetitorStore(CompetitorStore):
    """Dict-backed store; thread-safe so it can be driven via ``to_thread``."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], CompetitorRecord] = {}
        self._lock = threading.Lock()

    def load_snapshot(self, problem_id: str) -> Dict[str, CompetitorRecord]:
        with self._lock:
            return {
                url: record.model_copy()
                for (pid, url), record in self._records.items()
                if pid == problem_id
            }

    def upsert_many(self, problem_id: str, records: Iterable[CompetitorRecord]) -> None:
        with self._lock:
            staged: Dict[Tuple[str, str], CompetitorRecord] = {}
            for record in records:
                key = (problem_id, record.url)
                existing = self._records.get(key)
                if existing is not None:
                    record = record.model_copy(update={"first_seen_at": existing.first_seen_at})
                staged[key] = record
            self._records.update(staged)

    def problem_ids_with_records(self, problem_ids: Iterable[str]) -> Set[str]:
        wanted = set(problem_ids)
        with self._lock:
            return {pid for pid, _ in self._records if pid in wanted}

    def __len__(self) -> int:
        return len(self._records)


# ===================================================================== #
#  SQLAlchemy store                                                       #
# ===================================================================== #

def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way back; treat naive values as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_record(row: ProblemCompetitor) -> CompetitorRecord:
    return CompetitorRecord(
        name=row.name,
        url=row.url,
        description=row.description or "",
        rating=row.rating,
        rating_label=RatingLabel(row.rating_label),
        position=row.position or 1,
        previous_rating=row.previous_rating,
        rating_change=row.rating_change or 0,
        first_seen_at=_as_utc(row.first_seen_at),
        last_seen_at=_as_utc(row.last_seen_at),
        is_new=row.previous_rating is None,
    )


class SqlAlchemyCompetitorStore(CompetitorStore):
    """Stores snapshots in the ``problem_competitors`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Yield a session; commit on success, roll back and wrap on failure."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Competitor store failure: {exc}") from exc
        finally:
            session.close()

    def load_snapshot(self, problem_id: str) -> Dict[str, CompetitorRecord]:
        with self._session() as db:
            rows = (
                db.query(ProblemCompetitor)
                .filter(ProblemCompetitor.problem_id == problem_id)
                .order_by(ProblemCompetitor.position.asc())
                .all()
            )
            try:
                return {row.url: _row_to_record(row) for row in rows}
            except (ValueError, ValidationError) as exc:
                logger.warning("Unreadable competitor row for problem=%s: %s", problem_id, exc)
                raise PersistenceError(f"Stored competitor snapshot is unreadable: {exc}") from exc

    def upsert_many(self, problem_id: str, records: Iterable[CompetitorRecord]) -> None:
        records = list(records)
        if not records:
            return

        with self._session() as db:
            existing = {
                row.url: row
                for row in db.query(ProblemCompetitor)
                .filter(
                    ProblemCompetitor.problem_id == problem_id,
                    ProblemCompetitor.url.in_([r.url for r in records]),
                )
                .all()
            }

            inserted = updated = 0
            for record in records:
                row = existing.get(record.url)
                if row is None:
                    row = ProblemCompetitor(
                        problem_id=problem_id,
                        url=record.url,
                        first_seen_at=record.first_seen_at,
                    )
                    db.add(row)
                    existing[record.url] = row
                    inserted += 1
                else:
                    updated += 1

                row.name = record.name
                row.description = record.description
                row.rating = record.rating
                row.rating_label = record.rating_label.value
                row.position = record.position
                row.previous_rating = record.previous_rating
                row.rating_change = record.rating_change
                row.last_seen_at = record.last_seen_at

        logger.info(
            "Upserted competitors for problem=%s inserted=%d updated=%d",
            problem_id, inserted, updated,
        )

    def problem_ids_with_records(self, problem_ids: Iterable[str]) -> Set[str]:
        wanted = list(set(problem_ids))
        if not wanted:
            return set()
        with self._session() as db:
            rows = (
                db.query(ProblemCompetitor.problem_id)
                .filter(ProblemCompetitor.problem_id.in_(wanted))
                .distinct()
                .all()
            )
            return {row[0] for row in rows}
