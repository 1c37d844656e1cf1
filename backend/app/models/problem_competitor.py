import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.types import TypeDecorator, CHAR

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses CHAR(36) to store UUIDs as strings, compatible with all backends
    including SQLite.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


class ProblemCompetitor(Base):
    """One competitor observed for one problem.

    Identity within a problem is the URL; rows are inserted on first
    observation and only ever updated afterwards.
    """

    __tablename__ = "problem_competitors"
    __table_args__ = (
        UniqueConstraint("problem_id", "url", name="uq_problem_competitors_problem_url"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    problem_id = Column(String(255), nullable=False, index=True)
    url = Column(String(2048), nullable=False)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    rating = Column(Integer, nullable=False)
    rating_label = Column(String(32), nullable=False)
    position = Column(Integer, nullable=True)

    # Rating history: previous run's rating and the delta to this run
    previous_rating = Column(Integer, nullable=True)
    rating_change = Column(Integer, nullable=True, default=0)

    # Lifecycle: first_seen_at is written on insert only
    first_seen_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_seen_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
