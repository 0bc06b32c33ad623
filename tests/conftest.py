# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-api-key")
os.environ.setdefault("LOG_JSON", "false")

from flag_retention.services.clock import Clock  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0)


class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, current: datetime = NOW):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with all tables."""
    from flag_retention import models  # noqa: F401
    from flag_retention.database import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def add_flaggings(session_factory):
    """
    Insert flaggings and return their IDs.

    Usage:
        ids = add_flaggings("bookmark", owner_id="7", age_days=31, count=3)
    """

    def _add(flag_type_id, owner_id="1", age_days=0, count=1, now=NOW):
        from flag_retention.models import Flagging

        db = session_factory()
        try:
            rows = [
                Flagging(
                    flag_type_id=flag_type_id,
                    owner_id=owner_id,
                    entity_type="node",
                    entity_id=str(i),
                    created_at=now - timedelta(days=age_days),
                )
                for i in range(count)
            ]
            db.add_all(rows)
            db.commit()
            return [row.id for row in rows]
        finally:
            db.close()

    return _add


@pytest.fixture
def count_flaggings(session_factory):
    """Count flaggings from a fresh session, optionally of one type."""

    def _count(flag_type_id=None):
        from flag_retention.models import Flagging

        db = session_factory()
        try:
            query = db.query(Flagging)
            if flag_type_id is not None:
                query = query.filter(Flagging.flag_type_id == flag_type_id)
            return query.count()
        finally:
            db.close()

    return _count
