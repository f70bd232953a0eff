"""Shared fixtures: in-memory database, API client and position factories."""

import os

# Settings are cached on first import, so the test database must be set first
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENV", "test")

import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from growguard.api.main import app
from growguard.models.base import build_engine, get_db, init_db


NOW = datetime(2024, 6, 1, 10, 0, 0)


@pytest.fixture
def now():
    """Fixed reference time for scoring."""
    return NOW


@pytest.fixture
def make_position():
    """
    Factory for in-memory position objects.

    Defaults describe a calm holding: priced at cost, no thresholds,
    small weight, medium tag, held 100 days.
    """
    def _make(**overrides):
        values = dict(
            id=str(uuid.uuid4()),
            portfolio_id="p-1",
            stock_code="000001",
            stock_name="测试股票",
            sector="新能源",
            quantity=100,
            avg_cost=100.0,
            current_price=100.0,
            stop_loss=None,
            take_profit=None,
            weight=0.05,
            risk_level="medium",
            last_update=NOW - timedelta(days=100),
            created_at=NOW - timedelta(days=100),
            unrealized_pnl=None,
        )
        values.update(overrides)
        return SimpleNamespace(**values)

    return _make


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    test_engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """API client bound to the test database."""
    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()
