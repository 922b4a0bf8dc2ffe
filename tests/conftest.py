"""Shared pytest fixtures for propsettle tests."""
import os
import sys
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read at import time; pin the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

# Fixed clock for settlement tests: 2025-10-20 15:00 UTC
NOW = datetime(2025, 10, 20, 15, 0, 0)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from propsettle.models import Base

    # StaticPool keeps one connection so TestClient worker threads see the same data
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def now() -> datetime:
    return NOW


# =============================================================================
# MODEL FACTORIES
# =============================================================================

@pytest.fixture
def make_game(db_session: Session):
    """
    Factory for Game rows.

    Defaults to a final NHL game played two days before NOW.
    """
    from propsettle.models import Game

    def _make(**kwargs) -> Game:
        values = {
            "id": str(uuid.uuid4()),
            "sport": "nhl",
            "espn_game_id": None,
            "mlb_game_id": None,
            "odds_api_event_id": None,
            "game_date": NOW - timedelta(days=2),
            "home_team": "TOR",
            "away_team": "BOS",
            "status": "final",
        }
        values.update(kwargs)
        game = Game(**values)
        db_session.add(game)
        db_session.commit()
        return game

    return _make


@pytest.fixture
def make_prediction(db_session: Session):
    """
    Factory for Prediction rows.

    ``created_at`` defaults to increasing timestamps so insertion order is
    also settlement order.
    """
    from propsettle.models import Prediction

    counter = {"n": 0}

    def _make(**kwargs) -> Prediction:
        counter["n"] += 1
        values = {
            "id": str(uuid.uuid4()),
            "game_id_ref": "401559500",
            "sport": "nhl",
            "player_name": "Auston Matthews",
            "prop_type": "goals",
            "threshold": 0.5,
            "prediction": "over",
            "status": "pending",
            "created_at": NOW - timedelta(days=3) + timedelta(seconds=counter["n"]),
        }
        values.update(kwargs)
        prediction = Prediction(**values)
        db_session.add(prediction)
        db_session.commit()
        return prediction

    return _make


@pytest.fixture
def make_parlay(db_session: Session):
    """
    Factory for a Parlay with its legs.

    Each leg is a dict of ParlayLeg fields; ``leg_order`` is filled in from
    position when omitted.
    """
    from propsettle.models import Parlay, ParlayLeg

    def _make(legs, **kwargs) -> Parlay:
        parlay = Parlay(
            id=kwargs.pop("id", str(uuid.uuid4())),
            sport=kwargs.pop("sport", "nhl"),
            status=kwargs.pop("status", "pending"),
            total_legs=len(legs),
            **kwargs,
        )
        db_session.add(parlay)
        db_session.flush()
        for index, leg in enumerate(legs, start=1):
            leg_values = {"id": str(uuid.uuid4()), "parlay_id": parlay.id, "leg_order": index}
            leg_values.update(leg)
            db_session.add(ParlayLeg(**leg_values))
        db_session.commit()
        return parlay

    return _make


@pytest.fixture
def stat_adapter():
    """A Mock stat adapter; set ``return_value`` or ``side_effect`` on get_stat."""
    adapter = Mock()
    adapter.get_stat.return_value = None
    return adapter


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture(scope="function")
def test_client(db_session):
    """
    Create FastAPI TestClient with a fresh database for each test.

    Note: We don't use context manager (with TestClient) because that would
    run the lifespan and start the scheduler.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/v1/validation/check")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from propsettle.main import app
    from propsettle.core.database import get_db

    test_db_session = db_session

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
