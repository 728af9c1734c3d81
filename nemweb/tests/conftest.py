"""Pytest configuration for app integration tests

WHAT: Shared fixtures for the unit database, a fake InfluxDB query API and the
      FastAPI test client
REFERENCES:
    - nemweb/main.py: create_app
    - nemweb/state.py: AppContext
    - nemweb/models.py: units table
"""

import pytest
from datetime import datetime, timezone
from typing import Generator, List, Optional
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from influxdb_client.client.flux_table import FluxRecord, FluxTable
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from nemweb import models
from nemweb.deps import Settings
from nemweb.state import AppContext


TEST_BUCKET = "test_bucket"

UNITS = [
    # duid, station_name, region_id, fuel_source, technology_type, max_capacity
    ("BW01", "Bayswater Power Station", "NSW1", "Coal", "Steam Sub-Critical", 685),
    ("ER01", "Eraring Power Station", "NSW1", "Coal", "Steam Sub-Critical", 720),
    ("TALWA1", "Tallawarra Power Station", "NSW1", "Gas", "Combined Cycle", 440),
    ("LOYYB1", "Loy Yang B Power Station", "VIC1", "Coal", "Steam Sub-Critical", 580),
    ("MACARTH1", "Macarthur Wind Farm", "VIC1", "Wind", "Wind - Onshore", 420),
]


def flux_table(rows: List[dict]) -> FluxTable:
    """FluxTable whose records carry `rows` as their values."""
    table = FluxTable()
    for row in rows:
        table.records.append(FluxRecord(table=0, values=dict(row)))
    return table


def ts(hour: int) -> datetime:
    return datetime(2024, 1, 1, hour, 0, tzinfo=timezone.utc)


class FakeQueryApi:
    """Records Flux scripts and returns canned tables (or raises `error`)."""

    def __init__(self, tables: Optional[List[FluxTable]] = None, error: Optional[Exception] = None):
        self.tables = tables or []
        self.error = error
        self.queries: List[str] = []

    def query(self, query: str):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.tables


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """In-memory SQLite engine shared by every connection of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    for duid, station, region, fuel, tech, capacity in UNITS:
        session.add(
            models.Unit(
                duid=duid,
                station_name=station,
                region_id=region,
                fuel_source=fuel,
                technology_type=tech,
                max_capacity=capacity,
            )
        )
    session.commit()
    session.close()

    yield engine

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = SessionLocal()
    yield session
    session.close()


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def fake_query_api() -> FakeQueryApi:
    return FakeQueryApi()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        SQLITE_PATH=":memory:",
        INFLUX_BUCKET=TEST_BUCKET,
        LOG_LEVEL="debug",
        TESTING=True,
    )


@pytest.fixture
def app_context(test_settings, test_db_engine, fake_query_api) -> AppContext:
    influx = MagicMock()
    influx.query_api.return_value = fake_query_api
    return AppContext(
        settings=test_settings,
        engine=test_db_engine,
        session_factory=sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine),
        influx=influx,
    )


@pytest.fixture
def app(test_settings, app_context):
    from nemweb.main import create_app

    return create_app(settings=test_settings, context=app_context)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
