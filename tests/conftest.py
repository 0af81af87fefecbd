"""
Shared fixtures -- an in-memory SQLite warehouse standing in for BigQuery.
"""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from src.db.connection import WarehouseSession

PM25_ROWS = [
    # state, value, date, site, lat, lng
    ("California", 12.0, "2020-09-01", "Fresno", 36.78, -119.77),
    ("California", 30.0, "2020-09-02", "Fresno", 36.78, -119.77),
    ("California", 18.0, "2020-09-01", "Oakland", 37.80, -122.27),
    ("Oregon", 40.0, "2020-09-01", "Portland", 45.52, -122.68),
    ("Oregon", 60.0, "2020-09-02", "Portland", 45.52, -122.68),
    ("Washington", 8.0, "2020-09-01", "Seattle", 47.61, -122.33),
]


@pytest.fixture()
def sqlite_session() -> WarehouseSession:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE pm25_daily ("
            " state TEXT, value REAL, date TEXT, site TEXT, lat REAL, lng REAL)"
        ))
        conn.execute(
            text("INSERT INTO pm25_daily VALUES (:state, :value, :date, :site, :lat, :lng)"),
            [dict(zip(("state", "value", "date", "site", "lat", "lng"), r)) for r in PM25_ROWS],
        )
    session = WarehouseSession(engine=engine, billing_project="test-billing", dataset="test.pm25")
    yield session
    session.dispose()
