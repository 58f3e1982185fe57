"""
Bikepark Reports - pytest Configuration and Fixtures

Provides shared test fixtures for:
- Report request samples
- Fake connection factories (no database needed)
- A clean in-process report cache per test

Note: Database connection fixtures are in tests/integration/conftest.py
"""

import pytest
from contextlib import contextmanager
from datetime import datetime
from unittest.mock import MagicMock

from models.report import ReportParams
from utils.cache import reset_query_cache


@pytest.fixture(autouse=True)
def clean_query_cache():
    """Every test starts with an empty report result cache."""
    reset_query_cache()
    yield
    reset_query_cache()


@pytest.fixture
def mock_connection():
    """A stand-in SQLAlchemy connection."""
    return MagicMock(name="connection")


@pytest.fixture
def connection_factory(mock_connection):
    """
    Factory returning a context manager that yields mock_connection.

    Matches the get_db_connection() calling convention.
    """
    @contextmanager
    def factory():
        yield mock_connection

    return factory


@pytest.fixture
def absolute_occupancy_params():
    """Two facilities, one day, per hour."""
    return ReportParams(
        report_type="absolute_bezetting",
        report_grouping="per_hour",
        bikepark_ids=["A", "B"],
        start_dt=datetime(2024, 1, 1),
        end_dt=datetime(2024, 1, 2),
        day_begins_at_minutes=0,
    )


@pytest.fixture
def transactions_params():
    return ReportParams(
        report_type="transacties_voltooid",
        report_grouping="per_month",
        bikepark_ids=["A"],
        start_dt=datetime(2024, 1, 1),
        end_dt=datetime(2024, 3, 31, 23, 59, 59),
    )
