"""
Integration test fixtures and configuration.

Provides MySQL database fixtures for integration testing.

Fixture Types:
- mysql_engine: Engine on a dedicated test database (skipped without TEST_DB_*)
- bikepark_schema: Raw and cache tables created for one test, dropped after
- engine_connection_factory / engine_lock_factory: manager wiring on the test engine

Safety Features:
- Blocks running tests against production/dev databases
- Validates required environment variables
"""

import functools
import os
from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine, text

from database.locks import advisory_lock
from database.schema import metadata


# =============================================================================
# Safety Constants
# =============================================================================

# Database names that should NEVER be used for automated tests
PROTECTED_DATABASE_NAMES = [
    'fietsberaad',        # Production
    'fietsberaad_dev',    # Development
    'fietsberaad_prod',   # Production alias
]


# =============================================================================
# Test Database Connection
# =============================================================================

def get_mysql_connection_string() -> str:
    """
    Get MySQL connection string from environment variables.

    Raises:
        ValueError: If required environment variables are not set
    """
    required_vars = ['TEST_DB_HOST', 'TEST_DB_NAME', 'TEST_DB_USER', 'TEST_DB_PASSWORD']
    missing_vars = [var for var in required_vars if os.getenv(var) is None]

    if missing_vars:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing_vars)}. "
            "Set these before running integration tests."
        )

    host = os.getenv('TEST_DB_HOST')
    port = os.getenv('TEST_DB_PORT', '3306')
    database = os.getenv('TEST_DB_NAME')
    user = os.getenv('TEST_DB_USER')
    password = os.getenv('TEST_DB_PASSWORD')

    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"


@pytest.fixture(scope='session')
def mysql_engine():
    """
    Create MySQL engine for integration tests.

    Yields:
        SQLAlchemy engine connected to test database
    """
    # SAFETY CHECK: the cache tests create and drop tables
    db_name = os.getenv('TEST_DB_NAME')
    if db_name in PROTECTED_DATABASE_NAMES:
        pytest.fail(
            f"SAFETY ERROR: TEST_DB_NAME='{db_name}' is a protected database.\n"
            f"Protected databases: {PROTECTED_DATABASE_NAMES}\n"
            f"Use 'fietsberaad_test' or another dedicated test database."
        )

    try:
        connection_string = get_mysql_connection_string()
    except ValueError as e:
        pytest.skip(f"MySQL integration tests skipped: {e}")

    engine = create_engine(connection_string, echo=False)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    yield engine

    engine.dispose()


@pytest.fixture
def bikepark_schema(mysql_engine):
    """Create raw and cache tables for one test and drop them afterwards."""
    metadata.drop_all(mysql_engine)
    metadata.create_all(mysql_engine)

    yield mysql_engine

    metadata.drop_all(mysql_engine)


@pytest.fixture
def engine_connection_factory(bikepark_schema):
    """One committed unit of work per call, like get_db_connection()."""
    @contextmanager
    def factory():
        with bikepark_schema.begin() as conn:
            yield conn

    return factory


@pytest.fixture
def engine_lock_factory(bikepark_schema):
    """Advisory locks taken on the test engine."""
    return functools.partial(advisory_lock, engine=bikepark_schema)
