"""
Bikepark Reports - Database Connection Management
Provides SQLAlchemy Core connection pooling for MySQL.

The report engine shares the database with the rest of the application, so
every unit of work (one cache clear, one cache update, one report query) gets
its own short-lived connection and transaction from the pool.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine, text
from sqlalchemy.pool import QueuePool
from sqlalchemy.engine import Engine, Connection, CursorResult, URL
from typing import Generator

try:
    from ..utils.config import (
        DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD,
        DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_PRE_PING,
        DB_STATEMENT_TIMEOUT_SECONDS, config
    )
    from ..utils.logger import logger, log_database_error
except ImportError:
    from utils.config import (
        DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD,
        DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_PRE_PING,
        DB_STATEMENT_TIMEOUT_SECONDS, config
    )
    from utils.logger import logger, log_database_error


class DatabaseConnection:
    """
    Manages MySQL database connections with connection pooling.

    Features:
    - Connection pooling (10 connections + 20 overflow)
    - Automatic connection recycling (every hour)
    - Health checks before connection use (pool_pre_ping)
    - Bounded read/write time per SQL call
    """

    def __init__(self):
        self._engine: Engine = None

    def get_engine(self) -> Engine:
        """
        Get or create the SQLAlchemy engine with connection pooling.

        Returns:
            SQLAlchemy Engine instance

        Raises:
            DatabaseConnectionError: If engine creation fails
        """
        if self._engine is None:
            try:
                # URL.create() keeps the password out of logged URLs
                connection_url = URL.create(
                    drivername="mysql+pymysql",
                    username=DB_USER,
                    password=DB_PASSWORD,
                    host=DB_HOST,
                    port=DB_PORT,
                    database=DB_NAME,
                    query={"charset": "utf8mb4"},
                )

                self._engine = create_engine(
                    connection_url,
                    poolclass=QueuePool,
                    pool_size=DB_POOL_SIZE,
                    max_overflow=DB_POOL_MAX_OVERFLOW,
                    pool_recycle=DB_POOL_RECYCLE,
                    pool_pre_ping=DB_POOL_PRE_PING,
                    connect_args={
                        "read_timeout": DB_STATEMENT_TIMEOUT_SECONDS,
                        "write_timeout": DB_STATEMENT_TIMEOUT_SECONDS,
                    },
                    echo=False,
                    hide_parameters=True,
                )

                logger.info("Database connection pool initialized", extra={
                    "host": DB_HOST,
                    "database": DB_NAME,
                    "pool_size": DB_POOL_SIZE,
                    "max_overflow": DB_POOL_MAX_OVERFLOW,
                    "statement_timeout_seconds": DB_STATEMENT_TIMEOUT_SECONDS,
                    "environment": config.environment
                })

            except Exception as e:
                log_database_error(e, "Failed to create database engine")
                raise DatabaseConnectionError(f"Failed to create database engine: {e}")

        return self._engine

    @contextmanager
    def get_connection(self) -> Generator[Connection, None, None]:
        """
        Context manager for one unit of work.

        Commits on normal exit, rolls back and re-raises on error.

        Example:
            >>> with db.get_connection() as conn:
            ...     result = conn.execute(text("SELECT StallingsID FROM fietsenstallingen"))
        """
        engine = self.get_engine()
        connection = engine.connect()
        try:
            yield connection
            connection.commit()
        except Exception as e:
            connection.rollback()
            log_database_error(e, "Transaction failed, rolled back")
            raise
        finally:
            connection.close()

    def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            with self.get_connection() as conn:
                result = conn.execute(text("SELECT 1"))
                result.fetchone()
            logger.info("Database connection test successful")
            return True
        except Exception as e:
            logger.error("Database connection test failed", extra={
                "error": str(e)
            })
            return False

    def close(self):
        """Close all connections in the pool."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed")


class DatabaseConnectionError(Exception):
    """Raised when database connection fails."""
    pass


# Global database connection instance
db = DatabaseConnection()


def get_db_connection():
    """
    Get database connection context manager.

    Example:
        >>> with get_db_connection() as conn:
        ...     result = conn.execute(text("SELECT * FROM bezettingsdata LIMIT 1"))
    """
    return db.get_connection()


def test_database_connection() -> bool:
    """Test database connectivity."""
    return db.test_connection()


def execute_raw_sql(conn: Connection, sql: str) -> CursorResult:
    """
    Execute a fully interpolated SQL string without any bind processing.

    Interpolated report SQL contains '%' (DATE_FORMAT patterns) and may
    contain ':' inside literals, so it must bypass both the driver's
    pyformat substitution and SQLAlchemy's text() bind parsing.
    """
    return conn.execution_options(no_parameters=True).exec_driver_sql(sql)
