"""
Bikepark Reports - Database Advisory Locks

Cache lifecycle actions that write (create/drop/clear/update/rebuild, index
management) are serialized per cache table with MySQL named locks. The lock
lives on its own pooled connection so the guarded work can commit its own
transactions while the lock is held.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from database.connection import db
from utils.config import CACHE_LOCK_TIMEOUT_SECONDS
from utils.logger import logger

# MySQL limits lock names to 64 characters
MAX_LOCK_NAME_LENGTH = 64


class CacheLockError(Exception):
    """Raised when a named lock cannot be acquired in time."""
    pass


def cache_lock_name(table_name: str) -> str:
    return f"report_cache:{table_name}"[:MAX_LOCK_NAME_LENGTH]


@contextmanager
def advisory_lock(
    name: str,
    timeout_seconds: int = CACHE_LOCK_TIMEOUT_SECONDS,
    engine: Optional[Engine] = None,
) -> Generator[None, None, None]:
    """
    Hold a MySQL named lock (GET_LOCK) for the duration of the block.

    Args:
        name: Lock name, at most 64 characters
        timeout_seconds: Seconds to wait for the lock
        engine: Engine to take the lock connection from (default: global pool)

    Raises:
        CacheLockError: If the lock is held elsewhere after timeout_seconds

    Example:
        >>> with advisory_lock(cache_lock_name("stallingsduur_cache")):
        ...     manager.rebuild(params)
    """
    engine = engine or db.get_engine()
    connection = engine.connect()
    try:
        acquired = connection.execute(
            text("SELECT GET_LOCK(:name, :timeout)"),
            {"name": name, "timeout": timeout_seconds},
        ).scalar()
        if acquired != 1:
            raise CacheLockError(f"Lock {name!r} is held by another session")

        logger.debug("Advisory lock acquired", extra={"lock": name})
        try:
            yield
        finally:
            connection.execute(text("SELECT RELEASE_LOCK(:name)"), {"name": name})
            logger.debug("Advisory lock released", extra={"lock": name})
    finally:
        connection.close()
