"""
Bikepark Reports - Cache Lifecycle Managers
Owns the three report cache tables and runs lifecycle actions against them.

State per table: missing / available.

    status               read-only
    createtable          missing -> available (no-op when available)
    droptable            available -> missing (no-op when missing)
    clear                delete rows in window x selection
    update               delete window x selection, then re-aggregate it
    rebuild              clear, then update; each its own transaction
    createparentindices  create the supporting raw-table index
    dropparentindices    drop it again (before very large updates)

Windows are widened to whole buckets (days, or hours for occupancy) before
rows are deleted or aggregated.

Every action returns a CacheResult. SQL errors are logged and returned as
database_error; only unexpected exceptions propagate. Mutating actions hold a
per-table advisory lock and invalidate the in-process report result cache.
"""

import time
from typing import Callable, ContextManager, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from database.connection import get_db_connection
from database.locks import CacheLockError, advisory_lock, cache_lock_name
from database.repositories.cache_table_repository import (
    CacheTableDefinition,
    CacheTableRepository,
    DURATION_CACHE,
    OCCUPANCY_CACHE,
    TRANSACTIONS_CACHE,
)
from models.cache import (
    CacheAction,
    CacheErrorCode,
    CacheParams,
    CacheParamsError,
    CacheResult,
    CacheStatus,
    TableState,
)
from utils.cache import get_query_cache
from utils.config import CACHE_LOCK_TIMEOUT_SECONDS, DAY_BEGINS_AT_MINUTES
from utils.logger import (
    logger,
    log_cache_action_start,
    log_cache_action_complete,
    log_cache_action_error,
)


def _fmt(value) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M") if hasattr(value, "hour") else value.isoformat()


class CacheManager:
    """
    Lifecycle manager for one cache table.

    Subclasses only pick the CacheTableDefinition and the API name.

    Args:
        connection_factory: Returns a context manager yielding a connection
            that commits on exit (one unit of work per call)
        lock_factory: Returns a context manager holding a named lock
        offset_minutes: "Day begins at" offset baked into cache buckets
    """

    name: str = None
    definition: CacheTableDefinition = None

    def __init__(
        self,
        connection_factory: Callable[[], ContextManager] = get_db_connection,
        lock_factory: Callable[..., ContextManager] = advisory_lock,
        offset_minutes: int = DAY_BEGINS_AT_MINUTES,
    ):
        self.connection_factory = connection_factory
        self.lock_factory = lock_factory
        self.offset_minutes = offset_minutes
        self._handlers: Dict[CacheAction, Callable[[CacheParams], str]] = {
            CacheAction.CREATE_TABLE: self.create_table,
            CacheAction.DROP_TABLE: self.drop_table,
            CacheAction.CLEAR: self.clear,
            CacheAction.UPDATE: self.update,
            CacheAction.REBUILD: self.rebuild,
            CacheAction.CREATE_PARENT_INDICES: self.create_parent_indices,
            CacheAction.DROP_PARENT_INDICES: self.drop_parent_indices,
        }

    @property
    def table_name(self) -> str:
        return self.definition.name

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def manage(self, params: CacheParams) -> CacheResult:
        """
        Run one lifecycle action.

        Args:
            params: Action, window and selection

        Returns:
            CacheResult with the post-action CacheStatus on success
        """
        try:
            action = CacheAction(params.action)
        except ValueError:
            return CacheResult.failure(CacheErrorCode.INVALID_ACTION, f"Unknown action: {params.action!r}")

        if not action.is_mutating:
            try:
                return CacheResult.ok(self.get_status())
            except SQLAlchemyError as e:
                log_cache_action_error(e, self.name, action.value)
                return CacheResult.failure(
                    CacheErrorCode.DATABASE_ERROR, f"Unable to read {self.table_name} status: {e}"
                )

        try:
            params.validate()
        except CacheParamsError as e:
            logger.warning("Rejected cache action", extra={
                "cache": self.name, "action": action.value, "reason": str(e)
            })
            return CacheResult.failure(CacheErrorCode.INVALID_PARAMS, str(e))

        window = params.describe_window() if action.needs_window else None
        log_cache_action_start(self.name, action.value, window)
        started = time.time()

        try:
            with self.lock_factory(cache_lock_name(self.table_name), CACHE_LOCK_TIMEOUT_SECONDS):
                message = self._handlers[action](params)
        except CacheLockError as e:
            logger.warning("Cache action skipped, table is locked", extra={
                "cache": self.name, "action": action.value
            })
            return CacheResult.failure(CacheErrorCode.LOCKED, str(e))
        except SQLAlchemyError as e:
            log_cache_action_error(e, self.name, action.value)
            return CacheResult.failure(
                CacheErrorCode.DATABASE_ERROR,
                f"{action.value} on {self.table_name} failed; cache state for {window or 'the table'} "
                f"is indeterminate: {e}",
                status=self._status_or_none(),
            )

        get_query_cache().invalidate()

        try:
            status = self.get_status()
        except SQLAlchemyError as e:
            log_cache_action_error(e, self.name, CacheAction.STATUS.value)
            return CacheResult.failure(
                CacheErrorCode.DATABASE_ERROR, f"{message}, but reading status failed: {e}"
            )

        log_cache_action_complete(self.name, action.value, round(time.time() - started, 3), status.size)
        return CacheResult.ok(status, message)

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> CacheStatus:
        """
        Inspect the cache table and its raw source.

        Raises:
            SQLAlchemyError: If the database cannot be queried
        """
        with self.connection_factory() as conn:
            repo = CacheTableRepository(conn, self.definition)
            source = repo.get_source_stats()
            indexstatus = TableState.AVAILABLE if repo.parent_index_exists() else TableState.MISSING

            status = CacheStatus(
                status=TableState.MISSING,
                indexstatus=indexstatus,
                original_size=source["size"],
                original_first_update=source["first_update"],
                original_last_update=source["last_update"],
            )

            if repo.table_exists():
                stats = repo.get_cache_stats()
                status.status = TableState.AVAILABLE
                status.size = stats["size"]
                status.first_update = stats["first_update"]
                status.last_update = stats["last_update"]

        status.summary = self._summarize(status)
        return status

    def _status_or_none(self) -> Optional[CacheStatus]:
        try:
            return self.get_status()
        except SQLAlchemyError:
            logger.warning("Unable to read cache status after failure", extra={"cache": self.name})
            return None

    def _summarize(self, status: CacheStatus) -> str:
        source = (
            f"{self.definition.source_table}: {status.original_size} rows "
            f"({_fmt(status.original_first_update)} - {_fmt(status.original_last_update)})"
        )
        if not status.is_available:
            return f"{self.table_name} is missing; {source}"
        return (
            f"{self.table_name}: {status.size} rows "
            f"({_fmt(status.first_update)} - {_fmt(status.last_update)}); {source}; "
            f"parent index {status.indexstatus.value}"
        )

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def create_table(self, params: CacheParams) -> str:
        with self.connection_factory() as conn:
            CacheTableRepository(conn, self.definition).create_table()
        return f"{self.table_name} created"

    def drop_table(self, params: CacheParams) -> str:
        with self.connection_factory() as conn:
            CacheTableRepository(conn, self.definition).drop_table()
        return f"{self.table_name} dropped"

    def clear(self, params: CacheParams) -> str:
        start, end, facility_ids = self._scope(params)
        with self.connection_factory() as conn:
            deleted = CacheTableRepository(conn, self.definition).delete_window(start, end, facility_ids)
        return f"{deleted} rows cleared from {self.table_name}"

    def update(self, params: CacheParams) -> str:
        """Replace the window's rows with a fresh aggregation, in one transaction."""
        start, end, facility_ids = self._scope(params)
        with self.connection_factory() as conn:
            repo = CacheTableRepository(conn, self.definition)
            deleted = repo.delete_window(start, end, facility_ids)
            inserted = repo.insert_window(start, end, facility_ids, self.offset_minutes)
        return f"{inserted} rows written to {self.table_name} ({deleted} replaced)"

    def rebuild(self, params: CacheParams) -> str:
        cleared = self.clear(params.with_action(CacheAction.CLEAR))
        updated = self.update(params.with_action(CacheAction.UPDATE))
        return f"{cleared}; {updated}"

    def create_parent_indices(self, params: CacheParams) -> str:
        with self.connection_factory() as conn:
            created = CacheTableRepository(conn, self.definition).create_parent_index()
        index = self.definition.parent_index
        return f"Index {index.name} {'created' if created else 'already present'} on {index.table_name}"

    def drop_parent_indices(self, params: CacheParams) -> str:
        with self.connection_factory() as conn:
            dropped = CacheTableRepository(conn, self.definition).drop_parent_index()
        index = self.definition.parent_index
        return f"Index {index.name} {'dropped' if dropped else 'not present'} on {index.table_name}"

    def _scope(self, params: CacheParams):
        """Window widened to whole cache buckets, and the facility selection."""
        if params.all_dates:
            start, end = None, None
        else:
            start, end = self.definition.align_window(params.start_date, params.end_date)
        facility_ids = None if params.all_bikeparks else list(params.selected_bikepark_ids)
        return start, end, facility_ids


class TransactionCacheManager(CacheManager):
    """Transactions and revenue per facility per day."""
    name = "transactionscache"
    definition = TRANSACTIONS_CACHE


class OccupancyCacheManager(CacheManager):
    """Occupancy per facility, section and source per hour."""
    name = "bezettingencache"
    definition = OCCUPANCY_CACHE


class DurationCacheManager(CacheManager):
    """Duration-of-stay histogram per facility per day."""
    name = "stallingsduurcache"
    definition = DURATION_CACHE


CACHE_MANAGERS = {
    manager.name: manager
    for manager in (TransactionCacheManager, OccupancyCacheManager, DurationCacheManager)
}


def get_cache_manager(name: str, **kwargs) -> Optional[CacheManager]:
    """
    Create the manager for an API cache name.

    Args:
        name: transactionscache, bezettingencache or stallingsduurcache
        **kwargs: Passed to the CacheManager constructor

    Returns:
        CacheManager instance, or None for unknown names
    """
    manager_class = CACHE_MANAGERS.get(name)
    if manager_class is None:
        return None
    return manager_class(**kwargs)
