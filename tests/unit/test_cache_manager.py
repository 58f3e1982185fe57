"""
Bikepark Reports - Cache Lifecycle Manager Tests

Tests CacheManager dispatch with a mocked CacheTableRepository:
- status is read-only and lock-free
- update replaces the window (delete, then insert) in one unit of work
- rebuild clears, then updates
- invalid parameters, held locks and SQL errors become CacheResult failures
- successful mutations invalidate the report result cache

Priority: P0 - cache correctness
"""

import pytest
from contextlib import contextmanager
from datetime import datetime
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from database.locks import CacheLockError
from models.cache import CacheAction, CacheErrorCode, CacheParams, TableState
from processor.cache_manager import (
    CACHE_MANAGERS,
    DurationCacheManager,
    OccupancyCacheManager,
    TransactionCacheManager,
    get_cache_manager,
)
from utils.cache import get_query_cache

WINDOW_START = datetime(2024, 1, 1)
WINDOW_END = datetime(2024, 1, 2)


class RecordingLock:
    """Lock factory that records lock names and can refuse to lock."""

    def __init__(self, refuse=False):
        self.names = []
        self.refuse = refuse

    @contextmanager
    def __call__(self, name, timeout_seconds=None):
        if self.refuse:
            raise CacheLockError(f"Lock {name!r} is held by another session")
        self.names.append(name)
        yield


@pytest.fixture
def repo():
    with patch("processor.cache_manager.CacheTableRepository") as repo_class:
        instance = repo_class.return_value
        instance.table_exists.return_value = True
        instance.parent_index_exists.return_value = False
        instance.get_source_stats.return_value = {
            "size": 100,
            "first_update": datetime(2023, 1, 1, 8, 0),
            "last_update": datetime(2024, 1, 1, 17, 0),
        }
        instance.get_cache_stats.return_value = {
            "size": 20,
            "first_update": datetime(2023, 1, 1).date(),
            "last_update": datetime(2024, 1, 1).date(),
        }
        instance.delete_window.return_value = 3
        instance.insert_window.return_value = 5
        yield instance


@pytest.fixture
def lock():
    return RecordingLock()


@pytest.fixture
def manager(connection_factory, lock):
    return TransactionCacheManager(
        connection_factory=connection_factory,
        lock_factory=lock,
        offset_minutes=0,
    )


def window_params(action, **kwargs):
    defaults = dict(start_date=WINDOW_START, end_date=WINDOW_END, all_bikeparks=True)
    defaults.update(kwargs)
    return CacheParams(action=action, **defaults)


class TestRegistry:

    def test_api_names(self):
        assert set(CACHE_MANAGERS) == {"transactionscache", "bezettingencache", "stallingsduurcache"}

    def test_get_cache_manager(self):
        assert isinstance(get_cache_manager("bezettingencache"), OccupancyCacheManager)
        assert isinstance(get_cache_manager("stallingsduurcache"), DurationCacheManager)
        assert get_cache_manager("nope") is None

    def test_table_names(self):
        assert TransactionCacheManager().table_name == "transacties_archief_day_cache"
        assert OccupancyCacheManager().table_name == "bezettingsdata_day_hour_cache"
        assert DurationCacheManager().table_name == "stallingsduur_cache"


class TestStatus:

    def test_status_is_lock_free(self, manager, repo, lock):
        result = manager.manage(CacheParams(action=CacheAction.STATUS))

        assert result.success
        assert lock.names == []
        repo.delete_window.assert_not_called()

    def test_status_available(self, manager, repo):
        status = manager.manage(CacheParams(action=CacheAction.STATUS)).status

        assert status.status is TableState.AVAILABLE
        assert status.indexstatus is TableState.MISSING
        assert status.size == 20
        assert status.original_size == 100
        assert "transacties_archief_day_cache: 20 rows" in status.summary

    def test_status_missing_table(self, manager, repo):
        repo.table_exists.return_value = False

        status = manager.manage(CacheParams(action=CacheAction.STATUS)).status

        assert status.status is TableState.MISSING
        assert status.size is None
        assert "is missing" in status.summary
        repo.get_cache_stats.assert_not_called()

    def test_status_database_error(self, manager, repo):
        repo.get_source_stats.side_effect = OperationalError("SELECT", {}, Exception("gone away"))

        result = manager.manage(CacheParams(action=CacheAction.STATUS))

        assert not result.success
        assert result.error_code is CacheErrorCode.DATABASE_ERROR


class TestUpdate:

    def test_update_deletes_then_inserts_window(self, manager, repo):
        calls = []
        repo.delete_window.side_effect = lambda *a: calls.append(("delete", a)) or 3
        repo.insert_window.side_effect = lambda *a: calls.append(("insert", a)) or 5

        result = manager.manage(window_params(CacheAction.UPDATE))

        assert result.success
        assert calls == [
            ("delete", (WINDOW_START, WINDOW_END, None)),
            ("insert", (WINDOW_START, WINDOW_END, None, 0)),
        ]
        assert "5 rows written" in result.message

    def test_update_for_selected_bikeparks(self, manager, repo):
        manager.manage(window_params(CacheAction.UPDATE, all_bikeparks=False, selected_bikepark_ids=["A", "B"]))

        repo.delete_window.assert_called_once_with(WINDOW_START, WINDOW_END, ["A", "B"])
        repo.insert_window.assert_called_once_with(WINDOW_START, WINDOW_END, ["A", "B"], 0)

    def test_update_all_dates(self, manager, repo):
        manager.manage(window_params(CacheAction.UPDATE, start_date=None, end_date=None, all_dates=True))

        repo.delete_window.assert_called_once_with(None, None, None)

    def test_update_uses_configured_offset(self, connection_factory, lock, repo):
        manager = OccupancyCacheManager(connection_factory=connection_factory, lock_factory=lock,
                                        offset_minutes=180)

        manager.manage(window_params(CacheAction.UPDATE))

        repo.insert_window.assert_called_once_with(WINDOW_START, WINDOW_END, None, 180)

    def test_update_holds_table_lock(self, manager, repo, lock):
        manager.manage(window_params(CacheAction.UPDATE))

        assert lock.names == ["report_cache:transacties_archief_day_cache"]

    def test_update_invalidates_report_cache(self, manager, repo):
        get_query_cache().set("report:abc", {"stale": True})

        manager.manage(window_params(CacheAction.UPDATE))

        assert get_query_cache().get("report:abc") is None

    def test_update_twice_gives_same_calls(self, manager, repo):
        first = manager.manage(window_params(CacheAction.UPDATE))
        second = manager.manage(window_params(CacheAction.UPDATE))

        assert first.success and second.success
        assert repo.delete_window.call_args_list[0] == repo.delete_window.call_args_list[1]
        assert repo.insert_window.call_args_list[0] == repo.insert_window.call_args_list[1]


class TestWindowAlignment:
    """Windows are widened to whole cache buckets before delete and insert."""

    def test_day_cache_window_covers_whole_days(self, manager, repo):
        params = CacheParams.from_dict({
            "action": "update",
            "startDate": "2024-01-01T10:00:00",
            "endDate": "2024-01-02T10:00:00",
            "allBikeparks": True,
        })

        manager.manage(params)

        repo.delete_window.assert_called_once_with(datetime(2024, 1, 1), datetime(2024, 1, 3), None)
        repo.insert_window.assert_called_once_with(datetime(2024, 1, 1), datetime(2024, 1, 3), None, 0)

    def test_aligned_window_is_unchanged(self, manager, repo):
        manager.manage(window_params(CacheAction.UPDATE))

        repo.delete_window.assert_called_once_with(WINDOW_START, WINDOW_END, None)

    def test_occupancy_window_covers_whole_hours(self, connection_factory, lock, repo):
        manager = OccupancyCacheManager(connection_factory=connection_factory, lock_factory=lock,
                                        offset_minutes=0)

        manager.manage(window_params(CacheAction.UPDATE, start_date=datetime(2024, 1, 1, 10, 20),
                                     end_date=datetime(2024, 1, 1, 12, 0, 1)))

        repo.delete_window.assert_called_once_with(datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 13), None)
        repo.insert_window.assert_called_once_with(datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 13), None, 0)

    def test_clear_is_aligned_too(self, manager, repo):
        manager.manage(window_params(CacheAction.CLEAR, start_date=datetime(2024, 1, 1, 23, 59), end_date=None))

        repo.delete_window.assert_called_once_with(datetime(2024, 1, 1), None, None)

    def test_rebuild_aligns_both_steps(self, manager, repo):
        manager.manage(window_params(CacheAction.REBUILD, start_date=datetime(2024, 1, 1, 6),
                                     end_date=datetime(2024, 1, 1, 18)))

        expected = (datetime(2024, 1, 1), datetime(2024, 1, 2), None)
        assert [c.args for c in repo.delete_window.call_args_list] == [expected, expected]
        repo.insert_window.assert_called_once_with(*expected, 0)


class TestRebuildAndClear:

    def test_rebuild_clears_then_updates(self, manager, repo):
        result = manager.manage(window_params(CacheAction.REBUILD))

        assert result.success
        assert repo.delete_window.call_count == 2
        assert repo.insert_window.call_count == 1

    def test_clear_only_deletes(self, manager, repo):
        result = manager.manage(window_params(CacheAction.CLEAR))

        assert result.success
        assert "3 rows cleared" in result.message
        repo.insert_window.assert_not_called()


class TestTableAndIndexActions:

    def test_create_table(self, manager, repo):
        result = manager.manage(CacheParams(action=CacheAction.CREATE_TABLE))

        assert result.success
        repo.create_table.assert_called_once()

    def test_drop_table(self, manager, repo):
        repo.table_exists.return_value = False

        result = manager.manage(CacheParams(action=CacheAction.DROP_TABLE))

        assert result.success
        assert result.status.status is TableState.MISSING
        repo.drop_table.assert_called_once()

    def test_create_parent_indices(self, manager, repo):
        repo.create_parent_index.return_value = True

        result = manager.manage(CacheParams(action=CacheAction.CREATE_PARENT_INDICES))

        assert result.success
        assert "idx_cache_location_checkoutdate created" in result.message

    def test_drop_parent_indices_when_absent(self, manager, repo):
        repo.drop_parent_index.return_value = False

        result = manager.manage(CacheParams(action=CacheAction.DROP_PARENT_INDICES))

        assert result.success
        assert "not present" in result.message


class TestFailures:

    def test_missing_start_date(self, manager, repo):
        result = manager.manage(window_params(CacheAction.UPDATE, start_date=None))

        assert not result.success
        assert result.error_code is CacheErrorCode.INVALID_PARAMS
        repo.delete_window.assert_not_called()

    def test_empty_selection(self, manager, repo):
        result = manager.manage(window_params(CacheAction.CLEAR, all_bikeparks=False))

        assert result.error_code is CacheErrorCode.INVALID_PARAMS

    def test_unknown_action(self, manager, repo):
        result = manager.manage(CacheParams(action="vacuum"))

        assert result.error_code is CacheErrorCode.INVALID_ACTION

    def test_lock_held_elsewhere(self, connection_factory, repo):
        manager = TransactionCacheManager(connection_factory=connection_factory,
                                          lock_factory=RecordingLock(refuse=True))

        result = manager.manage(window_params(CacheAction.UPDATE))

        assert result.error_code is CacheErrorCode.LOCKED
        repo.delete_window.assert_not_called()

    def test_sql_error_during_update(self, manager, repo):
        repo.insert_window.side_effect = OperationalError("INSERT", {}, Exception("lock wait timeout"))
        get_query_cache().set("report:abc", {"kept": True})

        result = manager.manage(window_params(CacheAction.UPDATE))

        assert not result.success
        assert result.error_code is CacheErrorCode.DATABASE_ERROR
        assert "indeterminate" in result.message
        assert result.status is not None
        assert get_query_cache().get("report:abc") == {"kept": True}

    def test_result_dict(self, manager, repo):
        data = manager.manage(window_params(CacheAction.UPDATE, start_date=None)).to_dict()

        assert data["success"] is False
        assert data["errorCode"] == "invalid_params"
        assert data["status"] is None
