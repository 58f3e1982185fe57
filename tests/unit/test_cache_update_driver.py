"""
Bikepark Reports - Cache Update Driver Tests

Tests CacheUpdateDriver with fake cache managers:
- every run starts with one wide clear
- full mode: one update over [start, end + 1 day)
- incremental mode: one update per day
- transient failures are retried, permanent ones are not
- a failing day stops the run and becomes resume_from

Priority: P0 - scheduled cache refresh
"""

import pytest
from datetime import date, datetime

from tenacity import wait_none

from models.cache import CacheAction, CacheErrorCode, CacheResult, CacheStatus, TableState
from processor.cache_update_driver import ALL_CACHES, CacheUpdateDriver


class FakeManager:
    """Records manage() calls and replays scripted failures."""

    def __init__(self, name, failures=None):
        self.name = name
        self.calls = []
        # Maps window start (or "clear") to a list of error codes, consumed per call
        self.failures = failures or {}

    def manage(self, params):
        self.calls.append(params)
        key = "clear" if params.action is CacheAction.CLEAR else params.start_date
        pending = self.failures.get(key)
        if pending:
            code = pending.pop(0)
            return CacheResult.failure(code, f"{code.value} on {key}")
        return CacheResult.ok(CacheStatus(status=TableState.AVAILABLE, size=len(self.calls)))

    @property
    def updates(self):
        return [(p.start_date, p.end_date) for p in self.calls if p.action is CacheAction.UPDATE]


@pytest.fixture
def managers():
    return {}


@pytest.fixture
def make_driver(managers):
    def factory(failures=None, max_attempts=3):
        def manager_factory(name):
            if name not in ALL_CACHES:
                return None
            managers[name] = FakeManager(name, failures)
            return managers[name]
        return CacheUpdateDriver(manager_factory=manager_factory, max_attempts=max_attempts,
                                 retry_wait=wait_none())
    return factory


class TestModes:

    def test_incremental_clears_then_updates_per_day(self, make_driver, managers):
        results = make_driver().run(datetime(2024, 1, 1), datetime(2024, 1, 3),
                                    caches=["transactionscache"])

        manager = managers["transactionscache"]
        assert manager.calls[0].action is CacheAction.CLEAR
        assert manager.calls[0].start_date == datetime(2018, 1, 1)
        assert manager.calls[0].end_date == datetime(2100, 1, 1)
        assert manager.calls[0].all_bikeparks
        assert manager.updates == [
            (datetime(2024, 1, 1), datetime(2024, 1, 2)),
            (datetime(2024, 1, 2), datetime(2024, 1, 3)),
            (datetime(2024, 1, 3), datetime(2024, 1, 4)),
        ]
        result = results["transactionscache"]
        assert result.success
        assert result.mode == "incremental"
        assert result.days_total == result.days_processed == 3

    def test_full_is_one_update(self, make_driver, managers):
        results = make_driver().run(datetime(2024, 1, 1), datetime(2024, 1, 3), full=True,
                                    caches=["bezettingencache"])

        manager = managers["bezettingencache"]
        assert len(manager.calls) == 2
        assert manager.updates == [(datetime(2024, 1, 1), datetime(2024, 1, 4))]
        assert results["bezettingencache"].days_processed == 3

    def test_times_are_truncated_to_days(self, make_driver, managers):
        make_driver().run(datetime(2024, 1, 1, 13, 30), datetime(2024, 1, 1, 20), full=True,
                          caches=["stallingsduurcache"])

        assert managers["stallingsduurcache"].updates == [(datetime(2024, 1, 1), datetime(2024, 1, 2))]

    def test_all_caches_by_default(self, make_driver, managers):
        results = make_driver().run(datetime(2024, 1, 1), datetime(2024, 1, 1))

        assert list(results) == list(ALL_CACHES)
        assert all(r.success for r in results.values())

    def test_without_clear(self, make_driver, managers):
        make_driver().run(datetime(2024, 1, 2), datetime(2024, 1, 2), caches=["transactionscache"],
                          clear_first=False)

        calls = managers["transactionscache"].calls
        assert [c.action for c in calls] == [CacheAction.UPDATE]


class TestRetries:

    def test_transient_failure_is_retried(self, make_driver, managers):
        failures = {datetime(2024, 1, 2): [CacheErrorCode.LOCKED, CacheErrorCode.DATABASE_ERROR]}

        results = make_driver(failures).run(datetime(2024, 1, 1), datetime(2024, 1, 3),
                                            caches=["transactionscache"])

        assert results["transactionscache"].success
        assert len(managers["transactionscache"].updates) == 5

    def test_invalid_params_not_retried(self, make_driver, managers):
        failures = {datetime(2024, 1, 1): [CacheErrorCode.INVALID_PARAMS]}

        results = make_driver(failures).run(datetime(2024, 1, 1), datetime(2024, 1, 2),
                                            caches=["transactionscache"])

        assert len(managers["transactionscache"].updates) == 1
        assert results["transactionscache"].resume_from == date(2024, 1, 1)

    def test_exhausted_retries_stop_the_run(self, make_driver, managers):
        failures = {datetime(2024, 1, 2): [CacheErrorCode.DATABASE_ERROR] * 3}

        result = make_driver(failures).run(datetime(2024, 1, 1), datetime(2024, 1, 4),
                                           caches=["transactionscache"])["transactionscache"]

        assert not result.success
        assert result.days_processed == 1
        assert result.resume_from == date(2024, 1, 2)
        assert len(managers["transactionscache"].updates) == 1 + 3
        assert "resume from 2024-01-02" in result.summary
        assert result.to_dict()["resumeFrom"] == "2024-01-02"

    def test_failed_clear_skips_updates(self, make_driver, managers):
        failures = {"clear": [CacheErrorCode.LOCKED]}

        result = make_driver(failures).run(datetime(2024, 1, 1), datetime(2024, 1, 2),
                                           caches=["transactionscache"])["transactionscache"]

        assert not result.success
        assert result.failures[0].startswith("clear failed")
        assert managers["transactionscache"].updates == []
        assert result.resume_from == date(2024, 1, 1)

    def test_one_failing_cache_does_not_stop_others(self, make_driver, managers):
        failures = {"clear": [CacheErrorCode.DATABASE_ERROR]}

        results = make_driver(failures).run(datetime(2024, 1, 1), datetime(2024, 1, 1))

        # The scripted failure list is shared, so only the first cache consumes it
        assert not results["transactionscache"].success
        assert results["bezettingencache"].success


class TestInvalidRuns:

    def test_end_before_start(self, make_driver):
        with pytest.raises(ValueError):
            make_driver().run(datetime(2024, 1, 2), datetime(2024, 1, 1))

    def test_unknown_cache(self, make_driver):
        with pytest.raises(ValueError) as exc:
            make_driver().run(datetime(2024, 1, 1), datetime(2024, 1, 1), caches=["fietsencache"])

        assert "fietsencache" in str(exc.value)
