"""
Bikepark Reports - Cache Update Driver
Refreshes the report caches over a date range, in full or incremental mode.

Every run first clears each cache over a wide fixed window
(CACHE_CLEAR_WINDOW_START..CACHE_CLEAR_WINDOW_END, all facilities) so no rows
survive from earlier runs with other boundaries. Then:

- full mode: one update over [start, end + 1 day), all facilities
- incremental mode: one update per calendar day, each [day, day + 1)

Incremental mode bounds the cost of each call and stops at the first day
that keeps failing; that day is reported as resume_from. Both modes leave
the same cache content.
"""

import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from models.cache import CacheAction, CacheErrorCode, CacheParams, CacheResult, CacheStatus
from processor.cache_manager import CACHE_MANAGERS, CacheManager, get_cache_manager
from utils.config import (
    CACHE_CLEAR_WINDOW_END,
    CACHE_CLEAR_WINDOW_START,
    CACHE_UPDATE_MAX_ATTEMPTS,
)
from utils.logger import logger
from utils.timezone import day_after, iter_days, parse_iso_datetime, start_of_day

ALL_CACHES = tuple(CACHE_MANAGERS)

# Failures worth another attempt; invalid_params / invalid_action never recover
RETRYABLE_ERRORS = (CacheErrorCode.DATABASE_ERROR, CacheErrorCode.LOCKED)


def _is_retryable(exception: BaseException) -> bool:
    return (
        isinstance(exception, CacheUpdateFailed)
        and exception.result.error_code in RETRYABLE_ERRORS
    )


class CacheUpdateFailed(Exception):
    """A cache action returned a failed CacheResult."""

    def __init__(self, result: CacheResult):
        super().__init__(result.message)
        self.result = result


@dataclass
class UpdateRunResult:
    """Outcome of one driver run for one cache."""
    cache_name: str
    mode: str
    days_total: int = 0
    days_processed: int = 0
    failures: List[str] = field(default_factory=list)
    resume_from: Optional[date] = None
    status: Optional[CacheStatus] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def summary(self) -> str:
        if self.success:
            return (
                f"{self.cache_name}: {self.mode} update of {self.days_processed} day(s) "
                f"completed in {self.duration_seconds:.1f}s"
            )
        resume = f", resume from {self.resume_from.isoformat()}" if self.resume_from else ""
        return (
            f"{self.cache_name}: {self.mode} update failed after "
            f"{self.days_processed}/{self.days_total} day(s){resume}: {self.failures[-1]}"
        )

    def to_dict(self) -> dict:
        return {
            "cache": self.cache_name,
            "success": self.success,
            "mode": self.mode,
            "daysTotal": self.days_total,
            "daysProcessed": self.days_processed,
            "failures": self.failures,
            "resumeFrom": self.resume_from.isoformat() if self.resume_from else None,
            "status": self.status.to_dict() if self.status else None,
            "summary": self.summary,
        }


class CacheUpdateDriver:
    """
    Drives the cache managers for a date range.

    Args:
        manager_factory: Creates a CacheManager for an API cache name
        max_attempts: Attempts per update call before giving up
        retry_wait: tenacity wait strategy between attempts
    """

    def __init__(
        self,
        manager_factory=get_cache_manager,
        max_attempts: int = CACHE_UPDATE_MAX_ATTEMPTS,
        retry_wait=None,
    ):
        self.manager_factory = manager_factory
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=2, max=30)

    def run(
        self,
        start: datetime,
        end: datetime,
        full: bool = False,
        caches: Sequence[str] = ALL_CACHES,
        clear_first: bool = True,
    ) -> Dict[str, UpdateRunResult]:
        """
        Refresh the given caches for the days start..end (both inclusive).

        Args:
            start: First day to refresh
            end: Last day to refresh
            full: One update for the whole range instead of one per day
            caches: API cache names to refresh
            clear_first: Clear the wide historical window first; only a
                resumed incremental run passes False

        Returns:
            UpdateRunResult per cache name, in the order given

        Raises:
            ValueError: If end is before start or a cache name is unknown
        """
        start = start_of_day(start)
        end = start_of_day(end)
        if end < start:
            raise ValueError(f"end ({end.date()}) is before start ({start.date()})")

        managers = {}
        for name in caches:
            manager = self.manager_factory(name)
            if manager is None:
                raise ValueError(f"Unknown cache: {name!r}")
            managers[name] = manager

        logger.info("Cache update run started", extra={
            "event_type": "cache_update_run_start",
            "start": start.date().isoformat(),
            "end": end.date().isoformat(),
            "mode": "full" if full else "incremental",
            "caches": list(caches),
        })

        results = {}
        for name, manager in managers.items():
            results[name] = self._run_one(manager, start, end, full, clear_first)
            log = logger.info if results[name].success else logger.error
            log(results[name].summary, extra={
                "event_type": "cache_update_run_complete",
                "cache": name,
                "success": results[name].success,
                "days_processed": results[name].days_processed,
            })

        return results

    def _run_one(self, manager: CacheManager, start: datetime, end: datetime,
                 full: bool, clear_first: bool) -> UpdateRunResult:
        days = list(iter_days(start, end))
        result = UpdateRunResult(
            cache_name=manager.name,
            mode="full" if full else "incremental",
            days_total=len(days),
        )
        started = time.time()

        if clear_first:
            cleared = manager.manage(self.clear_window_params())
            if not cleared.success:
                result.failures.append(f"clear failed: {cleared.message}")
                result.resume_from = days[0].date()
                result.status = cleared.status
                result.duration_seconds = time.time() - started
                return result

        if full:
            windows = [(start, day_after(end))]
        else:
            windows = [(day, day_after(day)) for day in days]

        for window_start, window_end in windows:
            params = CacheParams(
                action=CacheAction.UPDATE,
                start_date=window_start,
                end_date=window_end,
                all_bikeparks=True,
            )
            try:
                outcome = self._update_with_retry(manager, params)
            except CacheUpdateFailed as e:
                result.failures.append(e.result.message)
                result.resume_from = window_start.date()
                result.status = e.result.status
                break

            result.status = outcome.status
            result.days_processed += (window_end - window_start).days

        result.duration_seconds = time.time() - started
        return result

    def _update_with_retry(self, manager: CacheManager, params: CacheParams) -> CacheResult:
        """
        Run one update, retrying transient failures.

        Raises:
            CacheUpdateFailed: When the last attempt (or a permanent failure) fails
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                outcome = manager.manage(params)
                if not outcome.success:
                    logger.warning("Cache update attempt failed", extra={
                        "cache": manager.name,
                        "window_start": params.start_date.isoformat(),
                        "attempt": attempt.retry_state.attempt_number,
                        "error_code": outcome.error_code.value if outcome.error_code else None,
                    })
                    raise CacheUpdateFailed(outcome)
        return outcome

    @staticmethod
    def clear_window_params() -> CacheParams:
        return CacheParams(
            action=CacheAction.CLEAR,
            start_date=parse_iso_datetime(CACHE_CLEAR_WINDOW_START),
            end_date=parse_iso_datetime(CACHE_CLEAR_WINDOW_END),
            all_bikeparks=True,
        )


