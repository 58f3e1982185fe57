"""
Bikepark Reports - Report Service
Validates a report request, builds and runs its SQL, and assembles series.

Steps:
1. Validate report type, grouping, legend and facility access
2. Resolve dates (default: the last REPORT_DEFAULT_RANGE_DAYS days) and the
   "day begins at" offset
3. Use the cache tables when enabled and the builder can answer from them
4. Build SQL; no SQL means the request is invalid
5. Execute, then align rows to the x-axis and name the series

Assembled reports are kept in the in-process TTL cache; cache lifecycle
actions invalidate it.
"""

from dataclasses import replace
from datetime import timedelta
from typing import Callable, ContextManager, Iterable, Optional

from database.connection import execute_raw_sql, get_db_connection
from database.queries.reports import ReportQueryBuilder, get_report_builder
from database.repositories.facility_repository import FacilityRepository
from models.report import (
    REPORT_TITLES,
    ReportCategories,
    ReportData,
    ReportGrouping,
    ReportParams,
    ReportType,
    ReportValidationError,
)
from processor.series_assembler import (
    category_names,
    convert_to_timegroup_series,
    get_label_map_for_x_axis,
    get_x_axis_title,
)
from utils.cache import QueryCache, generate_cache_key, get_query_cache
from utils.config import DAY_BEGINS_AT_MINUTES, REPORT_DEFAULT_RANGE_DAYS, REPORTS_USE_CACHE
from utils.logger import logger, log_report_request
from utils.timezone import end_of_day, get_now_local, start_of_day

VALID_GROUPINGS = frozenset(g.value for g in ReportGrouping)


class ReportService:
    """
    Report orchestration.

    Args:
        connection_factory: Returns a context manager yielding a connection
        use_cache: Read from cache tables where possible
        query_cache: TTL cache for assembled reports (default: global)
        now_fn: Current local time, for default date ranges
    """

    def __init__(
        self,
        connection_factory: Callable[[], ContextManager] = get_db_connection,
        use_cache: bool = REPORTS_USE_CACHE,
        query_cache: Optional[QueryCache] = None,
        now_fn: Callable = get_now_local,
    ):
        self.connection_factory = connection_factory
        self.use_cache = use_cache
        self.query_cache = query_cache
        self.now_fn = now_fn

    def validate(self, params: ReportParams, accessible_ids: Optional[Iterable[str]] = None) -> ReportQueryBuilder:
        """
        Check a request before any SQL is built.

        Args:
            params: Report request
            accessible_ids: Facilities the caller may query; None means no restriction

        Returns:
            The query builder for the report type

        Raises:
            ReportValidationError: On unknown type/grouping or inaccessible facilities
        """
        builder = get_report_builder(params.report_type)
        if builder is None:
            raise ReportValidationError(
                f"Unknown report type: {params.report_type!r}",
                {"reportType": params.report_type, "allowed": [t.value for t in ReportType]},
            )

        if params.report_grouping not in VALID_GROUPINGS:
            raise ReportValidationError(
                f"Unknown report grouping: {params.report_grouping!r}",
                {"reportGrouping": params.report_grouping, "allowed": sorted(VALID_GROUPINGS)},
            )

        if params.report_categories not in builder.supported_categories:
            raise ReportValidationError(
                f"Legend {params.report_categories!r} is not available for {params.report_type!r}",
                {"reportCategories": params.report_categories, "allowed": sorted(builder.supported_categories)},
            )

        if accessible_ids is not None:
            allowed = set(accessible_ids)
            forbidden = sorted(set(params.bikepark_ids) - allowed)
            if forbidden:
                raise ReportValidationError(
                    "Access denied for one or more bikeparks",
                    {"bikeparkIDs": forbidden},
                )

        return builder

    def resolve_params(self, params: ReportParams) -> ReportParams:
        """
        Fill in default dates and offset.

        Reports cover whole days: start moves back to 00:00:00 and end forward
        to 23:59:59, so day-bucketed cache tables and raw tables select the
        same rows.
        """
        end_dt = params.end_dt or self.now_fn()
        start_dt = params.start_dt or end_dt - timedelta(days=REPORT_DEFAULT_RANGE_DAYS)
        start_dt = start_of_day(start_dt)
        end_dt = end_of_day(end_dt)
        if start_dt > end_dt:
            raise ReportValidationError(
                "startDT must not be after endDT",
                {"startDT": start_dt.isoformat(), "endDT": end_dt.isoformat()},
            )

        offset = params.day_begins_at_minutes
        if offset is None:
            offset = DAY_BEGINS_AT_MINUTES
        if not 0 <= offset < 24 * 60:
            raise ReportValidationError("dayBeginsAt must be within one day", {"dayBeginsAt": offset})

        return replace(params, start_dt=start_dt, end_dt=end_dt, day_begins_at_minutes=offset)

    def get_sql(self, params: ReportParams, accessible_ids: Optional[Iterable[str]] = None) -> str:
        """
        Build the SQL a report would run, for diagnostics.

        Raises:
            ReportValidationError: If no SQL can be built for the request
        """
        builder = self.validate(params, accessible_ids)
        resolved = self.resolve_params(params)
        return self._build_sql(builder, resolved)

    def get_report(self, params: ReportParams, accessible_ids: Optional[Iterable[str]] = None) -> ReportData:
        """
        Run a report.

        Args:
            params: Report request
            accessible_ids: Facilities the caller may query; None means no restriction

        Returns:
            ReportData with one series per category

        Raises:
            ReportValidationError: On invalid requests
        """
        builder = self.validate(params, accessible_ids)
        resolved = self.resolve_params(params)

        cache = self.query_cache or get_query_cache()
        key = generate_cache_key("report", use_cache=self.use_cache, **resolved.cache_key_params())
        return cache.get_or_compute(key, lambda: self._run_report(builder, resolved))

    def _build_sql(self, builder: ReportQueryBuilder, params: ReportParams) -> str:
        sql = builder.get_sql(params, use_cache=self.use_cache)
        if sql is None:
            if not params.bikepark_ids:
                raise ReportValidationError("Select at least one bikepark", {"bikeparkIDs": []})
            raise ReportValidationError(
                f"Grouping {params.report_grouping!r} is not available for {params.report_type!r}",
                {"reportType": params.report_type, "reportGrouping": params.report_grouping},
            )
        return sql

    def _run_report(self, builder: ReportQueryBuilder, params: ReportParams) -> ReportData:
        use_cache = self.use_cache and builder.can_use_cache(params)
        log_report_request(params.report_type, params.report_grouping, len(params.bikepark_ids), use_cache)

        sql = self._build_sql(builder, params)
        label_map = get_label_map_for_x_axis(params.report_grouping, params.start_dt, params.end_dt)
        if label_map is None:
            raise ReportValidationError(f"No x-axis for grouping {params.report_grouping!r}")

        per_stalling = params.report_categories == ReportCategories.PER_STALLING.value
        with self.connection_factory() as conn:
            rows = execute_raw_sql(conn, sql).mappings().all()
            facilities = FacilityRepository(conn)
            titles = facilities.get_titles(params.bikepark_ids)
            section_titles = None
            if params.report_categories == ReportCategories.PER_SECTION.value:
                section_titles = facilities.get_section_titles(params.bikepark_ids)

        names = category_names(params.report_type, params.bikepark_ids, titles,
                               params.report_categories, section_titles)
        keys = list(label_map.keys())
        series = convert_to_timegroup_series(
            rows,
            keys,
            names,
            builder.categories(params.bikepark_ids) if per_stalling else list(names),
        )

        logger.debug("Report assembled", extra={
            "report_type": params.report_type,
            "rows": len(rows),
            "series": len(series),
            "buckets": len(keys),
        })

        return ReportData(
            title=REPORT_TITLES.get(ReportType(params.report_type), ""),
            keys=keys,
            categories=list(label_map.values()),
            x_axis_title=get_x_axis_title(params.report_grouping),
            series=series,
        )
