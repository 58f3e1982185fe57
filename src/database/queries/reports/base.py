"""
Report Query Builder Base
=========================

A report type is two ReportQuerySpecs (raw table and cache table) plus the
request-specific filters it accepts. ReportQueryBuilder.get_sql() resolves
the bucket and legend expressions and the date bounds and hands them to
UnionSeriesQuery.

Date bounds:
- raw tables hold wall-clock time, so the reporting range is moved forward
  by the "day begins at" offset (the bucket expression shifts it back)
- cache tables hold shifted buckets, so the range is used as given

Legends (reportCategories):
- per_stalling: one series per facility (CATEGORY = facility ID)
- none: one series for the whole selection (CATEGORY = TOTAL_CATEGORY)
- per_weekday: one series per weekday, 0 = Monday
- per_section: one series per facility section
- per_type_klant: one series per client type
"""

from typing import FrozenSet, List, Optional

from database.queries.builders import (
    get_function_for_period,
    ReportQuerySpec,
    UnionSeriesQuery,
)
from models.report import ReportCategories, ReportGrouping, ReportParams, ReportType
from utils.config import DAY_BEGINS_AT_MINUTES
from utils.sql_helpers import escape_literal
from utils.timezone import get_adjusted_start_end_dates

TOTAL_CATEGORY = "0"


def category_expression(spec: ReportQuerySpec, categories: str, offset_minutes: int,
                        use_cache: bool) -> Optional[str]:
    """
    CATEGORY expression for a pooled legend.

    Returns:
        SQL expression, or None for per_stalling (one block per facility)
    """
    categories = ReportCategories(categories)
    if categories is ReportCategories.NONE:
        return escape_literal(TOTAL_CATEGORY)
    if categories is ReportCategories.PER_WEEKDAY:
        return get_function_for_period(ReportGrouping.PER_WEEKDAY, offset_minutes, spec.date_column, use_cache)
    if categories is ReportCategories.PER_SECTION:
        return spec.section_column
    if categories is ReportCategories.PER_TYPE_KLANT:
        return spec.client_type_column
    return None


class ReportQueryBuilder:
    """
    Builds the SQL for one report type.

    Subclasses set report_type, raw_spec, (optionally) cache_spec and the
    legends they offer, and may override extra_conditions() and
    empty_selection_sql().
    """

    report_type: ReportType = None
    raw_spec: ReportQuerySpec = None
    cache_spec: Optional[ReportQuerySpec] = None
    supported_categories: FrozenSet[str] = frozenset({ReportCategories.PER_STALLING.value})
    # Alias used for request filters on each source
    raw_alias: str = None
    cache_alias: str = None

    def supports_cache(self, grouping: str) -> bool:
        """True if the cache table can answer this grouping."""
        return self.cache_spec is not None and self.cache_spec.supports(grouping)

    def can_use_cache(self, params: ReportParams) -> bool:
        """
        Cache buckets are shifted by the configured offset, so a request with
        a different "day begins at" must read raw data. Legends the cache has
        no column for read raw data too.
        """
        if not self.supports_cache(params.report_grouping):
            return False
        if not self.cache_spec.supports_categories(params.report_categories):
            return False
        offset = params.day_begins_at_minutes
        return offset is None or offset == DAY_BEGINS_AT_MINUTES

    def extra_conditions(self, params: ReportParams, alias: str) -> List[str]:
        return []

    def empty_selection_sql(self) -> Optional[str]:
        return None

    def get_sql(self, params: ReportParams, use_cache: bool = False) -> Optional[str]:
        """
        Build the fully interpolated report statement.

        Args:
            params: Validated report request
            use_cache: Prefer the cache table; ignored when the cache cannot
                answer the request

        Returns:
            SQL string, or None when no meaningful SQL exists (missing dates,
            unsupported grouping or legend, empty selection for most report
            types)

        Raises:
            ValueError: If params belong to another report type
        """
        if params.report_type != self.report_type:
            raise ValueError(
                f"Invalid report type for {self.report_type.value} SQL: {params.report_type!r}"
            )

        if params.start_dt is None or params.end_dt is None:
            return None

        if params.report_categories not in self.supported_categories:
            return None

        if not params.bikepark_ids:
            return self.empty_selection_sql()

        use_cache = use_cache and self.can_use_cache(params)
        spec = self.cache_spec if use_cache else self.raw_spec
        alias = self.cache_alias if use_cache else self.raw_alias
        if not spec.supports(params.report_grouping) or not spec.supports_categories(params.report_categories):
            return None

        offset = params.day_begins_at_minutes
        if offset is None:
            offset = DAY_BEGINS_AT_MINUTES

        timegroup = get_function_for_period(params.report_grouping, offset, spec.date_column, use_cache)
        if timegroup is None:
            return None

        if use_cache:
            start, end = params.start_dt, params.end_dt
        else:
            start, end = get_adjusted_start_end_dates(params.start_dt, params.end_dt, offset)

        category = category_expression(spec, params.report_categories, offset, use_cache)
        query = UnionSeriesQuery(spec, timegroup, category)
        return query.compile(params.bikepark_ids, start, end, self.extra_conditions(params, alias))

    def categories(self, facility_ids) -> List[str]:
        """Expected CATEGORY values of the per_stalling legend, in series order."""
        return [
            series.category(facility_id)
            for facility_id in facility_ids
            for series in self.raw_spec.series
        ]
