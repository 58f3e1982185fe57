"""
Absolute Occupancy Report
=========================

Report type: absolute_bezetting
UI Location: Rapportages -> Absolute bezetting

Two series per facility:
- <F>_capacity:   maximum capacity in the bucket
- <F>_occupation: average occupation in the bucket, rounded

Only samples at the standard sampling interval are used. Optional request
filters: exclude fill-up rows, restrict to one data source.

Database Tables:
- bezettingsdata (raw)
- bezettingsdata_day_hour_cache (hourly buckets; not for per_quarter_hour)

Example (2 facilities, per_hour):
    4 SELECT blocks joined by UNION ALL, 8 date bounds, ORDER BY TIMEGROUP ASC
"""

from typing import List, Optional

from database.queries.builders import (
    EMPTY_RESULT_SQL,
    Filters,
    ReportQuerySpec,
    SeriesDefinition,
)
from models.report import ReportGrouping, ReportParams, ReportType
from .base import ReportQueryBuilder

OCCUPANCY_CACHE_GROUPINGS = frozenset(
    g.value for g in ReportGrouping
    if g not in (ReportGrouping.PER_QUARTER_HOUR, ReportGrouping.PER_BUCKET)
)

OCCUPANCY_RAW_GROUPINGS = frozenset(
    g.value for g in ReportGrouping if g is not ReportGrouping.PER_BUCKET
)


class AbsoluteOccupancyQuery(ReportQueryBuilder):
    """Capacity and occupation series per facility."""

    report_type = ReportType.ABSOLUTE_OCCUPANCY
    raw_alias = "b"
    cache_alias = "c"

    raw_spec = ReportQuerySpec(
        source="bezettingsdata b",
        facility_column="b.bikeparkID",
        date_column="b.timestamp",
        series=(
            SeriesDefinition(aggregate="MAX(b.capacity)", suffix="capacity"),
            SeriesDefinition(aggregate="ROUND(AVG(b.occupation))", suffix="occupation"),
        ),
        conditions=(Filters.standard_interval("b"),),
        groupings=OCCUPANCY_RAW_GROUPINGS,
    )

    cache_spec = ReportQuerySpec(
        source="bezettingsdata_day_hour_cache c",
        facility_column="c.bikeparkID",
        date_column="c.timestamp",
        series=(
            SeriesDefinition(aggregate="MAX(c.maxCapacity)", suffix="capacity"),
            SeriesDefinition(
                aggregate="ROUND(SUM(c.totalOccupation) / NULLIF(SUM(c.samples), 0))",
                suffix="occupation",
            ),
        ),
        conditions=(Filters.standard_interval("c"),),
        groupings=OCCUPANCY_CACHE_GROUPINGS,
    )

    def extra_conditions(self, params: ReportParams, alias: str) -> List[str]:
        return Filters.occupancy_filters(alias, fillups=params.fillups, source=params.source)

    def empty_selection_sql(self) -> Optional[str]:
        # Always valid SQL; downstream assembly gets zero rows
        return EMPTY_RESULT_SQL
