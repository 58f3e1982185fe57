"""
Relative Occupancy Report
=========================

Report type: bezetting

Occupation as a percentage of capacity, one decimal, per legend series
(none, per_stalling, per_weekday, per_section). Buckets without capacity
yield NULL (shown as 0).

Database Tables:
- bezettingsdata (raw)
- bezettingsdata_day_hour_cache (hourly buckets)
"""

from typing import List

from database.queries.builders import Filters, ReportQuerySpec, SeriesDefinition
from models.report import ReportCategories, ReportParams, ReportType
from .absolute_occupancy import OCCUPANCY_CACHE_GROUPINGS, OCCUPANCY_RAW_GROUPINGS
from .base import ReportQueryBuilder


class RelativeOccupancyQuery(ReportQueryBuilder):
    report_type = ReportType.OCCUPANCY
    raw_alias = "b"
    cache_alias = "c"
    supported_categories = frozenset({
        ReportCategories.NONE.value,
        ReportCategories.PER_STALLING.value,
        ReportCategories.PER_WEEKDAY.value,
        ReportCategories.PER_SECTION.value,
    })

    raw_spec = ReportQuerySpec(
        source="bezettingsdata b",
        facility_column="b.bikeparkID",
        date_column="b.timestamp",
        series=(
            SeriesDefinition(
                aggregate="ROUND(100 * SUM(b.occupation) / NULLIF(SUM(b.capacity), 0), 1)"
            ),
        ),
        conditions=(Filters.standard_interval("b"),),
        groupings=OCCUPANCY_RAW_GROUPINGS,
        section_column="b.sectionID",
    )

    cache_spec = ReportQuerySpec(
        source="bezettingsdata_day_hour_cache c",
        facility_column="c.bikeparkID",
        date_column="c.timestamp",
        series=(
            SeriesDefinition(
                aggregate="ROUND(100 * SUM(c.totalOccupation) / NULLIF(SUM(c.totalCapacity), 0), 1)"
            ),
        ),
        conditions=(Filters.standard_interval("c"),),
        groupings=OCCUPANCY_CACHE_GROUPINGS,
        section_column="c.sectionID",
    )

    def extra_conditions(self, params: ReportParams, alias: str) -> List[str]:
        return Filters.occupancy_filters(alias, fillups=params.fillups, source=params.source)
