"""
Report Query Modules
====================

One builder per report type. Each exposes get_sql(params, use_cache) and
supports_cache(grouping).

Files:
- absolute_occupancy.py: absolute_bezetting
- relative_occupancy.py: bezetting
- transactions.py: transacties_voltooid, inkomsten
- parking_duration.py: stallingsduur

Usage:
    from database.queries.reports import get_report_builder

    builder = get_report_builder("inkomsten")
    sql = builder.get_sql(params, use_cache=True)
"""

from typing import Optional

from .base import ReportQueryBuilder, TOTAL_CATEGORY
from .absolute_occupancy import AbsoluteOccupancyQuery
from .relative_occupancy import RelativeOccupancyQuery
from .transactions import TransactionCountQuery, RevenueQuery
from .parking_duration import ParkingDurationQuery, DURATION_BUCKET_LABELS

REPORT_BUILDERS = {
    builder.report_type.value: builder
    for builder in (
        TransactionCountQuery(),
        RevenueQuery(),
        RelativeOccupancyQuery(),
        AbsoluteOccupancyQuery(),
        ParkingDurationQuery(),
    )
}


def get_report_builder(report_type: str) -> Optional[ReportQueryBuilder]:
    """Builder for a report type, or None if the type is unknown."""
    return REPORT_BUILDERS.get(getattr(report_type, "value", report_type))


__all__ = [
    "ReportQueryBuilder",
    "TOTAL_CATEGORY",
    "AbsoluteOccupancyQuery",
    "RelativeOccupancyQuery",
    "TransactionCountQuery",
    "RevenueQuery",
    "ParkingDurationQuery",
    "DURATION_BUCKET_LABELS",
    "REPORT_BUILDERS",
    "get_report_builder",
]
