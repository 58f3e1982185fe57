"""
Bikepark Reports - Query Modules
================================

Structure:
- builders/: Reusable query components (period expressions, filters, series compiler)
- reports/: One query builder per report type

Usage:
    from database.queries.reports import get_report_builder

    builder = get_report_builder("absolute_bezetting")
    sql = builder.get_sql(params, use_cache=False)

How to Add a New Report:
1. Create a ReportQueryBuilder subclass in reports/ with a raw (and cache) spec
2. Register it in reports/__init__.py REPORT_BUILDERS
3. Add its title to models.report.REPORT_TITLES
"""

from .builders import (
    Filters,
    get_function_for_period,
    ReportQuerySpec,
    SeriesDefinition,
    UnionSeriesQuery,
)

__all__ = [
    "Filters",
    "get_function_for_period",
    "ReportQuerySpec",
    "SeriesDefinition",
    "UnionSeriesQuery",
]
