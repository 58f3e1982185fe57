"""
Query Builders
==============

Reusable components for building report SQL.

Modules:
- periods.py: TIMEGROUP expressions per report grouping
- filters.py: Common WHERE clause conditions
- series.py: ReportQuerySpec and the UNION ALL series compiler

How to Modify:
1. Add the new grouping/filter/series helper to the appropriate file
2. Export it from this __init__.py
3. Use it in report files: from database.queries.builders import Filters
"""

from .filters import Filters
from .periods import get_function_for_period, shifted_field
from .series import (
    EMPTY_RESULT_SQL,
    ReportQuerySpec,
    SeriesDefinition,
    UnionSeriesQuery,
)

__all__ = [
    "Filters",
    "get_function_for_period",
    "shifted_field",
    "EMPTY_RESULT_SQL",
    "ReportQuerySpec",
    "SeriesDefinition",
    "UnionSeriesQuery",
]
