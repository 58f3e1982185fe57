"""
Period Grouping Expressions
===========================

Builds the SQL expression that turns a timestamp column into a time bucket
key (TIMEGROUP) for a report grouping.

Raw tables store wall-clock time, so in raw mode the column is first shifted
back by the "day begins at" offset. Cache tables already store shifted
buckets and are used as is.

Bucket keys (must match processor.series_assembler.period_key):
    per_year          2024
    per_quarter       2024-1
    per_month         2024-1
    per_week          2024-01        (ISO year and week)
    per_weekday       0..6           (0 = Monday)
    per_day           2024-2         (year, day of year + 1)
    per_hour          0..23
    per_hour_time     2024-01-01 13:00
    per_quarter_hour  2024-01-01 13:45
    per_bucket        bucket column (duration of stay 1..10)

Usage:
    from database.queries.builders import get_function_for_period

    expr = get_function_for_period("per_month", 180, "b.timestamp", use_cache=False)
"""

from typing import Callable, Dict, Optional, Union

from models.report import ReportGrouping


def shifted_field(fieldname: str, offset_minutes: int) -> str:
    """Timestamp column moved back onto reporting-day time."""
    return f"DATE_ADD({fieldname}, INTERVAL -{int(offset_minutes)} MINUTE)"


_PERIOD_EXPRESSIONS: Dict[ReportGrouping, Callable[[str], str]] = {
    ReportGrouping.PER_YEAR: lambda f: f"YEAR({f})",
    ReportGrouping.PER_QUARTER: lambda f: f"CONCAT(YEAR({f}), '-', QUARTER({f}))",
    ReportGrouping.PER_MONTH: lambda f: f"CONCAT(YEAR({f}), '-', MONTH({f}))",
    ReportGrouping.PER_WEEK: lambda f: f"DATE_FORMAT({f}, '%x-%v')",
    ReportGrouping.PER_WEEKDAY: lambda f: f"WEEKDAY({f})",
    ReportGrouping.PER_DAY: lambda f: f"CONCAT(YEAR({f}), '-', DAYOFYEAR({f}) + 1)",
    ReportGrouping.PER_HOUR: lambda f: f"HOUR({f})",
    ReportGrouping.PER_HOUR_TIME: lambda f: f"DATE_FORMAT({f}, '%Y-%m-%d %H:00')",
    ReportGrouping.PER_QUARTER_HOUR: lambda f: (
        f"CONCAT(DATE_FORMAT({f}, '%Y-%m-%d %H:'), LPAD(FLOOR(MINUTE({f}) / 15) * 15, 2, '0'))"
    ),
    ReportGrouping.PER_BUCKET: lambda f: "bucket",
}


def get_function_for_period(
    grouping: Union[ReportGrouping, str],
    offset_minutes: int,
    fieldname: str,
    use_cache: bool = True,
) -> Optional[str]:
    """
    Get the TIMEGROUP expression for a report grouping.

    Args:
        grouping: Report grouping (enum member or its string value)
        offset_minutes: "Day begins at" offset in minutes after midnight
        fieldname: Timestamp column, optionally alias-qualified
        use_cache: True when the column belongs to a cache table

    Returns:
        SQL expression, or None if the grouping is not supported
    """
    try:
        grouping = ReportGrouping(grouping)
    except ValueError:
        return None

    build = _PERIOD_EXPRESSIONS.get(grouping)
    if build is None:
        return None

    field = fieldname if use_cache else shifted_field(fieldname, offset_minutes)
    return build(field)
