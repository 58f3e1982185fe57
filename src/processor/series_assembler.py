"""
Bikepark Reports - Series Assembly
Turns (CATEGORY, TIMEGROUP, value) rows into chart series aligned to an x-axis.

The x-axis is an ordered map of bucket key -> display label covering the
whole report range, so buckets without data show up as 0. Keys produced
here must match the SQL bucket expressions in
database.queries.builders.periods.
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from database.queries.reports import DURATION_BUCKET_LABELS, TOTAL_CATEGORY
from models.report import ReportCategories, ReportGrouping, ReportType, SeriesData
from utils.timezone import start_of_day

WEEKDAY_LABELS = ('ma', 'di', 'wo', 'do', 'vr', 'za', 'zo')
MONTH_LABELS = ('jan', 'feb', 'mrt', 'apr', 'mei', 'jun', 'jul', 'aug', 'sep', 'okt', 'nov', 'dec')

WEEKDAY_NAMES = ('Maandag', 'Dinsdag', 'Woensdag', 'Donderdag', 'Vrijdag', 'Zaterdag', 'Zondag')
TOTAL_NAME = 'Totaal'
CLIENT_TYPE_NAMES = (('1', 'Dagstaller'), ('2', 'Abonnement'))

X_AXIS_TITLES = {
    ReportGrouping.PER_QUARTER_HOUR: 'Kwartier',
    ReportGrouping.PER_HOUR: 'Uur',
    ReportGrouping.PER_HOUR_TIME: 'Uur',
    ReportGrouping.PER_DAY: 'Dag',
    ReportGrouping.PER_WEEKDAY: 'Dag van de week',
    ReportGrouping.PER_WEEK: 'Week',
    ReportGrouping.PER_MONTH: 'Maand',
    ReportGrouping.PER_QUARTER: 'Kwartaal',
    ReportGrouping.PER_YEAR: 'Jaar',
    ReportGrouping.PER_BUCKET: 'Stallingsduur',
}


def get_x_axis_title(grouping: str) -> str:
    try:
        return X_AXIS_TITLES[ReportGrouping(grouping)]
    except ValueError:
        return 'onbekend'


def period_key(grouping: str, value: datetime) -> Optional[str]:
    """
    Bucket key for a reporting-time timestamp, as the SQL would produce it.

    Example:
        >>> period_key("per_day", datetime(2024, 1, 1))
        '2024-2'
    """
    grouping = ReportGrouping(grouping)
    if grouping is ReportGrouping.PER_YEAR:
        return str(value.year)
    if grouping is ReportGrouping.PER_QUARTER:
        return f"{value.year}-{(value.month - 1) // 3 + 1}"
    if grouping is ReportGrouping.PER_MONTH:
        return f"{value.year}-{value.month}"
    if grouping is ReportGrouping.PER_WEEK:
        iso_year, iso_week, _ = value.isocalendar()
        return f"{iso_year}-{iso_week:02d}"
    if grouping is ReportGrouping.PER_WEEKDAY:
        return str(value.weekday())
    if grouping is ReportGrouping.PER_DAY:
        return f"{value.year}-{value.timetuple().tm_yday + 1}"
    if grouping is ReportGrouping.PER_HOUR:
        return str(value.hour)
    if grouping is ReportGrouping.PER_HOUR_TIME:
        return value.strftime('%Y-%m-%d %H:00')
    if grouping is ReportGrouping.PER_QUARTER_HOUR:
        return f"{value.strftime('%Y-%m-%d %H')}:{value.minute // 15 * 15:02d}"
    return None


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    return value.replace(year=value.year + month_index // 12, month=month_index % 12 + 1, day=1)


def _iter_steps(end: datetime, first: datetime, step) -> Iterable[datetime]:
    """Bucket starts from first while before end; the first bucket always counts."""
    current = first
    while current < end or current == first:
        yield current
        current = step(current)


def get_label_map_for_x_axis(grouping: str, start: datetime, end: datetime) -> Optional[Dict[str, str]]:
    """
    Ordered bucket key -> label map for a report range.

    Args:
        grouping: Report grouping
        start: Range start (reporting time)
        end: Range end (reporting time)

    Returns:
        OrderedDict, or None for an unsupported grouping
    """
    try:
        grouping = ReportGrouping(grouping)
    except ValueError:
        return None

    labels: Dict[str, str] = OrderedDict()

    if grouping is ReportGrouping.PER_HOUR:
        for hour in range(24):
            labels[str(hour)] = f"{hour}:00"
        return labels

    if grouping is ReportGrouping.PER_WEEKDAY:
        for index, label in enumerate(WEEKDAY_LABELS):
            labels[str(index)] = label
        return labels

    if grouping is ReportGrouping.PER_BUCKET:
        for index, label in enumerate(DURATION_BUCKET_LABELS, start=1):
            labels[str(index)] = label
        return labels

    if grouping is ReportGrouping.PER_QUARTER_HOUR:
        first = start.replace(minute=start.minute // 15 * 15, second=0, microsecond=0)
        for moment in _iter_steps(end, first, lambda d: d + timedelta(minutes=15)):
            labels[period_key(grouping, moment)] = moment.strftime('%H:%M')
        return labels

    if grouping is ReportGrouping.PER_HOUR_TIME:
        first = start.replace(minute=0, second=0, microsecond=0)
        for moment in _iter_steps(end, first, lambda d: d + timedelta(hours=1)):
            labels[period_key(grouping, moment)] = moment.strftime('%d-%m %H:00')
        return labels

    if grouping is ReportGrouping.PER_DAY:
        for day in _iter_steps(end, start_of_day(start), lambda d: d + timedelta(days=1)):
            labels[period_key(grouping, day)] = f"{MONTH_LABELS[day.month - 1]}-{day.day}"
        return labels

    if grouping is ReportGrouping.PER_WEEK:
        first = start_of_day(start) - timedelta(days=start.weekday())
        for week in _iter_steps(end, first, lambda d: d + timedelta(weeks=1)):
            iso_year, iso_week, _ = week.isocalendar()
            labels[period_key(grouping, week)] = f"{iso_year}-W{iso_week:02d}"
        return labels

    if grouping is ReportGrouping.PER_MONTH:
        same_year = start.year == end.year
        first = start_of_day(start).replace(day=1)
        for month in _iter_steps(end, first, lambda d: _add_months(d, 1)):
            name = MONTH_LABELS[month.month - 1]
            labels[period_key(grouping, month)] = name if same_year else f"{name}-{month.year}"
        return labels

    if grouping is ReportGrouping.PER_QUARTER:
        first = start_of_day(start).replace(month=(start.month - 1) // 3 * 3 + 1, day=1)
        for quarter in _iter_steps(end, first, lambda d: _add_months(d, 3)):
            key = period_key(grouping, quarter)
            labels[key] = key
        return labels

    if grouping is ReportGrouping.PER_YEAR:
        for year in range(start.year, end.year + 1):
            labels[str(year)] = str(year)
        return labels

    return None


def category_names(
    report_type: str,
    facility_ids: Sequence[str],
    titles: Mapping[str, str],
    report_categories: str = ReportCategories.PER_STALLING.value,
    section_titles: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Display name per CATEGORY value, in legend order.

    Absolute occupancy has two series per facility ('<F>_capacity',
    '<F>_occupation'). Other reports follow their legend: one series per
    facility (per_stalling), a single total, one per weekday, section or
    client type.
    """
    categories = ReportCategories(report_categories)
    if categories is ReportCategories.NONE:
        return OrderedDict([(TOTAL_CATEGORY, TOTAL_NAME)])
    if categories is ReportCategories.PER_WEEKDAY:
        return OrderedDict((str(index), name) for index, name in enumerate(WEEKDAY_NAMES))
    if categories is ReportCategories.PER_TYPE_KLANT:
        return OrderedDict(CLIENT_TYPE_NAMES)
    if categories is ReportCategories.PER_SECTION:
        return OrderedDict(section_titles or {})

    names = OrderedDict()
    for facility_id in facility_ids:
        title = titles.get(facility_id, facility_id)
        if report_type == ReportType.ABSOLUTE_OCCUPANCY:
            names[f"{facility_id}_capacity"] = f"{title} - Capaciteit"
            names[f"{facility_id}_occupation"] = f"{title} - Bezetting"
        else:
            names[facility_id] = title
    return names


def _to_number(value: Any):
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (int, float)):
        return value
    return float(value)


def convert_to_timegroup_series(
    rows: Iterable[Mapping[str, Any]],
    keys: Sequence[str],
    names: Mapping[str, str],
    expected_categories: Sequence[str] = (),
) -> List[SeriesData]:
    """
    Group rows by CATEGORY into series aligned to keys.

    Args:
        rows: Result rows with CATEGORY, TIMEGROUP and value
        keys: x-axis bucket keys, in display order
        names: CATEGORY -> series name
        expected_categories: Categories that always get a series (zero-filled),
            in this order; unexpected categories follow in order of appearance

    Returns:
        One SeriesData per category; rows outside keys are dropped
    """
    values: Dict[str, Dict[str, Any]] = OrderedDict(
        (category, {}) for category in expected_categories
    )
    for row in rows:
        category = str(row["CATEGORY"])
        timegroup = str(row["TIMEGROUP"])
        values.setdefault(category, {})[timegroup] = _to_number(row["value"])

    return [
        SeriesData(
            name=names.get(category, category),
            data=[data.get(key, 0) for key in keys],
        )
        for category, data in values.items()
    ]
