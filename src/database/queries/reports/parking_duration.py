"""
Parking Duration Report
=======================

Report type: stallingsduur
Grouping: per_bucket only

Number of completed transactions per duration bucket (minutes between
check-in and check-out), per legend series (none, per_stalling,
per_section, per_type_klant):

    1 <30m   2 30-60m   3 1-2h   4 2-4h    5 4-8h
    6 8-24h  7 1-2d     8 2-7d   9 7-14d  10 >14d

Database Tables:
- transacties_archief (raw, bucket computed in a derived table)
- stallingsduur_cache
"""

from database.queries.builders import ReportQuerySpec, SeriesDefinition
from models.report import ReportCategories, ReportGrouping, ReportType
from .base import ReportQueryBuilder

# Upper bounds (exclusive, minutes) of buckets 1..9; everything else is 10
DURATION_BUCKET_LIMITS = (30, 60, 120, 240, 480, 1440, 2880, 10080, 20160)

DURATION_BUCKET_LABELS = (
    '<30m', '30-60m', '1-2h', '2-4h', '4-8h', '8-24h', '1-2d', '2-7d', '7-14d', '>14d'
)


def duration_bucket_sql(checkin_column: str, checkout_column: str) -> str:
    """CASE expression mapping a stay to its bucket number."""
    minutes = f"TIMESTAMPDIFF(MINUTE, {checkin_column}, {checkout_column})"
    whens = " ".join(
        f"WHEN {minutes} < {limit} THEN {bucket}"
        for bucket, limit in enumerate(DURATION_BUCKET_LIMITS, start=1)
    )
    return f"CASE {whens} ELSE {len(DURATION_BUCKET_LIMITS) + 1} END"


BUCKET_GROUPINGS = frozenset({ReportGrouping.PER_BUCKET.value})

_DURATION_SOURCE = (
    "(SELECT t.locationID, t.sectionid, t.clienttypeid, t.checkoutdate, "
    f"{duration_bucket_sql('t.checkindate', 't.checkoutdate')} AS bucket "
    "FROM transacties_archief t "
    "WHERE t.checkindate IS NOT NULL AND t.checkoutdate IS NOT NULL) d"
)


class ParkingDurationQuery(ReportQueryBuilder):
    report_type = ReportType.PARKING_DURATION
    raw_alias = "d"
    cache_alias = "c"
    supported_categories = frozenset({
        ReportCategories.NONE.value,
        ReportCategories.PER_STALLING.value,
        ReportCategories.PER_SECTION.value,
        ReportCategories.PER_TYPE_KLANT.value,
    })

    raw_spec = ReportQuerySpec(
        source=_DURATION_SOURCE,
        facility_column="d.locationID",
        date_column="d.checkoutdate",
        series=(SeriesDefinition(aggregate="COUNT(*)"),),
        groupings=BUCKET_GROUPINGS,
        section_column="d.sectionid",
        client_type_column="d.clienttypeid",
    )

    cache_spec = ReportQuerySpec(
        source="stallingsduur_cache c",
        facility_column="c.locationID",
        date_column="c.checkoutdate",
        series=(SeriesDefinition(aggregate="SUM(c.count_transacties)"),),
        groupings=BUCKET_GROUPINGS,
    )
