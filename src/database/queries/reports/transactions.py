"""
Transaction and Revenue Reports
===============================

Report types:
- transacties_voltooid: completed transactions per bucket
- inkomsten: revenue per bucket

Transactions count on their checkout time. Legends: none, per_stalling,
per_section and per_type_klant; the day cache only has the facility, so
section and client type legends read raw data.

Database Tables:
- transacties_archief (raw)
- transacties_archief_day_cache (day buckets; finer groupings read raw data)
"""

from database.queries.builders import ReportQuerySpec, SeriesDefinition
from models.report import ReportCategories, ReportGrouping, ReportType
from .base import ReportQueryBuilder

DAY_CACHE_GROUPINGS = frozenset({
    ReportGrouping.PER_DAY.value,
    ReportGrouping.PER_WEEKDAY.value,
    ReportGrouping.PER_WEEK.value,
    ReportGrouping.PER_MONTH.value,
    ReportGrouping.PER_QUARTER.value,
    ReportGrouping.PER_YEAR.value,
})

TRANSACTION_RAW_GROUPINGS = frozenset(
    g.value for g in ReportGrouping if g is not ReportGrouping.PER_BUCKET
)

TRANSACTION_CATEGORIES = frozenset({
    ReportCategories.NONE.value,
    ReportCategories.PER_STALLING.value,
    ReportCategories.PER_SECTION.value,
    ReportCategories.PER_TYPE_KLANT.value,
})


def _raw_spec(aggregate: str) -> ReportQuerySpec:
    return ReportQuerySpec(
        source="transacties_archief t",
        facility_column="t.locationID",
        date_column="t.checkoutdate",
        series=(SeriesDefinition(aggregate=aggregate),),
        groupings=TRANSACTION_RAW_GROUPINGS,
        section_column="t.sectionid",
        client_type_column="t.clienttypeid",
    )


def _cache_spec(aggregate: str) -> ReportQuerySpec:
    return ReportQuerySpec(
        source="transacties_archief_day_cache c",
        facility_column="c.locationID",
        date_column="c.checkoutdate",
        series=(SeriesDefinition(aggregate=aggregate),),
        groupings=DAY_CACHE_GROUPINGS,
    )


class TransactionCountQuery(ReportQueryBuilder):
    report_type = ReportType.TRANSACTIONS
    raw_alias = "t"
    cache_alias = "c"
    supported_categories = TRANSACTION_CATEGORIES
    raw_spec = _raw_spec("COUNT(*)")
    cache_spec = _cache_spec("SUM(c.count_transacties)")


class RevenueQuery(ReportQueryBuilder):
    report_type = ReportType.REVENUE
    raw_alias = "t"
    cache_alias = "c"
    supported_categories = TRANSACTION_CATEGORIES
    raw_spec = _raw_spec("SUM(t.price)")
    cache_spec = _cache_spec("SUM(c.sum_inkomsten)")
