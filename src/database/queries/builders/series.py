"""
Union Series Query Compiler
===========================

Every report is a set of series over the selected facilities. A report type
is described as data (ReportQuerySpec: source table, facility/date columns,
static conditions, series definitions) and compiled here into one statement.

Per-facility legend (per_stalling), one block per facility x series:

    SELECT '<category>' AS CATEGORY, <timegroup> AS TIMEGROUP, <aggregate> AS value
    FROM <source>
    WHERE <facility> = '<id>' AND <date> BETWEEN ? AND ? [AND ...]
    GROUP BY CATEGORY, TIMEGROUP
    UNION ALL
    ...
    ORDER BY TIMEGROUP ASC

Pooled legends (none, per_weekday, per_section, per_type_klant), one block
per series over the whole selection, CATEGORY taken from an expression:

    SELECT <category expr> AS CATEGORY, <timegroup> AS TIMEGROUP, <aggregate> AS value
    FROM <source>
    WHERE <facility> IN ('<id>', ...) AND <date> BETWEEN ? AND ? [AND ...]
    GROUP BY CATEGORY, TIMEGROUP
    ORDER BY TIMEGROUP ASC

The block count varies with the selection, so the statement cannot be
prepared once; it is interpolated as a whole with two date bounds per block.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from models.report import ReportCategories
from utils.sql_helpers import escape_literal, interpolate_sql
from .filters import Filters

EMPTY_RESULT_SQL = "SELECT '' AS CATEGORY, '0' AS TIMEGROUP, 0 AS value FROM DUAL WHERE 1=0"


@dataclass(frozen=True)
class SeriesDefinition:
    """
    One series per facility.

    Category is the facility ID, or '<facility>_<suffix>' when a report has
    more than one series per facility.
    """
    aggregate: str
    suffix: Optional[str] = None

    def category(self, facility_id: str) -> str:
        if self.suffix:
            return f"{facility_id}_{self.suffix}"
        return facility_id


@dataclass(frozen=True)
class ReportQuerySpec:
    """Source and series description for one report type on one table."""
    source: str
    facility_column: str
    date_column: str
    series: Tuple[SeriesDefinition, ...]
    conditions: Tuple[str, ...] = ()
    groupings: Optional[FrozenSet[str]] = None
    # Columns behind the per_section and per_type_klant legends
    section_column: Optional[str] = None
    client_type_column: Optional[str] = None

    def supports(self, grouping: str) -> bool:
        """True if the grouping can be answered from this source (None = any)."""
        grouping = getattr(grouping, "value", grouping)
        return self.groupings is None or grouping in self.groupings

    def supports_categories(self, categories: str) -> bool:
        """True if this source has the column a legend groups by."""
        categories = getattr(categories, "value", categories)
        if categories == ReportCategories.PER_SECTION.value:
            return self.section_column is not None
        if categories == ReportCategories.PER_TYPE_KLANT.value:
            return self.client_type_column is not None
        return True


class UnionSeriesQuery:
    """
    Compiles a ReportQuerySpec for a facility selection.

    Args:
        spec: Source description
        timegroup_expr: TIMEGROUP expression
        category_expr: CATEGORY expression for a pooled legend; None gives
            one block per facility with the facility as category

    Example:
        >>> query = UnionSeriesQuery(spec, "HOUR(b.timestamp)")
        >>> sql = query.compile(["A", "B"], start, end, extra_conditions=["b.fillup = 0"])
    """

    def __init__(self, spec: ReportQuerySpec, timegroup_expr: str, category_expr: Optional[str] = None):
        self.spec = spec
        self.timegroup_expr = timegroup_expr
        self.category_expr = category_expr

    def _block(self, selection: str, category_sql: str, series: SeriesDefinition,
               extra_conditions: Sequence[str]) -> str:
        conditions = [selection, Filters.date_between(self.spec.date_column)]
        conditions.extend(extra_conditions)
        conditions.extend(self.spec.conditions)

        lines = [
            "SELECT",
            f"  {category_sql} AS CATEGORY,",
            f"  {self.timegroup_expr} AS TIMEGROUP,",
            f"  {series.aggregate} AS value",
            f"FROM {self.spec.source}",
            "WHERE",
            f"  {conditions[0]}",
        ]
        lines.extend(f"  AND {condition}" for condition in conditions[1:])
        lines.append("GROUP BY CATEGORY, TIMEGROUP")
        return "\n".join(lines)

    def build_block(self, facility_id: str, series: SeriesDefinition,
                    extra_conditions: Sequence[str] = ()) -> str:
        return self._block(
            Filters.facility(self.spec.facility_column, facility_id),
            escape_literal(series.category(facility_id)),
            series,
            extra_conditions,
        )

    def build_pooled_block(self, facility_ids: Sequence[str], series: SeriesDefinition,
                           extra_conditions: Sequence[str] = ()) -> str:
        return self._block(
            Filters.facility_in(self.spec.facility_column, facility_ids),
            self.category_expr,
            series,
            extra_conditions,
        )

    def build_blocks(self, facility_ids: Iterable[str],
                     extra_conditions: Sequence[str] = ()) -> List[str]:
        if self.category_expr is not None:
            facility_ids = list(facility_ids)
            return [
                self.build_pooled_block(facility_ids, series, extra_conditions)
                for series in self.spec.series
            ]
        return [
            self.build_block(facility_id, series, extra_conditions)
            for facility_id in facility_ids
            for series in self.spec.series
        ]

    def compile(self, facility_ids: Sequence[str], start: datetime, end: datetime,
                extra_conditions: Sequence[str] = ()) -> Optional[str]:
        """
        Build the interpolated statement.

        Args:
            facility_ids: Selected facilities, in output order
            start: Lower date bound (inclusive)
            end: Upper date bound (inclusive)
            extra_conditions: Request-specific conjuncts (fill-ups, source)

        Returns:
            SQL string, or None for an empty selection
        """
        if not facility_ids:
            return None

        blocks = self.build_blocks(facility_ids, extra_conditions)
        sql = "\nUNION ALL\n".join(blocks) + "\nORDER BY TIMEGROUP ASC"
        params = [start, end] * len(blocks)
        return interpolate_sql(sql, params)
