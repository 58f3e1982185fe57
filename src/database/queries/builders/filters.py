"""
Query Filters
=============

Reusable WHERE clause conjuncts for report queries.

Report statements are assembled per facility block and interpolated as a
whole, so filters are SQL fragments rather than expression objects. Every
caller-supplied value goes through escape_literal().

Usage:
    from database.queries.builders import Filters

    conditions = Filters.occupancy_filters("b", fillups=True, source="FMS")
"""

from typing import List, Optional, Sequence

from utils.config import OCCUPANCY_INTERVAL_MINUTES
from utils.sql_helpers import escape_literal, escape_literal_list


class Filters:
    """
    Reusable filter conditions for report WHERE clauses.

    All methods take a table alias and return one SQL condition string.
    """

    # =========================================================================
    # SELECTION FILTERS
    # =========================================================================

    @staticmethod
    def facility(column: str, facility_id: str) -> str:
        """column = 'facility_id'"""
        return f"{column} = {escape_literal(facility_id)}"

    @staticmethod
    def facility_in(column: str, facility_ids: Sequence[str]) -> str:
        """column IN ('id1', 'id2', ...)"""
        return f"{column} IN ({escape_literal_list(facility_ids)})"

    @staticmethod
    def date_between(column: str) -> str:
        """Date range with two positional placeholders."""
        return f"{column} BETWEEN ? AND ?"

    # =========================================================================
    # OCCUPANCY FILTERS
    # =========================================================================

    @staticmethod
    def exclude_fillups(alias: str) -> str:
        """Drop rows synthesized to fill gaps in the occupancy feed."""
        return f"{alias}.fillup = 0"

    @staticmethod
    def data_source(alias: str, source: str) -> str:
        return f"{alias}.source = {escape_literal(source)}"

    @staticmethod
    def standard_interval(alias: str) -> str:
        """Only samples taken at the standard sampling interval."""
        return f"{alias}.`interval` = {int(OCCUPANCY_INTERVAL_MINUTES)}"

    @staticmethod
    def occupancy_filters(alias: str, fillups: bool = False, source: Optional[str] = None) -> List[str]:
        """
        Optional occupancy conjuncts, in the order they appear in the SQL.

        Args:
            alias: bezettingsdata or cache table alias
            fillups: True to exclude fill-up rows
            source: Restrict to one data source tag
        """
        conditions = []
        if fillups:
            conditions.append(Filters.exclude_fillups(alias))
        if source:
            conditions.append(Filters.data_source(alias, source))
        return conditions
