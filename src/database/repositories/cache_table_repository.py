"""
Bikepark Reports - Cache Table Repository
Provides data access for the report cache tables and their raw sources.

Each cache table is described by a CacheTableDefinition: the SQLAlchemy
Table, its bucket and facility columns, the raw table it is derived from, the
supporting index on that raw table, and the INSERT ... SELECT that aggregates
raw rows into cache rows.

Windows are half-open [start, end) in reporting time. Cache rows are
deleted by their bucket; raw rows are selected by their own timestamp,
moved forward by the "day begins at" offset.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Table, bindparam, delete, func, inspect, select, text
from sqlalchemy.engine import Connection

from database.queries.reports.parking_duration import duration_bucket_sql
from database.schema import (
    ParentIndex,
    OCCUPANCY_PARENT_INDEX,
    TRANSACTIONS_PARENT_INDEX,
    bezettingsdata_day_hour_cache,
    stallingsduur_cache,
    transacties_archief_day_cache,
)
from utils.logger import logger, log_database_error


@dataclass(frozen=True)
class CacheTableDefinition:
    """Everything needed to manage one cache table."""
    table: Table
    bucket_column: str
    facility_column: str
    source_table: str
    source_date_column: str
    source_facility_column: str
    parent_index: ParentIndex
    # INSERT ... SELECT; {conditions} receives extra " AND ..." conjuncts on alias src
    refresh_sql: str
    bucket_size: timedelta = timedelta(days=1)

    @property
    def name(self) -> str:
        return self.table.name

    def floor_bucket(self, value: datetime) -> datetime:
        """Start of the bucket containing value."""
        return datetime.min + (value - datetime.min) // self.bucket_size * self.bucket_size

    def align_window(
        self,
        start: Optional[datetime],
        end: Optional[datetime]
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Widen [start, end) to whole buckets.

        A bucket is only ever deleted and re-aggregated as a whole; a partial
        window would leave part of a bucket behind next to its replacement.

        Example:
            >>> TRANSACTIONS_CACHE.align_window(datetime(2024, 1, 1, 10), datetime(2024, 1, 2, 10))
            (datetime.datetime(2024, 1, 1, 0, 0), datetime.datetime(2024, 1, 3, 0, 0))
        """
        if start is not None:
            start = self.floor_bucket(start)
        if end is not None:
            floored = self.floor_bucket(end)
            end = floored if floored == end else floored + self.bucket_size
        return start, end


# =============================================================================
# CACHE DEFINITIONS
# =============================================================================

TRANSACTIONS_CACHE = CacheTableDefinition(
    table=transacties_archief_day_cache,
    bucket_column="checkoutdate",
    facility_column="locationID",
    source_table="transacties_archief",
    source_date_column="checkoutdate",
    source_facility_column="locationID",
    parent_index=TRANSACTIONS_PARENT_INDEX,
    refresh_sql="""
        INSERT INTO transacties_archief_day_cache
            (locationID, checkoutdate, count_transacties, sum_inkomsten)
        SELECT
            src.locationID,
            DATE(DATE_ADD(src.checkoutdate, INTERVAL :neg_offset MINUTE)) AS day_bucket,
            COUNT(*),
            COALESCE(SUM(src.price), 0)
        FROM transacties_archief src
        WHERE src.checkoutdate IS NOT NULL{conditions}
        GROUP BY src.locationID, day_bucket
    """,
)

OCCUPANCY_CACHE = CacheTableDefinition(
    table=bezettingsdata_day_hour_cache,
    bucket_column="timestamp",
    facility_column="bikeparkID",
    source_table="bezettingsdata",
    source_date_column="timestamp",
    source_facility_column="bikeparkID",
    parent_index=OCCUPANCY_PARENT_INDEX,
    refresh_sql="""
        INSERT INTO bezettingsdata_day_hour_cache
            (`timestamp`, bikeparkID, sectionID, source, `interval`, fillup,
             totalCheckins, totalCheckouts, totalOccupation, totalCapacity,
             maxCapacity, samples, perc_occupation)
        SELECT
            DATE_FORMAT(DATE_ADD(src.timestamp, INTERVAL :neg_offset MINUTE), '%Y-%m-%d %H:00:00') AS hour_bucket,
            src.bikeparkID,
            src.sectionID,
            src.source,
            src.`interval`,
            src.fillup,
            COALESCE(SUM(src.checkins), 0),
            COALESCE(SUM(src.checkouts), 0),
            COALESCE(SUM(src.occupation), 0),
            COALESCE(SUM(src.capacity), 0),
            MAX(src.capacity),
            COUNT(src.occupation),
            ROUND(100 * SUM(src.occupation) / NULLIF(SUM(src.capacity), 0), 1)
        FROM bezettingsdata src
        WHERE src.timestamp IS NOT NULL{conditions}
        GROUP BY hour_bucket, src.bikeparkID, src.sectionID, src.source, src.`interval`, src.fillup
    """,
    bucket_size=timedelta(hours=1),
)

DURATION_CACHE = CacheTableDefinition(
    table=stallingsduur_cache,
    bucket_column="checkoutdate",
    facility_column="locationID",
    source_table="transacties_archief",
    source_date_column="checkoutdate",
    source_facility_column="locationID",
    parent_index=TRANSACTIONS_PARENT_INDEX,
    refresh_sql=f"""
        INSERT INTO stallingsduur_cache
            (locationID, checkoutdate, bucket, count_transacties)
        SELECT
            src.locationID,
            DATE(DATE_ADD(src.checkoutdate, INTERVAL :neg_offset MINUTE)) AS day_bucket,
            {duration_bucket_sql('src.checkindate', 'src.checkoutdate')} AS duration_bucket,
            COUNT(*)
        FROM transacties_archief src
        WHERE src.checkindate IS NOT NULL AND src.checkoutdate IS NOT NULL{{conditions}}
        GROUP BY src.locationID, day_bucket, duration_bucket
    """,
)


class CacheTableRepository:
    """
    Repository for one cache table.

    Implements:
    - Existence, row count and coverage of the cache and its raw source
    - Table and parent index DDL (idempotent)
    - Window delete and INSERT ... SELECT refresh
    """

    def __init__(self, connection: Connection, definition: CacheTableDefinition):
        """
        Initialize repository with database connection.

        Args:
            connection: SQLAlchemy connection object
            definition: Cache table to operate on
        """
        self.conn = connection
        self.definition = definition

    # =========================================================================
    # STATUS
    # =========================================================================

    def table_exists(self) -> bool:
        return inspect(self.conn).has_table(self.definition.name)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Row count and first/last bucket of the cache table."""
        table = self.definition.table
        bucket = table.c[self.definition.bucket_column]
        stmt = select(
            func.count().label("size"),
            func.min(bucket).label("first_update"),
            func.max(bucket).label("last_update"),
        ).select_from(table)
        row = self.conn.execute(stmt).one()
        return dict(row._mapping)

    def get_source_stats(self) -> Dict[str, Any]:
        """Row count and first/last timestamp of the raw source table."""
        column = self.definition.source_date_column
        query = text(f"""
            SELECT COUNT(*) AS size,
                   MIN(`{column}`) AS first_update,
                   MAX(`{column}`) AS last_update
            FROM `{self.definition.source_table}`
        """)
        row = self.conn.execute(query).one()
        return dict(row._mapping)

    def parent_index_exists(self) -> bool:
        index = self.definition.parent_index
        query = text("""
            SELECT COUNT(*)
            FROM information_schema.statistics
            WHERE table_schema = DATABASE()
              AND table_name = :table_name
              AND index_name = :index_name
        """)
        count = self.conn.execute(
            query, {"table_name": index.table_name, "index_name": index.name}
        ).scalar()
        return bool(count)

    # =========================================================================
    # DDL
    # =========================================================================

    def create_table(self) -> None:
        self.definition.table.create(self.conn, checkfirst=True)

    def drop_table(self) -> None:
        self.definition.table.drop(self.conn, checkfirst=True)

    def create_parent_index(self) -> bool:
        """Create the supporting raw-table index. Returns False if it already existed."""
        if self.parent_index_exists():
            return False
        self.conn.exec_driver_sql(self.definition.parent_index.create_sql())
        return True

    def drop_parent_index(self) -> bool:
        """Drop the supporting raw-table index. Returns False if it was not there."""
        if not self.parent_index_exists():
            return False
        self.conn.exec_driver_sql(self.definition.parent_index.drop_sql())
        return True

    # =========================================================================
    # CONTENT
    # =========================================================================

    def delete_window(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        facility_ids: Optional[Sequence[str]],
    ) -> int:
        """
        Delete cache rows with bucket in [start, end) for the selection.

        Args:
            start: Window start, None for unbounded
            end: Window end (exclusive), None for unbounded
            facility_ids: Facilities to clear, None for all

        Returns:
            Number of rows deleted
        """
        table = self.definition.table
        bucket = table.c[self.definition.bucket_column]
        stmt = delete(table)
        if start is not None:
            stmt = stmt.where(bucket >= start)
        if end is not None:
            stmt = stmt.where(bucket < end)
        if facility_ids is not None:
            stmt = stmt.where(table.c[self.definition.facility_column].in_(list(facility_ids)))

        try:
            result = self.conn.execute(stmt)
        except Exception as e:
            log_database_error(e, f"Failed to clear {self.definition.name}")
            raise
        return result.rowcount

    def insert_window(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        facility_ids: Optional[Sequence[str]],
        offset_minutes: int,
    ) -> int:
        """
        Aggregate raw rows whose reporting time falls in [start, end).

        Args:
            start: Window start in reporting time, None for unbounded
            end: Window end (exclusive), None for unbounded
            facility_ids: Facilities to aggregate, None for all
            offset_minutes: "Day begins at" offset

        Returns:
            Number of cache rows inserted
        """
        date_column = f"src.`{self.definition.source_date_column}`"
        facility_column = f"src.`{self.definition.source_facility_column}`"
        params: Dict[str, Any] = {"neg_offset": -int(offset_minutes)}
        conditions: List[str] = []
        bindparams = []

        offset = timedelta(minutes=offset_minutes)
        if start is not None:
            conditions.append(f"{date_column} >= :raw_start")
            params["raw_start"] = start + offset
        if end is not None:
            conditions.append(f"{date_column} < :raw_end")
            params["raw_end"] = end + offset
        if facility_ids is not None:
            conditions.append(f"{facility_column} IN :facility_ids")
            params["facility_ids"] = list(facility_ids)
            bindparams.append(bindparam("facility_ids", expanding=True))

        sql = self.definition.refresh_sql.format(
            conditions="".join(f"\n          AND {c}" for c in conditions)
        )
        query = text(sql)
        if bindparams:
            query = query.bindparams(*bindparams)

        try:
            result = self.conn.execute(query, params)
        except Exception as e:
            log_database_error(e, f"Failed to refresh {self.definition.name}")
            raise

        logger.debug("Cache rows inserted", extra={
            "cache_table": self.definition.name,
            "rows": result.rowcount,
        })
        return result.rowcount
