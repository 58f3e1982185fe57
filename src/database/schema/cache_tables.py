"""
Report Cache Tables
===================

Pre-aggregated projections of the raw tables, one per report family.
Rows are written only by the cache lifecycle managers (update / rebuild).

Bucket columns hold reporting time: the raw timestamp shifted back by the
"day begins at" offset, so a cache bucket never needs shifting at query time.

Tables:
- transacties_archief_day_cache: transactions and revenue per facility per day
- bezettingsdata_day_hour_cache: occupancy per facility/section/source per hour
- stallingsduur_cache: duration-of-stay histogram per facility per day
"""

from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Numeric,
    Boolean,
    Index,
)
from .metadata import metadata


# =============================================================================
# TRANSACTIES_ARCHIEF_DAY_CACHE TABLE
# =============================================================================
# One row per (locationID, checkoutdate).
#
# Used by:
#   - transacties_voltooid report (SUM(count_transacties))
#   - inkomsten report (SUM(sum_inkomsten))
# =============================================================================

transacties_archief_day_cache = Table(
    "transacties_archief_day_cache",
    metadata,
    Column("ID", Integer, primary_key=True, autoincrement=True),
    Column("locationID", String(35), nullable=False),
    Column("checkoutdate", Date, nullable=False),
    Column("count_transacties", Integer, nullable=False, server_default="0"),
    Column("sum_inkomsten", Numeric(12, 2), nullable=False, server_default="0"),
    Index("idx_location_date", "locationID", "checkoutdate"),
    Index("idx_transactions_cache_date", "checkoutdate"),
)


# =============================================================================
# BEZETTINGSDATA_DAY_HOUR_CACHE TABLE
# =============================================================================
# One row per (bikeparkID, sectionID, source, interval, fillup, hour).
#
# totalOccupation/samples reproduces AVG(occupation) over the raw rows and
# maxCapacity reproduces MAX(capacity), so cached and raw reports match.
# =============================================================================

bezettingsdata_day_hour_cache = Table(
    "bezettingsdata_day_hour_cache",
    metadata,
    Column("ID", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", DateTime, nullable=False),
    Column("bikeparkID", String(35), nullable=False),
    Column("sectionID", String(35), nullable=True),
    Column("source", String(50), nullable=True),
    Column("interval", Integer, nullable=False),
    Column("fillup", Boolean, nullable=False, server_default="0"),
    Column("totalCheckins", Integer, nullable=False, server_default="0"),
    Column("totalCheckouts", Integer, nullable=False, server_default="0"),
    Column("totalOccupation", Integer, nullable=False, server_default="0"),
    Column("totalCapacity", Integer, nullable=False, server_default="0"),
    Column("maxCapacity", Integer, nullable=True),
    Column("samples", Integer, nullable=False, server_default="0"),
    Column("perc_occupation", Numeric(5, 1), nullable=True),
    Index("idx_bikepark_timestamp", "bikeparkID", "timestamp"),
    Index("idx_occupancy_cache_timestamp", "timestamp"),
)


# =============================================================================
# STALLINGSDUUR_CACHE TABLE
# =============================================================================
# One row per (locationID, checkoutdate, bucket). Buckets 1..10:
#   1 <30m, 2 30-60m, 3 1-2h, 4 2-4h, 5 4-8h,
#   6 8-24h, 7 1-2d, 8 2-7d, 9 7-14d, 10 >14d
# =============================================================================

stallingsduur_cache = Table(
    "stallingsduur_cache",
    metadata,
    Column("ID", Integer, primary_key=True, autoincrement=True),
    Column("locationID", String(35), nullable=False),
    Column("checkoutdate", Date, nullable=False),
    Column("bucket", Integer, nullable=False),
    Column("count_transacties", Integer, nullable=False, server_default="0"),
    Index("idx_duration_location_date", "locationID", "checkoutdate"),
)
