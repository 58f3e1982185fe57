"""
Raw Transactional Tables
========================

Tables owned by the surrounding bike-parking application. This engine only
reads them (and manages two supporting indexes on them, see
ParentIndex below); their DDL is never issued from here.

Tables:
- fietsenstallingen: Facility master data
- fietsenstalling_sectie: Sections per facility
- bezettingsdata: Occupancy snapshots, one row per section per sampling interval
- transacties_archief: Completed parking transactions

Database: MySQL/MariaDB
"""

from dataclasses import dataclass
from typing import Tuple

from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    DateTime,
    Numeric,
    Boolean,
)
from .metadata import metadata


# =============================================================================
# FIETSENSTALLINGEN TABLE
# =============================================================================
# Facility master data. StallingsID is the public facility identifier used by
# every report and cache table ("bikeparkID" / "locationID").
# =============================================================================

fietsenstallingen = Table(
    "fietsenstallingen",
    metadata,
    Column("ID", String(35), primary_key=True),
    Column("StallingsID", String(35), nullable=True),
    Column("Title", String(255), nullable=True),
    Column("SiteID", String(35), nullable=True),
)


# =============================================================================
# FIETSENSTALLING_SECTIE TABLE
# =============================================================================
# Sections of a facility. externalid is the section identifier found in
# bezettingsdata.sectionID and transacties_archief.sectionid.
# =============================================================================

fietsenstalling_sectie = Table(
    "fietsenstalling_sectie",
    metadata,
    Column("sectieId", Integer, primary_key=True, autoincrement=True),
    Column("fietsenstallingsId", String(35), nullable=True),
    Column("externalid", String(35), nullable=True),
    Column("titel", String(255), nullable=True),
)


# =============================================================================
# BEZETTINGSDATA TABLE
# =============================================================================
# Occupancy snapshots. `timestamp` marks the end of the sampling interval.
#
# Key columns:
#   - bikeparkID + sectionID + timestamp + interval identify a sample
#   - fillup: row was synthesized to fill a gap in the feed
#   - source: data provider tag
# =============================================================================

bezettingsdata = Table(
    "bezettingsdata",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", DateTime, nullable=False),
    Column("bikeparkID", String(35), nullable=False),
    Column("sectionID", String(35), nullable=True),
    Column("source", String(50), nullable=True),
    Column("interval", Integer, nullable=False, server_default="15"),
    Column("capacity", Integer, nullable=True),
    Column("occupation", Integer, nullable=True),
    Column("checkins", Integer, nullable=True),
    Column("checkouts", Integer, nullable=True),
    Column("fillup", Boolean, nullable=False, server_default="0"),
)


# =============================================================================
# TRANSACTIES_ARCHIEF TABLE
# =============================================================================
# Completed transactions. A transaction is counted on its checkout date.
# =============================================================================

transacties_archief = Table(
    "transacties_archief",
    metadata,
    Column("ID", Integer, primary_key=True, autoincrement=True),
    Column("locationID", String(35), nullable=False),
    Column("sectionid", String(35), nullable=True),
    Column("checkindate", DateTime, nullable=True),
    Column("checkoutdate", DateTime, nullable=True),
    Column("price", Numeric(10, 2), nullable=True),
    Column("clienttypeid", Integer, nullable=True),
)


@dataclass(frozen=True)
class ParentIndex:
    """A supporting index on a raw table, managed by a cache manager."""

    name: str
    table_name: str
    columns: Tuple[str, ...]

    def create_sql(self) -> str:
        column_list = ", ".join(f"`{c}`" for c in self.columns)
        return f"CREATE INDEX `{self.name}` ON `{self.table_name}` ({column_list})"

    def drop_sql(self) -> str:
        return f"DROP INDEX `{self.name}` ON `{self.table_name}`"


TRANSACTIONS_PARENT_INDEX = ParentIndex(
    name="idx_cache_location_checkoutdate",
    table_name="transacties_archief",
    columns=("locationID", "checkoutdate"),
)

OCCUPANCY_PARENT_INDEX = ParentIndex(
    name="idx_cache_bikepark_timestamp",
    table_name="bezettingsdata",
    columns=("bikeparkID", "timestamp"),
)
