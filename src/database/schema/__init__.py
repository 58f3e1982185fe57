"""
Bikepark Reports - SQLAlchemy Table Definitions
===============================================

Table objects for the raw tables the engine reads and the cache tables it owns.

Usage:
    from database.schema import bezettingsdata_day_hour_cache

    bezettingsdata_day_hour_cache.create(conn, checkfirst=True)

Tables are organized into two modules:
- raw_tables: fietsenstallingen, fietsenstalling_sectie, bezettingsdata,
  transacties_archief (read-only)
- cache_tables: the three report cache tables
"""

from .metadata import metadata
from .raw_tables import (
    fietsenstallingen,
    fietsenstalling_sectie,
    bezettingsdata,
    transacties_archief,
    ParentIndex,
    TRANSACTIONS_PARENT_INDEX,
    OCCUPANCY_PARENT_INDEX,
)
from .cache_tables import (
    transacties_archief_day_cache,
    bezettingsdata_day_hour_cache,
    stallingsduur_cache,
)

__all__ = [
    # Metadata
    "metadata",
    # Raw data
    "fietsenstallingen",
    "fietsenstalling_sectie",
    "bezettingsdata",
    "transacties_archief",
    "ParentIndex",
    "TRANSACTIONS_PARENT_INDEX",
    "OCCUPANCY_PARENT_INDEX",
    # Cache tables
    "transacties_archief_day_cache",
    "bezettingsdata_day_hour_cache",
    "stallingsduur_cache",
]
