"""
SQLAlchemy MetaData Instance
============================

Shared MetaData object for all table definitions.

The raw tables are owned by the surrounding application and are only
declared here so queries can reference their columns. The cache tables are
created and dropped by the cache lifecycle managers through this metadata.
"""

from sqlalchemy import MetaData

# Naming convention for constraints and indexes
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)
