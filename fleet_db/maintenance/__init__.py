"""
fleet_db.maintenance

Administrative maintenance operations built on the query facade:

    * reset_operational_data – atomic bulk reset of operational tables
    * ResetOptions / ResetReport / TableCleanupResult
"""

from .reset import (
    DEFAULT_OPERATIONAL_TABLES,
    USERS_TABLE,
    ResetOptions,
    ResetReport,
    TableCleanupResult,
    reset_operational_data,
)

__all__ = [
    "DEFAULT_OPERATIONAL_TABLES",
    "USERS_TABLE",
    "ResetOptions",
    "ResetReport",
    "TableCleanupResult",
    "reset_operational_data",
]
