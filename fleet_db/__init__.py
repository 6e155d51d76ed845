"""
fleet_db

Top-level package initializer for the vehicle/maintenance data-access layer.

Submodules include:
    - db/           (backend selection, providers, translation, query facade)
    - maintenance/  (atomic operational data reset)
    - config        (environment configuration)
    - errors        (error taxonomy and user-facing failure mapping)

This root package exports the config loader, the FleetDB façade and the
error classes for convenience.
"""

from .config import FleetDBConfig, load_config
from .core import FleetDB, create_fleet_db
from .errors import (
    FleetDBError,
    NotInitializedError,
    DatabaseConnectionError,
    TranslationError,
    SchemaCheckError,
    TransactionFailure,
    describe_failure,
)

__all__ = [
    "FleetDBConfig",
    "load_config",
    "FleetDB",
    "create_fleet_db",
    "FleetDBError",
    "NotInitializedError",
    "DatabaseConnectionError",
    "TranslationError",
    "SchemaCheckError",
    "TransactionFailure",
    "describe_failure",
]
