"""
fleet_db.db

Dual-backend data-access layer.

This package provides:

- Backend selection, decided once per process:
      * BackendKind
      * BackendSelector / select_backend

- Connection ownership:
      * ConnectionProvider
      * SQLiteBackend   (embedded file: development, tests, small installs)
      * PostgresBackend (networked server behind a bounded pool)

- Neutral query translation:
      * translate_for_postgres

- The unified query facade:
      * Database / Transaction
      * QueryResult
"""

from .backend_base import BackendKind, DBBackend
from .selector import (
    BackendSelector,
    default_selector,
    reset_backend_selection,
    select_backend,
)
from .sqlite_backend import SQLiteBackend
from .postgres_backend import PostgresBackend, BoundedConnectionPool
from .provider import ConnectionProvider, create_backend
from .connection import Database, Transaction
from .helpers import QueryResult, row_to_dict
from .translator import translate_for_postgres

__all__ = [
    # Selection
    "BackendKind",
    "BackendSelector",
    "default_selector",
    "select_backend",
    "reset_backend_selection",

    # Backends / provider
    "DBBackend",
    "SQLiteBackend",
    "PostgresBackend",
    "BoundedConnectionPool",
    "ConnectionProvider",
    "create_backend",

    # Facade
    "Database",
    "Transaction",
    "QueryResult",
    "row_to_dict",

    # Translation
    "translate_for_postgres",
]
