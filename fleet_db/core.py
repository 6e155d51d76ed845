from __future__ import annotations

"""
Core façade for the fleet_db subsystem.

FleetDB is the single, high-level entrypoint used by:

    - the administrative HTTP layer (reset endpoint, behind its own
      authorization and confirmation checks),
    - command-line maintenance scripts,
    - the CRUD routes, through query_many / query_one / execute.

It wraps:

    - backend selection (SQLite file vs. PostgreSQL pool)
    - the connection provider
    - the unified query facade
    - the operational data reset

Design goals:
    - callers never branch on the active backend
    - explicit lifecycle: from_config() acquires, close() releases
    - easy to test (inject a config or a provider)
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from .config import FleetDBConfig, load_config
from .db import BackendKind, BackendSelector, ConnectionProvider, Database, QueryResult
from .db.sqlite_backend import SQLiteBackend
from .maintenance.reset import ResetOptions, ResetReport, reset_operational_data

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# FleetDB façade
# ---------------------------------------------------------------------------

@dataclass
class FleetDB:
    """
    High-level façade over the fleet_db data-access layer.

    This object is intended to be long-lived and shared:
        - one instance per process (or per service)
        - safe to hand to request handlers and worker threads

    Attributes
    ----------
    config:
        FleetDBConfig used to construct this instance.

    provider:
        ConnectionProvider owning the connection / pool.

    database:
        Database facade running neutral queries on the active backend.
    """

    config: FleetDBConfig
    provider: ConnectionProvider
    database: Database

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: Optional[FleetDBConfig] = None,
        *,
        init_schema: bool = False,
        selector: Optional[BackendSelector] = None,
    ) -> "FleetDB":
        """
        Construct and connect a FleetDB instance.

        This:
            - selects the backend (sqlite/postgres),
            - acquires the connection or pool (PostgreSQL is probed),
            - optionally bootstraps the embedded schema.

        PostgreSQL schemas are managed by migrations and are never created
        here, whatever ``init_schema`` says.
        """
        cfg = config or load_config()

        if cfg.enable_logging:
            logging.basicConfig(level=logging.INFO)
            logger.info("Initializing FleetDB with config: %s", _redacted(cfg))

        provider = ConnectionProvider(cfg, selector=selector)
        backend = provider.acquire()

        if init_schema and isinstance(backend, SQLiteBackend):
            backend.init_schema()

        return cls(config=cfg, provider=provider, database=Database(provider))

    @classmethod
    def from_env(cls, *, init_schema: bool = False) -> "FleetDB":
        """Construct FleetDB using environment variables."""
        return cls.from_config(load_config(), init_schema=init_schema)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def kind(self) -> BackendKind:
        return self.provider.kind

    @property
    def is_postgres(self) -> bool:
        return self.kind is BackendKind.NETWORKED_SERVER

    @property
    def is_sqlite(self) -> bool:
        return self.kind is BackendKind.EMBEDDED_FILE

    # ------------------------------------------------------------------
    # Query contract
    # ------------------------------------------------------------------

    def query_many(self, query: str, params: Optional[Sequence] = None) -> QueryResult:
        return self.database.query_many(query, params)

    def query_one(self, query: str, params: Optional[Sequence] = None) -> Optional[Dict[str, Any]]:
        return self.database.query_one(query, params)

    def execute(self, query: str, params: Optional[Sequence] = None) -> QueryResult:
        return self.database.execute(query, params)

    def transaction(self):
        return self.database.transaction()

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def reset_operational_data(
        self,
        options: Optional[ResetOptions] = None,
        *,
        emit: Optional[Callable[[str, Dict[str, Any]], None]] = None,
    ) -> ResetReport:
        """
        Atomically empty the operational tables.

        Without explicit options the reset follows this instance's config:
        RESET_USERS and the administrator identity.
        """
        if options is None:
            options = ResetOptions.from_config(self.config)
        return reset_operational_data(self.database, options, emit=emit)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """
        Release backend resources.

        Closes the PostgreSQL pool; the SQLite connection is closed as well
        so that the file handle does not outlive this instance.
        """
        self.provider.release()
        self.provider.close_embedded()

    def __enter__(self) -> "FleetDB":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def _redacted(cfg: FleetDBConfig) -> Dict[str, Any]:
    """Config as a dict with the DSN password masked, for logging."""
    data = asdict(cfg)
    url = data.get("database_url")
    if url:
        parts = urlsplit(url)
        if parts.password:
            netloc = parts.netloc.replace(f":{parts.password}@", ":***@")
            data["database_url"] = urlunsplit(parts._replace(netloc=netloc))
    return data


def create_fleet_db(*, init_schema: bool = False) -> FleetDB:
    """
    Convenience constructor used by application entrypoints.

    Equivalent to ``FleetDB.from_env(init_schema=...)``.
    """
    return FleetDB.from_env(init_schema=init_schema)
