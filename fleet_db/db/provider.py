"""
Connection provider.

Owns the single connection handle of the selected backend: builds the
backend strategy on first ``acquire()``, hands it out afterwards and shuts
it down on ``release()``.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..config import FleetDBConfig
from ..errors import NotInitializedError
from .backend_base import BackendKind, DBBackend
from .postgres_backend import PostgresBackend
from .selector import BackendSelector, default_selector
from .sqlite_backend import SQLiteBackend

logger = logging.getLogger(__name__)


def create_backend(kind: BackendKind, config: FleetDBConfig) -> DBBackend:
    """Instantiate (but do not open) the backend strategy for ``kind``."""
    if kind is BackendKind.NETWORKED_SERVER:
        return PostgresBackend(
            config.database_url,
            production=config.production,
            pool_max=config.pool_max,
            idle_timeout=config.pool_idle_timeout,
            connect_timeout=config.pool_connect_timeout,
        )
    return SQLiteBackend(str(config.resolved_sqlite_path))


class ConnectionProvider:
    """
    Lazily established, cached backend handle.

    Parameters
    ----------
    config : FleetDBConfig
        Configuration used to build the backend.
    selector : BackendSelector, optional
        Decides the backend kind. Defaults to the process-wide selector, so
        every provider in the process shares one decision; the first one to
        ask makes it from its own ``config``.
    """

    def __init__(
        self,
        config: FleetDBConfig,
        selector: Optional[BackendSelector] = None,
    ):
        self.config = config
        self.selector = selector or default_selector()
        self._backend: Optional[DBBackend] = None
        self._acquired = False
        self._lock = threading.Lock()

    @property
    def kind(self) -> BackendKind:
        return self.selector.select(self.config)

    def acquire(self) -> DBBackend:
        """
        Open the backend on first call; return the cached one afterwards.

        Raises DatabaseConnectionError if PostgreSQL is selected and the
        pool cannot be opened or probed.
        """
        with self._lock:
            if self._backend is None:
                self._backend = create_backend(self.kind, self.config)
            if not self._backend.is_open:
                self._backend.open()
            self._acquired = True
            return self._backend

    @property
    def backend(self) -> DBBackend:
        """The acquired backend. Raises NotInitializedError before acquire()."""
        if not self._acquired or self._backend is None:
            raise NotInitializedError(
                "Database not initialized; call acquire() first"
            )
        return self._backend

    def release(self) -> None:
        """
        Close the PostgreSQL pool.

        The embedded SQLite connection stays open for the process lifetime;
        use close_embedded() to close it explicitly.
        """
        with self._lock:
            backend = self._backend
            if backend is None:
                return
            if backend.kind is BackendKind.NETWORKED_SERVER:
                backend.close()
                self._acquired = False

    def close_embedded(self) -> None:
        """Close the SQLite file connection (tests, process shutdown)."""
        with self._lock:
            backend = self._backend
            if backend is not None and backend.kind is BackendKind.EMBEDDED_FILE:
                backend.close()
                self._acquired = False


__all__ = [
    "ConnectionProvider",
    "create_backend",
]
